from maintenance_spine.cli.app import app

app()
