"""
maintenance-spine - Recurring maintenance window planning.

Turns a cron-like recurrence into concrete, future maintenance windows for
a managed resource (for example a build agent taken offline every night),
far enough ahead that consumers can plan around them.

Layout:
    maintenance_spine.core         Errors, settings, logging, timestamps
    maintenance_spine.scheduling   Matcher, windows, recurring scheduler,
                                   repository and planner service
    maintenance_spine.cli          ``maintenance-spine`` command line
"""

__version__ = "0.1.0"

from maintenance_spine.scheduling import (  # noqa: E402
    MaintenancePlanner,
    MaintenanceWindow,
    RecurringWindowRepository,
    RecurringWindowScheduler,
    ScheduleMatcher,
    check_schedule,
    parse_duration,
)

__all__ = [
    "__version__",
    "MaintenancePlanner",
    "MaintenanceWindow",
    "RecurringWindowRepository",
    "RecurringWindowScheduler",
    "ScheduleMatcher",
    "check_schedule",
    "parse_duration",
]
