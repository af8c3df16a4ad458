"""Acting principal lookup.

Recurring schedules created without an explicit user id are attributed to
whoever is acting when the schedule is constructed.  Callers (an API
request handler, the CLI) bind that identity with :func:`acting_as`;
unauthenticated or background code runs as :data:`SYSTEM_PRINCIPAL`.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

SYSTEM_PRINCIPAL = "System"

_acting_principal: ContextVar[str | None] = ContextVar("acting_principal", default=None)


def current_principal() -> str:
    """Return the bound principal, or ``"System"`` when nothing is bound."""
    principal = _acting_principal.get()
    if principal is None or not principal.strip():
        return SYSTEM_PRINCIPAL
    return principal


@contextmanager
def acting_as(principal: str | None) -> Iterator[str]:
    """Bind *principal* for the duration of the block.

    Example:
        >>> with acting_as("alice"):
        ...     current_principal()
        'alice'
    """
    token = _acting_principal.set(principal)
    try:
        yield current_principal()
    finally:
        _acting_principal.reset(token)
