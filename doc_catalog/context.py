"""Execution context: the acting principal."""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_acting_principal: ContextVar[Optional[str]] = ContextVar(
    "acting_principal", default=None
)


@contextmanager
def acting_as(principal: str) -> Iterator[str]:
    """Bind ``principal`` as the caller for operations run inside the block."""
    if not principal:
        raise ValueError("principal must be a non-empty string")
    token = _acting_principal.set(principal)
    try:
        yield principal
    finally:
        _acting_principal.reset(token)


def current_principal() -> str:
    """Return the bound caller.

    Raises:
        RuntimeError: If no principal is bound in the current context
    """
    principal = _acting_principal.get()
    if principal is None:
        raise RuntimeError("No acting principal bound; use acting_as()")
    return principal


def optional_principal() -> Optional[str]:
    """Return the bound caller, or None outside ``acting_as``."""
    return _acting_principal.get()
