from __future__ import annotations

import re
from contextvars import ContextVar, Token
from typing import Optional
from uuid import uuid4

_RUN_ID: ContextVar[str] = ContextVar("run_id", default="-")
_RUN_ID_PATTERN = re.compile(r"^[a-fA-F0-9-]{8,64}$")


def _normalise(value: str) -> str:
    value = value.strip()
    if _RUN_ID_PATTERN.match(value):
        return value.lower()
    return uuid4().hex


def new_run_id(value: Optional[str] = None) -> str:
    """Resolve or generate a planning-run identifier.

    Args:
        value: Explicit identifier candidate, e.g. forwarded from a request header.

    Returns:
        A valid run identifier. Malformed candidates are replaced by a fresh one.
    """

    if value:
        return _normalise(value)
    return uuid4().hex


def set_run_id(run_id: str) -> Token:
    return _RUN_ID.set(_normalise(run_id))


def reset_run_id(token: Optional[Token]) -> None:
    if token is not None:
        _RUN_ID.reset(token)


def get_run_id() -> str:
    return _RUN_ID.get()
