"""Input validation helpers shared by the presence and vote paths."""

from __future__ import annotations

import math
import re
from typing import Final

from assembly_stage.core.errors import InputValidationError

_IDENTIFIER_RE: Final = re.compile(r"^[A-Za-z0-9_.\-]{1,64}$")


def require_identifier(name: str, value: object) -> str:
    """Return ``value`` if it is a usable identifier, else raise.

    Identifiers become parts of presence-store keys, so the ``:`` separator and
    glob characters are rejected.
    """
    if not isinstance(value, str) or not value.strip():
        raise InputValidationError(f"{name} is required")
    cleaned = value.strip()
    if not _IDENTIFIER_RE.match(cleaned):
        raise InputValidationError(
            f"{name} may only contain letters, digits, '.', '_' or '-' (max 64 chars)"
        )
    return cleaned


def require_non_negative(name: str, value: object) -> float:
    """Return ``value`` as a finite, non-negative float."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise InputValidationError(f"{name} must be a number")
    number = float(value)
    if not math.isfinite(number) or number < 0:
        raise InputValidationError(f"{name} must be a finite number >= 0")
    return number
