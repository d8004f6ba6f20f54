"""Voter access tokens.

Each roster unit receives a signed bearer token scoped to one assembly. The
token is embedded in the unit's voting link and must accompany every
heartbeat and vote the unit sends.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode

from jose import JWTError, jwt

from assembly_stage.core.errors import ConfigurationError
from assembly_stage.core.settings import settings

TOKEN_TYPE = "voter"


class InvalidVoterToken(ValueError):
    """Raised when a voter token is malformed, expired or not a voter token."""


@dataclass(frozen=True)
class VoterIdentity:
    """Claims carried by a decoded voter token."""

    assembly_id: str
    unit_id: str
    expires_at: datetime


def _signing_key() -> str:
    key = (settings.secret_key or "").strip()
    if not key:
        raise ConfigurationError("SECRET_KEY is not configured; voter tokens cannot be used")
    return key


def create_voter_token(
    assembly_id: str,
    unit_id: str,
    *,
    expires_minutes: int | None = None,
) -> tuple[str, datetime]:
    """Create a signed token binding a unit to an assembly.

    Args:
        assembly_id: Assembly the unit may take part in.
        unit_id: Roster unit the token identifies.
        expires_minutes: Override for the configured token lifetime.

    Returns:
        The encoded token and its expiry instant.
    """
    minutes = expires_minutes if expires_minutes is not None else settings.voter_token_expire_minutes
    expire = datetime.now(UTC) + timedelta(minutes=minutes)
    claims = {
        "sub": unit_id,
        "asm": assembly_id,
        "typ": TOKEN_TYPE,
        "exp": expire,
    }
    token = jwt.encode(claims, _signing_key(), algorithm=settings.jwt_algorithm)
    return token, expire


def decode_voter_token(token: str) -> VoterIdentity:
    """Validate a voter token and return its claims.

    Raises:
        InvalidVoterToken: If the signature, expiry or claims are not valid.
    """
    try:
        payload = jwt.decode(token, _signing_key(), algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise InvalidVoterToken("Could not validate voter token") from err

    unit_id = payload.get("sub")
    assembly_id = payload.get("asm")
    if payload.get("typ") != TOKEN_TYPE or not unit_id or not assembly_id:
        raise InvalidVoterToken("Token is not a voter token")
    return VoterIdentity(
        assembly_id=assembly_id,
        unit_id=unit_id,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
    )


def voting_url(token: str) -> str:
    """Return the link a unit opens to join the assembly."""
    base = settings.public_app_url.rstrip("/")
    return f"{base}/vote?{urlencode({'token': token})}"
