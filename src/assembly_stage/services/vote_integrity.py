"""Vote integrity commitments.

Every vote gets a hash over its content, a fresh random nonce and the server
secret. The nonce makes identical votes produce unrelated hashes, so vote
tuples cannot be guessed from a dictionary; the secret means only the server
can mint a hash that verifies. Tampering is detectable, not prevented: the
nonce is stored next to the hash and verification recomputes the digest.
"""

from __future__ import annotations

import logging
import math
import secrets
from dataclasses import dataclass
from typing import Final

from assembly_stage.core.errors import (
    ConfigurationError,
    InputValidationError,
    IntegrityComputationError,
)
from assembly_stage.core.settings import settings
from assembly_stage.schemas.vote import VoteChoice
from assembly_stage.utils.hash import HEX_DIGESTS, hexdigest

logger = logging.getLogger(__name__)

NONCE_BYTES: Final[int] = 16
FIELD_SEPARATOR: Final[str] = ":"

# Spellings accepted from older clients.
_CHOICE_ALIASES: Final[dict[str, VoteChoice]] = {
    "for": VoteChoice.FOR,
    "a_favor": VoteChoice.FOR,
    "against": VoteChoice.AGAINST,
    "en_contra": VoteChoice.AGAINST,
    "abstain": VoteChoice.ABSTAIN,
    "abstencion": VoteChoice.ABSTAIN,
    "abstcion": VoteChoice.ABSTAIN,
}


def parse_choice(value: object) -> VoteChoice:
    """Normalise a submitted option into a ``VoteChoice``.

    Raises:
        InputValidationError: If the value is not one of the admissible options.
    """
    if isinstance(value, VoteChoice):
        return value
    if not isinstance(value, str):
        raise InputValidationError("choice must be one of: for, against, abstain")
    choice = _CHOICE_ALIASES.get(value.strip().lower())
    if choice is None:
        raise InputValidationError(
            f"Invalid vote choice {value!r}; expected one of: for, against, abstain"
        )
    return choice


def format_coefficient(value: float) -> str:
    """Render a coefficient canonically: ``5`` for 5.0, ``5.5`` for 5.5."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def _require_text(name: str, value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InputValidationError(f"{name} is required")
    return value


def _require_coefficient(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise InputValidationError("coefficient must be a number")
    number = float(value)
    if not math.isfinite(number) or number < 0:
        raise InputValidationError("coefficient must be a finite number >= 0")
    return number


@dataclass(frozen=True)
class VoteCommitment:
    """Hash of a vote plus the material needed to verify it later."""

    vote_hash: str
    nonce: str
    algorithm: str


class VoteIntegrityEngine:
    """Computes and verifies server-attested vote commitment hashes."""

    def __init__(self, server_secret: str | None = None, algorithm: str = "sha256") -> None:
        if algorithm not in HEX_DIGESTS:
            raise ConfigurationError(f"Unsupported vote hash algorithm: {algorithm!r}")
        self._server_secret = server_secret or None
        self._algorithm = algorithm

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def has_server_secret(self) -> bool:
        return self._server_secret is not None

    @staticmethod
    def generate_nonce() -> str:
        """Return a single-use random nonce, hex encoded."""
        return secrets.token_hex(NONCE_BYTES)

    def canonical_payload(
        self,
        timestamp: str,
        unit_identifier: str,
        agenda_point_id: str,
        choice: VoteChoice,
        coefficient: float,
        nonce: str,
        server_secret: str | None = None,
    ) -> str:
        """Return the delimited string that is hashed."""
        parts = [
            timestamp,
            unit_identifier,
            agenda_point_id,
            choice.value,
            format_coefficient(coefficient),
            nonce,
        ]
        secret = server_secret if server_secret is not None else self._server_secret
        if secret:
            parts.append(secret)
        return FIELD_SEPARATOR.join(parts)

    def _digest(self, algorithm: str, payload: str) -> str:
        try:
            return hexdigest(algorithm, payload.encode("utf-8"))
        except Exception as err:
            logger.error("Vote hash computation failed (%s)", algorithm, exc_info=True)
            raise IntegrityComputationError(f"could not compute vote hash: {err}") from err

    def commit(
        self,
        timestamp: str,
        unit_identifier: str,
        agenda_point_id: str,
        choice: VoteChoice | str,
        coefficient: float,
        server_secret: str | None = None,
    ) -> VoteCommitment:
        """Hash a vote with a fresh nonce.

        Raises:
            InputValidationError: If a required field is missing or the choice
                is not admissible. Nothing is hashed in that case.
            IntegrityComputationError: If the digest could not be computed.
        """
        timestamp = _require_text("timestamp", timestamp)
        unit_identifier = _require_text("unit_identifier", unit_identifier)
        agenda_point_id = _require_text("agenda_point_id", agenda_point_id)
        parsed_choice = parse_choice(choice)
        number = _require_coefficient(coefficient)

        nonce = self.generate_nonce()
        payload = self.canonical_payload(
            timestamp,
            unit_identifier,
            agenda_point_id,
            parsed_choice,
            number,
            nonce,
            server_secret,
        )
        return VoteCommitment(
            vote_hash=self._digest(self._algorithm, payload),
            nonce=nonce,
            algorithm=self._algorithm,
        )

    def verify(
        self,
        vote_hash: str,
        timestamp: str,
        unit_identifier: str,
        agenda_point_id: str,
        choice: VoteChoice | str,
        coefficient: float,
        nonce: str,
        *,
        algorithm: str | None = None,
        server_secret: str | None = None,
    ) -> bool:
        """Recompute a commitment and compare it in constant time."""
        payload = self.canonical_payload(
            _require_text("timestamp", timestamp),
            _require_text("unit_identifier", unit_identifier),
            _require_text("agenda_point_id", agenda_point_id),
            parse_choice(choice),
            _require_coefficient(coefficient),
            _require_text("nonce", nonce),
            server_secret,
        )
        expected = self._digest(algorithm or self._algorithm, payload)
        supplied = _require_text("vote_hash", vote_hash).strip().lower()
        return secrets.compare_digest(expected.encode(), supplied.encode())


def get_vote_integrity_engine() -> VoteIntegrityEngine:
    """Return an engine configured with the server secret and algorithm."""
    return VoteIntegrityEngine(
        server_secret=settings.vote_server_secret,
        algorithm=settings.vote_hash_algorithm,
    )
