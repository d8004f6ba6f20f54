"""Data access helpers for vote records."""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from assembly_stage.core.errors import StoreUnavailable
from assembly_stage.models.vote import VoteRecord

__all__ = ["VoteRepository"]

logger = logging.getLogger(__name__)


class VoteRepository:
    """Insert-only access to vote records.

    Methods flush but never commit; the calling service owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, vote_id: str) -> VoteRecord | None:
        """Return a vote by identifier."""
        try:
            return self.session.get(VoteRecord, vote_id)
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err

    def get_by_request_id(self, assembly_id: str, client_request_id: str) -> VoteRecord | None:
        """Return the vote previously stored for a client request id, if any."""
        try:
            result = self.session.execute(
                select(VoteRecord).where(
                    VoteRecord.assembly_id == assembly_id,
                    VoteRecord.client_request_id == client_request_id,
                )
            )
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        return result.scalars().first()

    def create(self, record: VoteRecord) -> tuple[VoteRecord, bool]:
        """Insert ``record`` unless its request id was already stored.

        Returns:
            The persisted record and whether it was newly created. A retried
            request returns the original record and ``False``.
        """
        if record.client_request_id:
            existing = self.get_by_request_id(record.assembly_id, record.client_request_id)
            if existing is not None:
                return existing, False

        savepoint = self.session.begin_nested()
        try:
            self.session.add(record)
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            if record.client_request_id:
                existing = self.get_by_request_id(record.assembly_id, record.client_request_id)
                if existing is not None:
                    logger.info(
                        "Vote request %s raced a duplicate; returning stored record",
                        record.client_request_id,
                    )
                    return existing, False
            raise
        except OperationalError as err:
            savepoint.rollback()
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        return record, True

    def list_for_point(self, assembly_id: str, agenda_point_id: str) -> list[VoteRecord]:
        """Return the votes of one agenda point in insertion order."""
        try:
            result = self.session.execute(
                select(VoteRecord)
                .where(
                    VoteRecord.assembly_id == assembly_id,
                    VoteRecord.agenda_point_id == agenda_point_id,
                )
                .order_by(VoteRecord.created_at, VoteRecord.id)
            )
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        return list(result.scalars())

    def list_for_assembly(self, assembly_id: str) -> list[VoteRecord]:
        """Return every vote of an assembly grouped by agenda point, oldest first."""
        try:
            result = self.session.execute(
                select(VoteRecord)
                .where(VoteRecord.assembly_id == assembly_id)
                .order_by(VoteRecord.agenda_point_id, VoteRecord.created_at, VoteRecord.id)
            )
        except OperationalError as err:
            raise StoreUnavailable(f"record store unavailable: {err}") from err
        return list(result.scalars())
