"""
Idempotency Store
Saves and replays HTTP responses keyed by (user, idempotency key)

Usage:
    outcome = await store.try_begin(user_id, key)
    if isinstance(outcome, AlreadyCompleted):
        return outcome.response.to_response()

    async with outcome as transaction:
        ...  # every side effect goes through transaction.session
        return await transaction.save_response(response)

The placeholder insert, the side effects and the saved response share one
database transaction: either all of them commit or none do.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple, Union
from uuid import UUID, uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from newsletter_service.idempotency.key import IdempotencyKey
from newsletter_service.idempotency.models import IdempotencyModel
from newsletter_service.shared.database import DatabaseSessionFactory, insert_or_do_nothing
from newsletter_service.shared.exceptions import IdempotencyInProgressError
from newsletter_service.shared.logging import get_logger

logger = get_logger(__name__)

HeaderPairs = Tuple[Tuple[str, str], ...]


@dataclass(frozen=True)
class SavedHttpResponse:
    """Status, ordered raw headers and body of a response, as sent."""

    status_code: int
    headers: HeaderPairs
    body: bytes

    @classmethod
    def capture(cls, response: Response) -> "SavedHttpResponse":
        headers = tuple(
            (name.decode("latin-1"), value.decode("latin-1"))
            for name, value in response.raw_headers
        )
        return cls(response.status_code, headers, bytes(response.body))

    def to_response(self) -> Response:
        response = Response(content=self.body, status_code=self.status_code)
        # Replace the computed headers so duplicates and their order survive
        response.raw_headers = [
            (name.encode("latin-1"), value.encode("latin-1")) for name, value in self.headers
        ]
        return response


@dataclass(frozen=True)
class AlreadyCompleted:
    response: SavedHttpResponse


class Started:
    """
    An open transaction owning a freshly inserted placeholder row.

    Used as an async context manager: leaving the block without calling
    ``save_response`` rolls everything back, placeholder included.
    """

    def __init__(self, session: AsyncSession, user_id: UUID, key: IdempotencyKey) -> None:
        self.session = session
        self.user_id = user_id
        self.key = key
        self._finished = False

    async def __aenter__(self) -> "Started":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if not self._finished:
                await self.session.rollback()
                logger.info(
                    "Idempotent request rolled back",
                    idempotency_key=self.key.value,
                    error=type(exc).__name__ if exc is not None else None,
                )
        finally:
            await self.session.close()

    async def save_response(self, response: Response) -> Response:
        """Store ``response`` in the placeholder row and commit the transaction."""
        saved = SavedHttpResponse.capture(response)
        await self.session.execute(
            update(IdempotencyModel)
            .where(
                IdempotencyModel.user_id == self.user_id,
                IdempotencyModel.idempotency_key == self.key.value,
            )
            .values(
                response_status_code=saved.status_code,
                response_headers=[list(pair) for pair in saved.headers],
                response_body=saved.body,
                updated_at=datetime.now(timezone.utc),
            )
        )
        await self.session.commit()
        self._finished = True
        logger.info(
            "Saved idempotent response",
            idempotency_key=self.key.value,
            status_code=saved.status_code,
        )
        return response


class IdempotencyStore:
    def __init__(self, database: DatabaseSessionFactory) -> None:
        self._database = database

    async def try_begin(
        self, user_id: UUID, key: IdempotencyKey
    ) -> Union[AlreadyCompleted, Started]:
        """
        Claim ``key`` for ``user_id`` or fetch the response saved under it.

        Raises:
            IdempotencyInProgressError: another request holds the key and has
                not saved its response yet
        """
        session = self._database.create_session()
        try:
            now = datetime.now(timezone.utc)
            stmt = insert_or_do_nothing(
                session, IdempotencyModel, ["user_id", "idempotency_key"]
            ).values(
                id=uuid4(),
                user_id=user_id,
                idempotency_key=key.value,
                created_at=now,
                updated_at=now,
            )
            result = await session.execute(stmt)
            if result.rowcount > 0:
                return Started(session, user_id, key)

            saved = await self._get_saved_response(session, user_id, key)
            await session.rollback()
        except BaseException:
            await session.rollback()
            await session.close()
            raise
        await session.close()

        if saved is None:
            logger.warning("Idempotency key is still in progress", idempotency_key=key.value)
            raise IdempotencyInProgressError(details={"idempotency_key": key.value})

        logger.info("Replaying saved response", idempotency_key=key.value)
        return AlreadyCompleted(saved)

    async def get_saved_response(
        self, user_id: UUID, key: IdempotencyKey
    ) -> Optional[SavedHttpResponse]:
        async with self._database.get_session() as session:
            return await self._get_saved_response(session, user_id, key)

    async def purge_expired(self, ttl: timedelta) -> int:
        """Delete records older than ``ttl``. Returns the number of rows removed."""
        cutoff = datetime.now(timezone.utc) - ttl
        async with self._database.get_session() as session:
            result = await session.execute(
                delete(IdempotencyModel).where(IdempotencyModel.created_at < cutoff)
            )
            await session.commit()
        count = result.rowcount or 0
        logger.info("Purged expired idempotency records", count=count, cutoff=cutoff.isoformat())
        return count

    @staticmethod
    async def _get_saved_response(
        session: AsyncSession, user_id: UUID, key: IdempotencyKey
    ) -> Optional[SavedHttpResponse]:
        row = (
            await session.execute(
                select(IdempotencyModel).where(
                    IdempotencyModel.user_id == user_id,
                    IdempotencyModel.idempotency_key == key.value,
                )
            )
        ).scalar_one_or_none()
        if row is None or not row.is_completed:
            return None
        return SavedHttpResponse(
            status_code=row.response_status_code,
            headers=tuple((name, value) for name, value in row.response_headers or []),
            body=bytes(row.response_body or b""),
        )
