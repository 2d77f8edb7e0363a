"""
Password Service - Hashing and Verification
External adapter for password operations
"""
from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from starlette.concurrency import run_in_threadpool

from newsletter_service.shared.config import Settings
from newsletter_service.shared.exceptions import UnexpectedError


class PasswordService:
    """
    Password hashing service using Argon2id.

    Hashing and verification are CPU-bound; the ``*_async`` variants run them
    in the thread pool so the event loop keeps serving requests.
    """

    def __init__(
        self,
        time_cost: int = 2,
        memory_cost: int = 15000,
        parallelism: int = 1,
    ) -> None:
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )
        # Unknown usernames are verified against this hash
        self.dummy_hash = self._hasher.hash("gZiV6Mx9xTc3kH2qcrOeB3ZW")

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordService":
        return cls(
            time_cost=settings.PASSWORD_TIME_COST,
            memory_cost=settings.PASSWORD_MEMORY_COST,
            parallelism=settings.PASSWORD_PARALLELISM,
        )

    def hash_password(self, plain_password: str) -> str:
        return self._hasher.hash(plain_password)

    def verify_password(self, password_hash: str, candidate: str) -> bool:
        """
        Returns:
            True if ``candidate`` matches ``password_hash``

        Raises:
            UnexpectedError: the stored hash is not a valid argon2 hash
        """
        try:
            return self._hasher.verify(password_hash, candidate)
        except VerifyMismatchError:
            return False
        except (InvalidHashError, VerificationError) as e:
            raise UnexpectedError("Failed to parse the stored password hash.") from e

    async def hash_password_async(self, plain_password: str) -> str:
        return await run_in_threadpool(self.hash_password, plain_password)

    async def verify_password_async(self, password_hash: str, candidate: str) -> bool:
        return await run_in_threadpool(self.verify_password, password_hash, candidate)
