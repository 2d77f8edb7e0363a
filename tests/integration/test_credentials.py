import time

import pytest

from newsletter_service.identity.application.auth_service import Credentials
from newsletter_service.identity.infrastructure.password_service import PasswordService
from newsletter_service.identity.infrastructure.user_repository import UserRepository
from newsletter_service.shared.exceptions import InvalidCredentialsError, ValidationError


async def test_valid_credentials_resolve_to_the_user(services, test_user):
    user_id = await services.auth.validate_credentials(Credentials(test_user.username, test_user.password))
    assert user_id == test_user.user_id


async def test_wrong_password_is_rejected(services, test_user):
    with pytest.raises(InvalidCredentialsError) as exc:
        await services.auth.validate_credentials(Credentials(test_user.username, "wrong password!!"))
    assert exc.value.status_code == 401


async def test_unknown_username_is_verified_against_the_dummy_hash(services, monkeypatch):
    seen = []
    original = services.passwords.verify_password

    def spy(password_hash, candidate):
        seen.append(password_hash)
        return original(password_hash, candidate)

    monkeypatch.setattr(services.passwords, "verify_password", spy)

    with pytest.raises(InvalidCredentialsError):
        await services.auth.validate_credentials(Credentials("nobody", "whatever password"))

    assert seen == [services.passwords.dummy_hash]


async def test_unknown_username_takes_about_as_long_as_a_wrong_password(services, test_user):
    # Realistic argon2 cost so hashing dominates the measurement
    services.auth.passwords = PasswordService(time_cost=2, memory_cost=15000, parallelism=1)
    real_hash = services.auth.passwords.hash_password(test_user.password)
    async with services.database.get_session() as session:
        await UserRepository(session).update_password_hash(test_user.user_id, real_hash)
        await session.commit()

    async def elapsed(username: str) -> float:
        start = time.perf_counter()
        with pytest.raises(InvalidCredentialsError):
            await services.auth.validate_credentials(Credentials(username, "wrong password!!"))
        return time.perf_counter() - start

    await elapsed("nobody")  # warm-up
    unknown = min([await elapsed("nobody") for _ in range(3)])
    known = min([await elapsed(test_user.username) for _ in range(3)])

    assert unknown > known * 0.25
    assert known > unknown * 0.25


async def test_change_password(services, test_user):
    await services.auth.change_password(
        test_user.user_id, test_user.password, "a brand new password", "a brand new password"
    )
    assert await services.auth.validate_credentials(
        Credentials(test_user.username, "a brand new password")
    ) == test_user.user_id


@pytest.mark.parametrize(
    "new, check",
    [
        ("a brand new password", "a different password"),
        ("short", "short"),
        ("x" * 129, "x" * 129),
    ],
)
async def test_rejected_new_passwords(services, test_user, new, check):
    with pytest.raises(ValidationError):
        await services.auth.change_password(test_user.user_id, test_user.password, new, check)


async def test_change_password_requires_the_current_password(services, test_user):
    with pytest.raises(InvalidCredentialsError):
        await services.auth.change_password(
            test_user.user_id, "not my password!", "a brand new password", "a brand new password"
        )


async def test_duplicate_username_is_rejected(services, test_user):
    with pytest.raises(ValidationError):
        await services.auth.create_user(test_user.username, "another long password")
