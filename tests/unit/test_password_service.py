import pytest

from newsletter_service.identity.infrastructure.password_service import PasswordService
from newsletter_service.shared.exceptions import UnexpectedError


@pytest.fixture
def passwords():
    return PasswordService(time_cost=1, memory_cost=1024, parallelism=1)


def test_hash_and_verify(passwords):
    hashed = passwords.hash_password("a long enough password")
    assert hashed.startswith("$argon2id$")
    assert passwords.verify_password(hashed, "a long enough password")
    assert not passwords.verify_password(hashed, "something else")


def test_dummy_hash_never_matches_a_guess(passwords):
    assert not passwords.verify_password(passwords.dummy_hash, "password")


def test_corrupt_stored_hash_is_unexpected(passwords):
    with pytest.raises(UnexpectedError):
        passwords.verify_password("not-a-hash", "password")


async def test_async_variants_run_in_threadpool(passwords):
    hashed = await passwords.hash_password_async("a long enough password")
    assert await passwords.verify_password_async(hashed, "a long enough password")
