from datetime import timedelta

from newsletter_service.shared.config import Settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.IDEMPOTENCY_KEY_MAX_LENGTH == 50
    assert s.DELIVERY_MAX_RETRIES == 5
    assert s.email_timeout == timedelta(seconds=10)
    assert s.idempotency_ttl == timedelta(hours=48)


def test_aliases_and_environment_helpers():
    s = Settings(_env_file=None, ENV="production", APP_NAME="news")
    assert s.is_prod
    assert not s.is_dev
    assert s.PROJECT_NAME == "news"


def test_secrets_are_not_rendered():
    s = Settings(_env_file=None, JWT_SECRET="top-secret-value")
    assert "top-secret-value" not in repr(s)
    assert s.get_jwt_secret() == "top-secret-value"
