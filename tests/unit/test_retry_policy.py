from newsletter_service.delivery.domain import RetryPolicy


def test_backoff_grows_exponentially_and_is_capped():
    policy = RetryPolicy(max_retries=5, backoff_base_seconds=2.0, backoff_max_seconds=10.0)
    assert [policy.backoff_seconds(n) for n in range(1, 6)] == [2.0, 4.0, 8.0, 10.0, 10.0]


def test_first_attempt_uses_base_delay():
    assert RetryPolicy(backoff_base_seconds=3.0).backoff_seconds(0) == 3.0


def test_ceiling_allows_max_retries_plus_one_attempts():
    policy = RetryPolicy(max_retries=2)
    assert not policy.is_exhausted(0)
    assert not policy.is_exhausted(1)
    assert policy.is_exhausted(2)


def test_from_settings(settings):
    policy = RetryPolicy.from_settings(settings)
    assert policy.max_retries == settings.DELIVERY_MAX_RETRIES
    assert policy.backoff_max_seconds == settings.DELIVERY_BACKOFF_MAX_SECONDS
