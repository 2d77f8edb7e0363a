# src/newsletter_service/shared/error_codes.py
# Central mapping between error codes, HTTP status and default messages.
# Keep keys stable: clients and tests rely on these.
ERROR_CODES = {
    # ─── Validation & Requests ──────────────────────────────────────────────
    "validation_error": {
        "http": 400,
        "message": "Validation failed for one or more fields."
    },
    "invalid_idempotency_key": {
        "http": 400,
        "message": "The idempotency key is invalid."
    },
    "invalid_subscriber": {
        "http": 400,
        "message": "The subscriber details are invalid."
    },

    # ─── Authentication ────────────────────────────────────────────────────
    "unauthorized": {
        "http": 401,
        "message": "Unauthorized. Please provide valid credentials."
    },
    "invalid_credentials": {
        "http": 401,
        "message": "Authentication failed"
    },
    "unknown_subscription_token": {
        "http": 401,
        "message": "The subscription token is not recognised."
    },

    # ─── Lookups ───────────────────────────────────────────────────────────
    "not_found": {
        "http": 404,
        "message": "Resource not found."
    },

    # ─── Idempotency ───────────────────────────────────────────────────────
    "idempotency_in_progress": {
        "http": 409,
        "message": "A request with this idempotency key is still being processed. Retry later."
    },

    # ─── Delivery ──────────────────────────────────────────────────────────
    "transient_delivery_error": {
        "http": 502,
        "message": "The email provider could not accept the message."
    },

    # ─── Internal ──────────────────────────────────────────────────────────
    "internal_error": {
        "http": 500,
        "message": "An unexpected error occurred. Please try again later."
    },
}
