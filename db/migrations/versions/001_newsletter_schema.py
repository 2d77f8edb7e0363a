"""Newsletter schema: admin users, subscriptions, issues, delivery queue, idempotency.

- users: admin accounts (argon2 password hashes)
- subscriptions + subscription_tokens: double opt-in
- newsletter_issues: published issues (immutable)
- issue_delivery_queue: one row per pending (issue, subscriber) send
- idempotency: saved responses keyed by (user_id, idempotency_key)
"""

from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = "001_newsletter_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("subscribed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_subscriptions_email"),
    )
    op.create_index("ix_subscriptions_status", "subscriptions", ["status"])

    op.create_table(
        "subscription_tokens",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("subscription_token", sa.String(25), nullable=False),
        sa.Column(
            "subscriber_id",
            sa.Uuid(),
            sa.ForeignKey("subscriptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
        sa.UniqueConstraint("subscription_token", name="uq_subscription_tokens_token"),
    )
    op.create_index("ix_subscription_tokens_subscriber_id", "subscription_tokens", ["subscriber_id"])

    op.create_table(
        "newsletter_issues",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("text_content", sa.Text(), nullable=False),
        sa.Column("html_content", sa.Text(), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "issue_delivery_queue",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "newsletter_issue_id",
            sa.Uuid(),
            sa.ForeignKey("newsletter_issues.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("subscriber_email", sa.String(320), nullable=False),
        sa.Column("n_retries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("execute_after", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("newsletter_issue_id", "subscriber_email", name="uq_delivery_issue_email"),
    )
    op.create_index("ix_delivery_execute_after", "issue_delivery_queue", ["execute_after"])

    op.create_table(
        "idempotency",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("idempotency_key", sa.String(255), nullable=False),
        sa.Column("response_status_code", sa.Integer(), nullable=True),
        sa.Column("response_headers", sa.JSON(), nullable=True),
        sa.Column("response_body", sa.LargeBinary(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "idempotency_key", name="uq_idempotency_user_key"),
    )
    op.create_index("ix_idempotency_created_at", "idempotency", ["created_at"])


def downgrade():
    op.drop_index("ix_idempotency_created_at", table_name="idempotency")
    op.drop_table("idempotency")
    op.drop_index("ix_delivery_execute_after", table_name="issue_delivery_queue")
    op.drop_table("issue_delivery_queue")
    op.drop_table("newsletter_issues")
    op.drop_index("ix_subscription_tokens_subscriber_id", table_name="subscription_tokens")
    op.drop_table("subscription_tokens")
    op.drop_index("ix_subscriptions_status", table_name="subscriptions")
    op.drop_table("subscriptions")
    op.drop_table("users")
