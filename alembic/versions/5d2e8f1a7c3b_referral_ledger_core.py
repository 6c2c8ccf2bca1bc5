"""referral_ledger_core

Revision ID: 5d2e8f1a7c3b
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "5d2e8f1a7c3b"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

DEFAULT_TERMS_TEXT = (
    "Refer a friend and get $10 credit when they make their first purchase of $50 or more. "
    "Your friend also gets 10% off their first order!"
)


def upgrade() -> None:
    op.create_table(
        "referral_codes",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("code", sa.String(16), nullable=False),
        sa.Column("clicks", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("conversions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_revenue", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("total_rewards", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("user_id", name="uq_referral_codes_user_id"),
        sa.UniqueConstraint("code", name="uq_referral_codes_code"),
    )
    op.create_index("idx_referral_codes_active", "referral_codes", ["active"])
    op.create_index("idx_referral_codes_created_at", "referral_codes", ["created_at"])

    op.create_table(
        "referral_clicks",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("referral_code_id", sa.BigInteger(), nullable=False),
        sa.Column("referral_code", sa.String(16), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("referrer_url", sa.Text(), nullable=True),
        sa.Column("landing_page", sa.Text(), nullable=True),
        sa.Column("converted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("conversion_order_id", sa.String(64), nullable=True),
        sa.Column("clicked_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["referral_code_id"], ["referral_codes.id"]),
    )
    op.create_index("idx_referral_clicks_code_id", "referral_clicks", ["referral_code_id"])
    op.create_index("idx_referral_clicks_code", "referral_clicks", ["referral_code"])
    op.create_index(
        "idx_referral_clicks_unconverted",
        "referral_clicks",
        ["referral_code_id", "converted", "clicked_at"],
    )

    op.create_table(
        "referral_conversions",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("referral_code_id", sa.BigInteger(), nullable=False),
        sa.Column("referral_code", sa.String(16), nullable=False),
        sa.Column("referrer_user_id", sa.String(64), nullable=False),
        sa.Column("referred_user_id", sa.String(64), nullable=True),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("order_total", sa.Numeric(12, 2), nullable=False),
        sa.Column("referrer_reward", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("referred_discount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("referrer_reward_type", sa.String(16), nullable=False),
        sa.Column("referred_discount_type", sa.String(16), nullable=False),
        sa.Column("reward_status", sa.String(16), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "reward_status IN ('pending','approved','paid')",
            name="ck_referral_conversions_reward_status",
        ),
        sa.CheckConstraint("order_total >= 0", name="ck_referral_conversions_order_total"),
        sa.ForeignKeyConstraint(["referral_code_id"], ["referral_codes.id"]),
        sa.UniqueConstraint("order_id", name="uq_referral_conversions_order_id"),
    )
    op.create_index("idx_referral_conversions_code_id", "referral_conversions", ["referral_code_id"])
    op.create_index(
        "idx_referral_conversions_referrer",
        "referral_conversions",
        ["referrer_user_id", "converted_at"],
    )
    op.create_index(
        "idx_referral_conversions_status_converted",
        "referral_conversions",
        ["reward_status", "converted_at"],
    )

    op.create_table(
        "referral_settings",
        sa.Column("id", sa.String(16), primary_key=True),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("reward_type", sa.String(16), nullable=False),
        sa.Column("reward_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("referred_discount_type", sa.String(16), nullable=False),
        sa.Column("referred_discount_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("minimum_order_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("reward_delay_days", sa.Integer(), nullable=False),
        sa.Column("terms_text", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "reward_type IN ('fixed','percentage','credit')",
            name="ck_referral_settings_reward_type",
        ),
        sa.CheckConstraint(
            "referred_discount_type IN ('fixed','percentage')",
            name="ck_referral_settings_referred_discount_type",
        ),
        sa.CheckConstraint("reward_delay_days >= 0", name="ck_referral_settings_reward_delay_days"),
    )

    op.create_table(
        "social_shares",
        sa.Column("id", sa.BigInteger(), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("share_type", sa.String(16), nullable=False),
        sa.Column("share_platform", sa.String(16), nullable=False),
        sa.Column("shared_url", sa.Text(), nullable=False),
        sa.Column("product_id", sa.String(64), nullable=True),
        sa.Column("referral_code", sa.String(16), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("shared_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "share_type IN ('product','referral','order','general')",
            name="ck_social_shares_share_type",
        ),
        sa.CheckConstraint(
            "share_platform IN ('facebook','twitter','linkedin','whatsapp','email','copy')",
            name="ck_social_shares_share_platform",
        ),
    )
    op.create_index("idx_social_shares_shared_at", "social_shares", ["shared_at"])
    op.create_index("idx_social_shares_user_id", "social_shares", ["user_id"])
    op.create_index("idx_social_shares_referral_code", "social_shares", ["referral_code"])

    settings_table = sa.table(
        "referral_settings",
        sa.column("id", sa.String),
        sa.column("enabled", sa.Boolean),
        sa.column("reward_type", sa.String),
        sa.column("reward_amount", sa.Numeric),
        sa.column("referred_discount_type", sa.String),
        sa.column("referred_discount_amount", sa.Numeric),
        sa.column("minimum_order_value", sa.Numeric),
        sa.column("reward_delay_days", sa.Integer),
        sa.column("terms_text", sa.Text),
    )
    op.bulk_insert(
        settings_table,
        [
            {
                "id": "default",
                "enabled": True,
                "reward_type": "credit",
                "reward_amount": 10,
                "referred_discount_type": "percentage",
                "referred_discount_amount": 10,
                "minimum_order_value": 50,
                "reward_delay_days": 14,
                "terms_text": DEFAULT_TERMS_TEXT,
            }
        ],
    )


def downgrade() -> None:
    op.drop_index("idx_social_shares_referral_code", table_name="social_shares")
    op.drop_index("idx_social_shares_user_id", table_name="social_shares")
    op.drop_index("idx_social_shares_shared_at", table_name="social_shares")
    op.drop_table("social_shares")
    op.drop_table("referral_settings")
    op.drop_index("idx_referral_conversions_status_converted", table_name="referral_conversions")
    op.drop_index("idx_referral_conversions_referrer", table_name="referral_conversions")
    op.drop_index("idx_referral_conversions_code_id", table_name="referral_conversions")
    op.drop_table("referral_conversions")
    op.drop_index("idx_referral_clicks_unconverted", table_name="referral_clicks")
    op.drop_index("idx_referral_clicks_code", table_name="referral_clicks")
    op.drop_index("idx_referral_clicks_code_id", table_name="referral_clicks")
    op.drop_table("referral_clicks")
    op.drop_index("idx_referral_codes_created_at", table_name="referral_codes")
    op.drop_index("idx_referral_codes_active", table_name="referral_codes")
    op.drop_table("referral_codes")
