"""Create linked_accounts, categories, sync_logs and transactions.

Revision ID: 5e1a7c3d9b20
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "5e1a7c3d9b20"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "linked_accounts",
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("reference", sa.String(length=50), nullable=False),
        sa.Column("display_name", sa.String(length=50), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("provider_source", sa.String(length=30), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_linked_accounts_owner_id", "linked_accounts", ["owner_id"])
    op.create_index("ix_linked_accounts_provider_source", "linked_accounts", ["provider_source"])
    # At most one active link per (owner, reference, provider).
    op.create_index(
        "uq_linked_accounts_active_reference",
        "linked_accounts",
        ["owner_id", "reference", "provider_source"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "categories",
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("normalized_name", sa.String(length=100), nullable=False),
        sa.Column("icon_name", sa.String(length=50), nullable=False),
        sa.Column("direction", sa.String(length=10), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "owner_id", "normalized_name", name="uq_categories_owner_normalized_name"
        ),
    )
    op.create_index("ix_categories_owner_id", "categories", ["owner_id"])
    # System-wide rows have a NULL owner; NULLs never collide in the constraint above.
    op.create_index(
        "uq_categories_system_normalized_name",
        "categories",
        ["normalized_name"],
        unique=True,
        postgresql_where=sa.text("owner_id IS NULL"),
    )

    op.create_table(
        "sync_logs",
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("sync_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("transactions_synced", sa.Integer(), nullable=False),
        sa.Column("item_error_count", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["account_id"], ["linked_accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sync_logs_owner_id", "sync_logs", ["owner_id"])
    op.create_index("ix_sync_logs_account_id", "sync_logs", ["account_id"])

    op.create_table(
        "transactions",
        sa.Column("owner_id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=True),
        sa.Column("category_id", sa.Uuid(), nullable=True),
        sa.Column("sync_log_id", sa.Uuid(), nullable=True),
        sa.Column("amount", sa.BigInteger(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("direction", sa.String(length=10), nullable=False),
        sa.Column("txn_date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("merchant_name", sa.String(length=255), nullable=True),
        sa.Column("provider_source", sa.String(length=30), nullable=True),
        sa.Column("provider_external_id", sa.String(length=100), nullable=True),
        sa.Column("provider_reference", sa.String(length=50), nullable=True),
        sa.Column("provider_status", sa.String(length=20), nullable=True),
        sa.Column("provider_payer_info", sa.JSON(), nullable=True),
        sa.Column("provider_financial_transaction_id", sa.String(length=100), nullable=True),
        sa.Column("auto_categorized", sa.Boolean(), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("needs_review", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["account_id"], ["linked_accounts.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["sync_log_id"], ["sync_logs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "owner_id", "provider_external_id", name="uq_transactions_owner_external_id"
        ),
    )
    op.create_index("ix_transactions_owner_id", "transactions", ["owner_id"])
    op.create_index("ix_transactions_category_id", "transactions", ["category_id"])
    op.create_index("ix_transactions_txn_date", "transactions", ["txn_date"])
    op.create_index("ix_transactions_owner_id_txn_date", "transactions", ["owner_id", "txn_date"])


def downgrade() -> None:
    op.drop_index("ix_transactions_owner_id_txn_date", table_name="transactions")
    op.drop_index("ix_transactions_txn_date", table_name="transactions")
    op.drop_index("ix_transactions_category_id", table_name="transactions")
    op.drop_index("ix_transactions_owner_id", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("ix_sync_logs_account_id", table_name="sync_logs")
    op.drop_index("ix_sync_logs_owner_id", table_name="sync_logs")
    op.drop_table("sync_logs")

    op.drop_index("uq_categories_system_normalized_name", table_name="categories")
    op.drop_index("ix_categories_owner_id", table_name="categories")
    op.drop_table("categories")

    op.drop_index("uq_linked_accounts_active_reference", table_name="linked_accounts")
    op.drop_index("ix_linked_accounts_provider_source", table_name="linked_accounts")
    op.drop_index("ix_linked_accounts_owner_id", table_name="linked_accounts")
    op.drop_table("linked_accounts")
