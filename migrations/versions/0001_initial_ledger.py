"""initial ledger schema

Revision ID: 0001
Revises:
Create Date: 2025-05-01 00:00:00
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Enum types are stored by member name, matching the models.
# Created once up front because two tables share some of them.
account_type = postgresql.ENUM(
    "ASSET", "LIABILITY", "EQUITY", "INCOME", "EXPENSE",
    name="account_type_enum", create_type=False,
)
transaction_source = postgresql.ENUM(
    "ACCRUAL", "PAYMENT", "REVERSAL", "MANUAL", "EXPENSE_PAYMENT",
    name="transaction_source_enum", create_type=False,
)
transaction_status = postgresql.ENUM(
    "POSTED", "VOID",
    name="transaction_status_enum", create_type=False,
)
charge_component = postgresql.ENUM(
    "RENT", "ADMIN_FEE", "DEPOSIT",
    name="charge_component_enum", create_type=False,
)
allocation_type = postgresql.ENUM(
    "LEASE_START", "MONTHLY_RENT", "PAYMENT_ALLOCATION",
    "ADVANCE_PAYMENT", "ADVANCE_APPLICATION", "PREPAYMENT",
    name="allocation_type_enum", create_type=False,
)
ENUMS = (
    account_type,
    transaction_source,
    transaction_status,
    charge_component,
    allocation_type,
)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "ledger_accounts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(64), nullable=False, unique=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("account_type", account_type, nullable=False),
        sa.Column("parent_code", sa.String(64), nullable=True),
        sa.Column("owner_id", sa.String(64), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_ledger_accounts_parent_code", "ledger_accounts", ["parent_code"]
    )
    op.create_index(
        "ix_ledger_accounts_owner_id", "ledger_accounts", ["owner_id"]
    )

    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("external_id", sa.Uuid(), nullable=False, unique=True),
        sa.Column("idempotency_key", sa.String(150), nullable=True, unique=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("reference", sa.String(100), nullable=True),
        sa.Column("source", transaction_source, nullable=False),
        sa.Column("source_id", sa.String(64), nullable=True),
        sa.Column("status", transaction_status, nullable=False),
        sa.Column("total_debit", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_credit", sa.Numeric(14, 2), nullable=False),
        sa.Column("student_id", sa.String(64), nullable=True),
        sa.Column("period", sa.String(7), nullable=True),
        sa.Column("month_settled", sa.String(7), nullable=True),
        sa.Column("payment_type", charge_component, nullable=True),
        sa.Column("allocation_type", allocation_type, nullable=True),
        sa.Column(
            "original_transaction_id",
            sa.Integer(),
            sa.ForeignKey("ledger_transactions.id"),
            nullable=True,
            unique=True,
        ),
        sa.Column("metadata", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_ledger_transactions_date", "ledger_transactions", ["date"]
    )
    op.create_index(
        "ix_ledger_transactions_student_period",
        "ledger_transactions",
        ["student_id", "period"],
    )

    op.create_table(
        "ledger_entry_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.Integer(),
            sa.ForeignKey("ledger_transactions.id"),
            nullable=False,
        ),
        sa.Column(
            "account_code",
            sa.String(64),
            sa.ForeignKey("ledger_accounts.code"),
            nullable=False,
        ),
        sa.Column("account_name", sa.String(150), nullable=False),
        sa.Column("account_type", account_type, nullable=False),
        sa.Column("debit", sa.Numeric(14, 2), nullable=False),
        sa.Column("credit", sa.Numeric(14, 2), nullable=False),
        sa.Column("description", sa.String(255), nullable=False),
        sa.Column("component", charge_component, nullable=True),
    )
    op.create_index(
        "ix_ledger_entry_lines_transaction_id",
        "ledger_entry_lines",
        ["transaction_id"],
    )
    op.create_index(
        "ix_ledger_entry_lines_account_code",
        "ledger_entry_lines",
        ["account_code"],
    )

    op.create_table(
        "leases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("tenant_name", sa.String(150), nullable=True),
        sa.Column("residence_id", sa.String(64), nullable=False),
        sa.Column("room", sa.String(50), nullable=True),
        sa.Column("room_rate", sa.Numeric(14, 2), nullable=False),
        sa.Column("admin_fee", sa.Numeric(14, 2), nullable=False),
        sa.Column("deposit_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("lease_start", sa.Date(), nullable=False),
        sa.Column("lease_end", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_leases_tenant_id", "leases", ["tenant_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("subject_id", sa.String(64), nullable=True),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_audit_log_subject_id", "audit_log", ["subject_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_log_subject_id", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_index("ix_leases_tenant_id", table_name="leases")
    op.drop_table("leases")
    op.drop_index("ix_ledger_entry_lines_account_code", table_name="ledger_entry_lines")
    op.drop_index("ix_ledger_entry_lines_transaction_id", table_name="ledger_entry_lines")
    op.drop_table("ledger_entry_lines")
    op.drop_index("ix_ledger_transactions_student_period", table_name="ledger_transactions")
    op.drop_index("ix_ledger_transactions_date", table_name="ledger_transactions")
    op.drop_table("ledger_transactions")
    op.drop_index("ix_ledger_accounts_owner_id", table_name="ledger_accounts")
    op.drop_index("ix_ledger_accounts_parent_code", table_name="ledger_accounts")
    op.drop_table("ledger_accounts")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
