"""Create purchases and issued_tickets tables

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "7c1e2a9d4b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "purchases",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("buyer_name", sa.String(length=255), nullable=False),
        sa.Column("buyer_email", sa.String(length=255), nullable=False),
        sa.Column("inventory", sa.JSON(), nullable=False),
        sa.Column("total_amount", sa.BigInteger(), nullable=False),
        sa.Column("paystack_reference", sa.String(length=128), nullable=False),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_purchases_paystack_reference", "purchases", ["paystack_reference"], unique=True
    )

    op.create_table(
        "issued_tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("paystack_reference", sa.String(length=128), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=True),
        sa.Column("ticket_type", sa.String(length=64), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=False),
        sa.Column("sequence_index", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_issued_tickets_paystack_reference", "issued_tickets", ["paystack_reference"]
    )
    op.create_index("ix_issued_tickets_code", "issued_tickets", ["code"], unique=True)


def downgrade() -> None:
    op.drop_index("ix_issued_tickets_code", table_name="issued_tickets")
    op.drop_index("ix_issued_tickets_paystack_reference", table_name="issued_tickets")
    op.drop_table("issued_tickets")
    op.drop_index("ix_purchases_paystack_reference", table_name="purchases")
    op.drop_table("purchases")
