"""categories and transactions

Revision ID: 202505010900
Revises:
Create Date: 2025-05-01 09:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202505010900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("sifo_code", sa.String(length=20)),
        sa.Column("description", sa.Text()),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_categories_parent_id", "categories", ["parent_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("sender", sa.String(length=200)),
        sa.Column("receiver", sa.String(length=200)),
        sa.Column("name", sa.String(length=200)),
        sa.Column("title", sa.Text()),
        sa.Column("currency", sa.String(length=3)),
        sa.Column("payment_type", sa.String(length=50)),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.id", ondelete="SET NULL"),
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_transactions_booking_date", "transactions", ["booking_date"])
    op.create_index(
        "ix_transactions_category_date",
        "transactions",
        ["category_id", "booking_date"],
    )


def downgrade():
    op.drop_index("ix_transactions_category_date", table_name="transactions")
    op.drop_index("ix_transactions_booking_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_categories_parent_id", table_name="categories")
    op.drop_table("categories")
