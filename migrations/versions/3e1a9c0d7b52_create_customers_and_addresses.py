"""create customers and addresses

Revision ID: 3e1a9c0d7b52
Revises:
Create Date: 2026-10-17

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "3e1a9c0d7b52"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    bind = op.get_bind()
    insp = inspect(bind)
    existing_tables = set(insp.get_table_names())

    def _has_index(table: str, name: str) -> bool:
        try:
            return any(ix.get("name") == name for ix in insp.get_indexes(table))
        except Exception:
            return False

    if "customers" not in existing_tables:
        op.create_table(
            "customers",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
            sa.Column("firstName", sa.Text(), nullable=False),
            sa.Column("lastName", sa.Text(), nullable=False),
            sa.Column("email", sa.Text(), nullable=True),
            sa.Column("phone", sa.Text(), nullable=False),
            sa.Column(
                "createdAt",
                sa.DateTime(timezone=False),
                nullable=False,
                server_default=sa.func.current_timestamp(),
            ),
            sa.UniqueConstraint("email", name="uq_customers_email"),
            sa.UniqueConstraint("phone", name="uq_customers_phone"),
        )
        existing_tables.add("customers")

    if "addresses" not in existing_tables:
        op.create_table(
            "addresses",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
            sa.Column("customerId", sa.Integer(), nullable=False),
            sa.Column("addressLine1", sa.Text(), nullable=False),
            sa.Column("addressLine2", sa.Text(), nullable=True),
            sa.Column("city", sa.Text(), nullable=False),
            sa.Column("state", sa.Text(), nullable=False),
            sa.Column("pinCode", sa.Text(), nullable=False),
            sa.Column("isPrimary", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.ForeignKeyConstraint(["customerId"], ["customers.id"], ondelete="CASCADE"),
        )
        existing_tables.add("addresses")

    if "addresses" in existing_tables:
        insp = inspect(op.get_bind())
        if not _has_index("addresses", "idx_addresses_customer_id"):
            op.create_index("idx_addresses_customer_id", "addresses", ["customerId"])


def downgrade() -> None:
    op.drop_index("idx_addresses_customer_id", table_name="addresses")
    op.drop_table("addresses")
    op.drop_table("customers")
