"""Initial inventory tables: products, availabilities, time_slots, pax_types, pax_availabilities

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "availabilities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "date", name="uq_availabilities_product_date"),
    )
    op.create_index("ix_availabilities_product_id", "availabilities", ["product_id"])
    op.create_index("ix_availabilities_date", "availabilities", ["date"])

    op.create_table(
        "time_slots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("availability_id", sa.Integer(), sa.ForeignKey("availabilities.id"), nullable=False),
        sa.Column("provider_slot_id", sa.String(128), nullable=False),
        sa.Column("start_time", sa.String(16), nullable=False),
        sa.Column("end_time", sa.String(16), nullable=True),
        sa.Column("variant_id", sa.Integer(), nullable=True),
        sa.Column("currency_code", sa.String(8), nullable=True),
        sa.Column("remaining", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_time_slots_availability_id", "time_slots", ["availability_id"])
    # One row per provider slot system-wide; re-parented across dates, never duplicated
    op.create_index("ix_time_slots_provider_slot_id", "time_slots", ["provider_slot_id"], unique=True)

    op.create_table(
        "pax_types",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("name", sa.String(256), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pax_types_type", "pax_types", ["type"], unique=True)

    op.create_table(
        "pax_availabilities",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("time_slot_id", sa.Integer(), sa.ForeignKey("time_slots.id"), nullable=False),
        sa.Column("pax_type_id", sa.Integer(), sa.ForeignKey("pax_types.id"), nullable=False),
        sa.Column("price", sa.JSON(), nullable=False),
        sa.Column("min", sa.Integer(), nullable=True),
        sa.Column("max", sa.Integer(), nullable=True),
        sa.Column("remaining", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_pax_availabilities_time_slot_id", "pax_availabilities", ["time_slot_id"])
    op.create_index("ix_pax_availabilities_pax_type_id", "pax_availabilities", ["pax_type_id"])


def downgrade() -> None:
    op.drop_index("ix_pax_availabilities_pax_type_id", table_name="pax_availabilities")
    op.drop_index("ix_pax_availabilities_time_slot_id", table_name="pax_availabilities")
    op.drop_table("pax_availabilities")
    op.drop_index("ix_pax_types_type", table_name="pax_types")
    op.drop_table("pax_types")
    op.drop_index("ix_time_slots_provider_slot_id", table_name="time_slots")
    op.drop_index("ix_time_slots_availability_id", table_name="time_slots")
    op.drop_table("time_slots")
    op.drop_index("ix_availabilities_date", table_name="availabilities")
    op.drop_index("ix_availabilities_product_id", table_name="availabilities")
    op.drop_table("availabilities")
    op.drop_table("products")
