"""initial delta load schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00
"""
from alembic import op
import sqlalchemy as sa


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "InternetSales_Staging",
        sa.Column("SalesOrderNumber", sa.String(20)),
        sa.Column("CustomerKey", sa.Integer()),
        sa.Column("ProductKey", sa.Integer()),
        sa.Column("OrderDateKey", sa.Integer()),
        sa.Column("SalesAmount", sa.Numeric(18, 2)),
        sa.Column("LoadDate", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("idx_staging_order_date_key", "InternetSales_Staging", ["OrderDateKey"])

    tracking = op.create_table(
        "InternetSales_LoadTracking",
        sa.Column("LastOrderDateKey", sa.Integer(), nullable=False),
    )

    lease = op.create_table(
        "InternetSales_LoadLease",
        sa.Column("LeaseName", sa.String(50), primary_key=True),
        sa.Column("Holder", sa.String(36), nullable=True),
        sa.Column("AcquiredAt", sa.DateTime(), nullable=True),
        sa.Column("ExpiresAt", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "InternetSales_LoadLog",
        sa.Column("LogID", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("LoadDate", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("Status", sa.String(50), nullable=False),
        sa.Column("Message", sa.String(4000), nullable=True),
        sa.Column("RunID", sa.String(36), nullable=True),
        sa.CheckConstraint(
            "\"Status\" IN ('Started', 'Succeeded', 'Failed')",
            name="ck_load_log_status"
        ),
    )
    op.create_index("idx_load_log_run", "InternetSales_LoadLog", ["RunID", "Status"])
    op.create_index("idx_load_log_date", "InternetSales_LoadLog", ["LoadDate"])

    op.bulk_insert(tracking, [{"LastOrderDateKey": 0}])
    op.bulk_insert(lease, [{"LeaseName": "internet_sales", "Holder": None}])


def downgrade():
    op.drop_index("idx_load_log_date", table_name="InternetSales_LoadLog")
    op.drop_index("idx_load_log_run", table_name="InternetSales_LoadLog")
    op.drop_table("InternetSales_LoadLog")
    op.drop_table("InternetSales_LoadLease")
    op.drop_table("InternetSales_LoadTracking")
    op.drop_index("idx_staging_order_date_key", table_name="InternetSales_Staging")
    op.drop_table("InternetSales_Staging")
