"""Initial schema: deals, portfolio_reviews

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00

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
        "deals",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("loan_number", sa.String(), nullable=False),
        sa.Column("amount", sa.String(), nullable=True),
        sa.Column("rate_type", sa.String(), nullable=True),
        sa.Column("term", sa.String(), nullable=True),
        sa.Column("monthly_return", sa.String(), nullable=True),
        sa.Column("ltv", sa.String(), nullable=True),
        sa.Column("address", sa.String(), nullable=False),
        sa.Column("appraisal", sa.String(), nullable=True),
        sa.Column("rent", sa.String(), nullable=True),
        sa.Column("sqft", sa.String(), nullable=True),
        sa.Column("beds_baths", sa.String(), nullable=True),
        sa.Column("market_location", sa.String(), nullable=True),
        sa.Column("market_overview", sa.Text(), nullable=True),
        sa.Column("deal_information", sa.Text(), nullable=True),
        sa.Column("hero_image", sa.Text(), nullable=True),
        sa.Column("int1_image", sa.Text(), nullable=True),
        sa.Column("int2_image", sa.Text(), nullable=True),
        sa.Column("int3_image", sa.Text(), nullable=True),
        sa.Column("int4_image", sa.Text(), nullable=True),
        sa.Column("attached_pdf", sa.Text(), nullable=True),
        sa.Column("lending_entity", sa.String(), nullable=True),
        sa.Column("client_name", sa.String(), nullable=True),
        sa.Column("client_address", sa.String(), nullable=True),
        sa.Column("borrower_name", sa.String(), nullable=True),
        sa.Column("borrower_address", sa.String(), nullable=True),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("loan_number"),
    )
    op.create_index("ix_deals_updated_at", "deals", ["updated_at"])

    op.create_table(
        "portfolio_reviews",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("investor_name", sa.String(), nullable=False),
        sa.Column("loans_data", sa.Text(), nullable=True),
        sa.Column("current_investment_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("lifetime_investment_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("lifetime_interest_paid", sa.Float(), nullable=False, server_default="0"),
        sa.Column("archived", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_portfolio_reviews_updated_at", "portfolio_reviews", ["updated_at"])


def downgrade() -> None:
    op.drop_index("ix_portfolio_reviews_updated_at", table_name="portfolio_reviews")
    op.drop_table("portfolio_reviews")
    op.drop_index("ix_deals_updated_at", table_name="deals")
    op.drop_table("deals")
