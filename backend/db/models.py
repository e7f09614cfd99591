"""SQLAlchemy tables for deals and portfolio reviews. Alembic 001 holds the same schema."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text

from .session import Base


class DealRow(Base):
    __tablename__ = "deals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_number = Column("loan_number", String, unique=True, nullable=False)
    amount = Column(String, nullable=True)
    rate_type = Column("rate_type", String, nullable=True)
    term = Column(String, nullable=True)
    monthly_return = Column("monthly_return", String, nullable=True)
    ltv = Column(String, nullable=True)

    address = Column(String, nullable=False)
    appraisal = Column(String, nullable=True)
    rent = Column(String, nullable=True)
    sqft = Column(String, nullable=True)
    beds_baths = Column("beds_baths", String, nullable=True)
    market_location = Column("market_location", String, nullable=True)
    market_overview = Column("market_overview", Text, nullable=True)
    deal_information = Column("deal_information", Text, nullable=True)

    # data: URLs; can be several MB each
    hero_image = Column("hero_image", Text, nullable=True)
    int1_image = Column("int1_image", Text, nullable=True)
    int2_image = Column("int2_image", Text, nullable=True)
    int3_image = Column("int3_image", Text, nullable=True)
    int4_image = Column("int4_image", Text, nullable=True)
    # JSON array of {name, size, dataUrl}
    attached_pdfs = Column("attached_pdf", Text, nullable=True)

    lending_entity = Column("lending_entity", String, nullable=True)
    client_name = Column("client_name", String, nullable=True)
    client_address = Column("client_address", String, nullable=True)
    borrower_name = Column("borrower_name", String, nullable=True)
    borrower_address = Column("borrower_address", String, nullable=True)

    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column("created_at", DateTime, nullable=False)
    updated_at = Column("updated_at", DateTime, nullable=False, index=True)


class PortfolioRow(Base):
    __tablename__ = "portfolio_reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    investor_name = Column("investor_name", String, nullable=False)
    # JSON array of {address, balance, interestPaid, status}
    loans = Column("loans_data", Text, nullable=True)
    current_investment_total = Column("current_investment_total", Float, nullable=False, default=0.0)
    lifetime_investment_total = Column("lifetime_investment_total", Float, nullable=False, default=0.0)
    lifetime_interest_paid = Column("lifetime_interest_paid", Float, nullable=False, default=0.0)

    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column("created_at", DateTime, nullable=False)
    updated_at = Column("updated_at", DateTime, nullable=False, index=True)
