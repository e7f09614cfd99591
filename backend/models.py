"""Request/response models for deals and portfolio reviews, plus roster value coercion."""
from __future__ import annotations

import json
import math
import re
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from attachments import PdfAttachment, normalize_pdf_list
from errors import ValidationFailed


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python; either spelling accepted on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class LoanStatus(str, Enum):
    CURRENT = "Current"
    IN_DEFAULT = "In Default"
    LATE = "Late"
    PAID_OFF = "Paid Off"
    PAYOFF_PENDING = "Payoff Pending"


_CURRENCY_NOISE = re.compile(r"[$,\s]")


def parse_currency(value: Any) -> float:
    """'$1,250.50' -> 1250.5. Unparseable, blank, NaN or infinite values are 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    raw = value if isinstance(value, (int, float)) else _CURRENCY_NOISE.sub("", str(value))
    try:
        result = float(raw)
    except (ValueError, OverflowError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def coerce_status(text: Any, default: LoanStatus = LoanStatus.CURRENT) -> LoanStatus:
    if isinstance(text, LoanStatus):
        return text
    raw = str(text or "").strip()
    if not raw:
        return default
    lowered = raw.lower()
    for status in LoanStatus:
        if lowered == status.value.lower():
            return status
    if "default" in lowered:
        return LoanStatus.IN_DEFAULT
    if "paid off" in lowered:
        return LoanStatus.PAID_OFF
    if "payoff" in lowered:
        return LoanStatus.PAYOFF_PENDING
    if "late" in lowered:
        return LoanStatus.LATE
    if "current" in lowered:
        return LoanStatus.CURRENT
    return default


# --- Deals ---

_DEAL_TEXT_FIELDS = (
    "loan_number", "amount", "rate_type", "term", "monthly_return", "ltv",
    "address", "appraisal", "rent", "sqft", "beds_baths", "market_location",
    "market_overview", "deal_information",
    "lending_entity", "client_name", "client_address", "borrower_name", "borrower_address",
)


def _image_field(snake: str, camel: str, short: str):
    return Field(
        default=None,
        validation_alias=AliasChoices(camel, snake, short),
        serialization_alias=camel,
    )


class DealIn(ApiModel):
    """Body of POST/PUT /api/deals. Money fields are display strings and never parsed."""

    loan_number: str = ""
    amount: str = ""
    rate_type: str = ""
    term: str = ""
    monthly_return: str = ""
    ltv: str = ""

    address: str = ""
    appraisal: str = ""
    rent: str = ""
    sqft: str = ""
    beds_baths: str = ""
    market_location: str = ""
    market_overview: str = ""
    deal_information: str = ""

    hero_image: Optional[str] = _image_field("hero_image", "heroImage", "hero")
    int1_image: Optional[str] = _image_field("int1_image", "int1Image", "int1")
    int2_image: Optional[str] = _image_field("int2_image", "int2Image", "int2")
    int3_image: Optional[str] = _image_field("int3_image", "int3Image", "int3")
    int4_image: Optional[str] = _image_field("int4_image", "int4Image", "int4")

    attached_pdfs: List[PdfAttachment] = Field(
        default_factory=list,
        validation_alias=AliasChoices("attachedPdfs", "attached_pdfs", "attachedPdf"),
        serialization_alias="attachedPdfs",
    )

    lending_entity: str = ""
    client_name: str = ""
    client_address: str = ""
    borrower_name: str = ""
    borrower_address: str = ""

    @field_validator(*_DEAL_TEXT_FIELDS, mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("loan_number", "address")
    @classmethod
    def strip_key_fields(cls, v: str) -> str:
        return v.strip()

    @field_validator("hero_image", "int1_image", "int2_image", "int3_image", "int4_image", mode="before")
    @classmethod
    def empty_image_is_none(cls, v: Any) -> Optional[str]:
        return v or None

    @field_validator("attached_pdfs", mode="before")
    @classmethod
    def legacy_pdf_list(cls, v: Any) -> list:
        return normalize_pdf_list(v)

    def check_required(self) -> None:
        if not self.loan_number:
            raise ValidationFailed("Loan number is required")
        if not self.address:
            raise ValidationFailed("Address is required")


class Deal(DealIn):
    id: int
    archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def image_slots(self) -> dict[str, Optional[str]]:
        return {
            "hero": self.hero_image,
            "int1": self.int1_image,
            "int2": self.int2_image,
            "int3": self.int3_image,
            "int4": self.int4_image,
        }


class DealSummary(ApiModel):
    """List-row form of a Deal; no image or PDF payloads."""
    id: int
    loan_number: str
    address: str
    amount: str = ""
    rate_type: str = ""
    term: str = ""
    market_location: str = ""
    image_count: int = 0
    pdf_count: int = 0
    archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_deal(cls, deal: Deal) -> "DealSummary":
        return cls(
            id=deal.id,
            loan_number=deal.loan_number,
            address=deal.address,
            amount=deal.amount,
            rate_type=deal.rate_type,
            term=deal.term,
            market_location=deal.market_location,
            image_count=sum(1 for v in deal.image_slots().values() if v),
            pdf_count=len(deal.attached_pdfs),
            archived=deal.archived,
            created_at=deal.created_at,
            updated_at=deal.updated_at,
        )


class LoanNumber(ApiModel):
    loan_number: str


# --- Portfolio reviews ---

class RosterRow(ApiModel):
    address: str = ""
    balance: float = 0.0
    interest_paid: float = 0.0
    status: LoanStatus = LoanStatus.CURRENT

    @field_validator("address", mode="before")
    @classmethod
    def address_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("balance", "interest_paid", mode="before")
    @classmethod
    def currency_text(cls, v: Any) -> float:
        return parse_currency(v)

    @field_validator("status", mode="before")
    @classmethod
    def status_text(cls, v: Any) -> LoanStatus:
        return coerce_status(v, LoanStatus.CURRENT)

    @property
    def is_paid_off(self) -> bool:
        return self.status == LoanStatus.PAID_OFF


class PortfolioTotals(ApiModel):
    current_investment_total: float = 0.0
    lifetime_investment_total: float = 0.0
    lifetime_interest_paid: float = 0.0


def compute_totals(loans: List[RosterRow]) -> PortfolioTotals:
    """Current excludes Paid Off rows; lifetime figures include every row."""
    current = sum(row.balance for row in loans if not row.is_paid_off)
    lifetime = sum(row.balance for row in loans)
    interest = sum(row.interest_paid for row in loans)
    return PortfolioTotals(
        current_investment_total=round(current, 2),
        lifetime_investment_total=round(lifetime, 2),
        lifetime_interest_paid=round(interest, 2),
    )


class PortfolioReviewIn(ApiModel):
    """
    Body of POST/PUT /api/portfolios. Client-sent totals are ignored (extra="ignore");
    they are always recomputed from the roster.
    """

    investor_name: str = ""
    loans: List[RosterRow] = Field(
        default_factory=list,
        validation_alias=AliasChoices("loans", "loansData", "loans_data"),
    )

    @field_validator("investor_name", mode="before")
    @classmethod
    def investor_text(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("loans", mode="before")
    @classmethod
    def legacy_loans_json(cls, v: Any) -> Any:
        if v is None or v == "":
            return []
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError("loansData is not valid JSON") from e
        return v

    def check_required(self) -> None:
        if not self.investor_name:
            raise ValidationFailed("Investor name is required")


class PortfolioContent(PortfolioReviewIn, PortfolioTotals):
    """What the store persists for a review: the roster plus its recomputed totals."""

    @classmethod
    def from_input(cls, data: PortfolioReviewIn) -> "PortfolioContent":
        totals = compute_totals(data.loans)
        return cls(
            investor_name=data.investor_name,
            loans=data.loans,
            **totals.model_dump(),
        )


class PortfolioReview(PortfolioContent):
    id: int
    archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PortfolioSummary(PortfolioTotals):
    id: int
    investor_name: str
    loan_count: int = 0
    archived: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_review(cls, review: PortfolioReview) -> "PortfolioSummary":
        return cls(
            id=review.id,
            investor_name=review.investor_name,
            loan_count=len(review.loans),
            current_investment_total=review.current_investment_total,
            lifetime_investment_total=review.lifetime_investment_total,
            lifetime_interest_paid=review.lifetime_interest_paid,
            archived=review.archived,
            created_at=review.created_at,
            updated_at=review.updated_at,
        )


class RosterImport(PortfolioTotals):
    """Parsed spreadsheet; returned to the form, not persisted."""
    investor_name: str = ""
    loans: List[RosterRow] = Field(default_factory=list)


# --- Misc request/response bodies ---

class ArchiveRequest(ApiModel):
    archived: Optional[bool] = None


class LoginRequest(ApiModel):
    username: str = ""
    password: str = ""


class StoredPdf(ApiModel):
    path: str
    size: int
    modified_at: datetime


class EncodedAttachment(ApiModel):
    slot: str
    name: str
    size: int
    data_url: str
