"""Pydantic schemas mirroring the API's JSON payloads."""
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from .dates import parse_trade_date
from .enums import (
    Broker,
    PackagingInstructions,
    Role,
    ShipmentStatus,
    TeaCategory,
    TeaGrade,
    Vessel,
)


def _optional_trade_date(value: Any) -> Any:
    if value in (None, ""):
        return None
    if isinstance(value, str):
        return parse_trade_date(value)
    return value


TradeDate = Annotated[date | None, BeforeValidator(_optional_trade_date)]


class WireModel(BaseModel):
    """Base for payloads exchanged with the API: camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class AdminSummary(WireModel):
    id: int
    admin_cognito_id: str
    name: str | None = None
    email: str | None = None
    phone_number: str | None = None


class Admin(AdminSummary):
    created_at: datetime | None = None


class User(WireModel):
    id: int
    user_cognito_id: str
    name: str | None = None
    email: str | None = None
    phone_number: str | None = None
    role: Role = Role.USER


class Favorite(WireModel):
    id: int | None = None
    user_cognito_id: str
    stocks_id: int


class Catalog(WireModel):
    id: int
    lot_no: str
    selling_mark: str
    bags: int
    total_weight: float
    net_weight: float
    invoice_no: str | None = None
    sale_code: str
    asking_price: float
    producer_country: str | None = None
    manufacture_date: TradeDate = None
    category: TeaCategory
    grade: TeaGrade
    broker: Broker
    reprint: str | None = Field(None, description="'No' or a positive integer string.")
    admin_cognito_id: str | None = None
    admin: AdminSummary | None = None


class SellingPrice(WireModel):
    id: int
    lot_no: str
    selling_mark: str
    bags: int
    total_weight: float
    net_weight: float
    invoice_no: str | None = None
    sale_code: str
    asking_price: float
    purchase_price: float
    producer_country: str | None = None
    manufacture_date: TradeDate = None
    category: TeaCategory
    grade: TeaGrade
    broker: Broker
    reprint: int = Field(0, ge=0)
    admin_cognito_id: str | None = None


class OutLot(WireModel):
    id: int
    auction: str
    lot_no: str
    broker: Broker
    selling_mark: str
    grade: TeaGrade
    invoice_no: str
    bags: int = Field(..., ge=0)
    net_weight: float = Field(..., ge=0)
    total_weight: float = Field(..., ge=0)
    baseline_price: float = Field(0, ge=0)
    manufacture_date: TradeDate = None
    admin_cognito_id: str | None = None


class UserSummary(WireModel):
    name: str | None = None
    email: str | None = None


class StockAssignment(WireModel):
    user_cognito_id: str
    assigned_weight: float = Field(..., gt=0)
    assigned_at: datetime | None = None
    user: UserSummary | None = None


class Stock(WireModel):
    id: int
    sale_code: str
    broker: Broker
    lot_no: str
    mark: str
    grade: TeaGrade
    invoice_no: str
    bags: int
    weight: float
    purchase_value: float = 0
    total_purchase_value: float | None = None
    aging_days: int | None = None
    penalty: float | None = None
    bgt_commission: float | None = None
    maersk_fee: float | None = None
    commission: float | None = None
    net_price: float | None = None
    total: float | None = None
    batch_number: str | None = None
    low_stock_threshold: float | None = None
    admin_cognito_id: str | None = None
    assignments: list[StockAssignment] = Field(default_factory=list)
    is_favorited: bool = False

    @property
    def assigned_weight(self) -> float:
        return sum(assignment.assigned_weight for assignment in self.assignments)


class ShipmentItem(WireModel):
    stocks_id: int
    assigned_weight: float


class Shipment(WireModel):
    id: int
    shipment_date: datetime
    status: ShipmentStatus = ShipmentStatus.PENDING
    consignee: str
    vessel: Vessel
    shipmark: str
    packaging_instructions: PackagingInstructions
    additional_instructions: str | None = None
    user_cognito_id: str
    stocks: list[ShipmentItem] = Field(default_factory=list)


class AssignmentRecord(WireModel):
    stock_id: int
    user_cognito_id: str
    assigned_weight: float | None = None
    assigned_at: datetime | None = None


class AssignResult(WireModel):
    message: str | None = None
    assignment: AssignmentRecord | None = None
    assignments: list[AssignmentRecord] = Field(default_factory=list)

    @property
    def records(self) -> list[AssignmentRecord]:
        if self.assignment is not None:
            return [self.assignment, *self.assignments]
        return list(self.assignments)


class FavoriteToggle(Favorite):
    message: str | None = None
    favorited: bool = False


class PageMeta(WireModel):
    page: int = 1
    limit: int = 0
    total: int = 0
    total_pages: int = 0


T = TypeVar("T")


class Page(WireModel, Generic[T]):
    data: list[T] = Field(default_factory=list)
    meta: PageMeta = Field(default_factory=PageMeta)


class LotRef(WireModel):
    id: int
    lot_no: str | None = None


class DeleteResult(WireModel):
    deleted_count: int | None = None
    message: str | None = None
    associations: list[LotRef] = Field(default_factory=list)

    @model_validator(mode="after")
    def _fill_count(self) -> "DeleteResult":
        if self.deleted_count is None and self.associations:
            self.deleted_count = len(self.associations)
        return self


class UploadCounts(WireModel):
    created: int = 0
    skipped: int = 0
    replaced: int = 0


class RowError(WireModel):
    row: int
    message: str


class UploadResult(WireModel):
    success: UploadCounts = Field(default_factory=UploadCounts)
    errors: list[RowError] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _zero_success(cls, value: Any) -> Any:
        # A fully rejected upload answers with ``success: 0``.
        if isinstance(value, dict) and not isinstance(value.get("success", {}), dict):
            value = {**value, "success": {}}
        return value

    @property
    def processed(self) -> int:
        return self.success.created + self.success.skipped + self.success.replaced


class AuthUser(BaseModel):
    """Identity resolved by the authentication provider."""

    user_id: str
    role: Role = Role.USER
    token: str | None = None
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class ErrorResponse(BaseModel):
    """Body of a failed request; older routes put the text under ``error``."""

    message: str | None = None
    error: str | None = None
    details: Any = None

    @property
    def text(self) -> str | None:
        return self.message or self.error


__all__ = [
    "WireModel",
    "AdminSummary",
    "Admin",
    "User",
    "Favorite",
    "FavoriteToggle",
    "AssignmentRecord",
    "AssignResult",
    "Catalog",
    "SellingPrice",
    "OutLot",
    "StockAssignment",
    "Stock",
    "ShipmentItem",
    "Shipment",
    "PageMeta",
    "Page",
    "LotRef",
    "DeleteResult",
    "UploadCounts",
    "RowError",
    "UploadResult",
    "AuthUser",
    "ErrorResponse",
]
