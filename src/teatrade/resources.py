"""Descriptors for the record types a list controller can manage."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .csv_validation import CATALOG_CSV, OUT_LOTS_CSV, SELLING_PRICES_CSV, STOCK_CSV, CsvSpec
from .enums import AssignmentStatus, Broker, TeaCategory, TeaGrade, values
from .filters import FieldKind, FilterField
from .schemas import Catalog, OutLot, SellingPrice, Stock, WireModel

BAGS_MESSAGE = "Bags must be at least 1"


def text(name: str) -> FilterField:
    return FilterField(name)


def choice(name: str, choices: list[str], sentinel: str = "any") -> FilterField:
    return FilterField(name, FieldKind.ENUM, choices=tuple(choices), sentinel=sentinel)


def positive(name: str) -> FilterField:
    return FilterField(name, FieldKind.NUMBER, minimum=0, inclusive=False)


def non_negative(name: str, kind: FieldKind = FieldKind.NUMBER) -> FilterField:
    return FilterField(name, kind, minimum=0)


TRADE_CHOICES = (
    choice("category", values(TeaCategory)),
    choice("grade", values(TeaGrade)),
    choice("broker", values(Broker)),
)

CATALOG_FILTERS: tuple[FilterField, ...] = (
    text("lot_no"),
    text("selling_mark"),
    FilterField("bags", FieldKind.INTEGER, minimum=1, bound_message=BAGS_MESSAGE),
    positive("total_weight"),
    positive("net_weight"),
    positive("asking_price"),
    text("producer_country"),
    FilterField("manufacture_date", FieldKind.DATE),
    text("sale_code"),
    *TRADE_CHOICES,
    text("invoice_no"),
    FilterField("reprint", FieldKind.REPRINT),
    text("search"),
    FilterField("ids", FieldKind.ID_LIST),
)

SELLING_PRICE_FILTERS: tuple[FilterField, ...] = (
    text("lot_no"),
    text("selling_mark"),
    FilterField("bags", FieldKind.INTEGER, minimum=1, bound_message=BAGS_MESSAGE),
    positive("total_weight"),
    positive("net_weight"),
    positive("asking_price"),
    positive("purchase_price"),
    text("producer_country"),
    FilterField("manufacture_date", FieldKind.DATE),
    text("sale_code"),
    *TRADE_CHOICES,
    text("invoice_no"),
    non_negative("reprint", FieldKind.INTEGER),
    text("search"),
    FilterField("ids", FieldKind.ID_LIST),
)

OUT_LOT_FILTERS: tuple[FilterField, ...] = (
    text("auction"),
    text("lot_no"),
    text("selling_mark"),
    choice("grade", values(TeaGrade)),
    choice("broker", values(Broker)),
    text("invoice_no"),
    non_negative("bags", FieldKind.INTEGER),
    non_negative("net_weight"),
    non_negative("total_weight"),
    non_negative("baseline_price"),
    FilterField("manufacture_date", FieldKind.DATE),
    text("search"),
)

STOCK_FILTERS: tuple[FilterField, ...] = (
    non_negative("min_weight"),
    text("batch_number"),
    text("lot_no"),
    choice("grade", values(TeaGrade)),
    choice("broker", values(Broker)),
    text("search"),
    choice(
        "assignment_status",
        [AssignmentStatus.ASSIGNED.value, AssignmentStatus.UNASSIGNED.value],
        sentinel=AssignmentStatus.ALL.value,
    ),
    FilterField("only_favorites", FieldKind.FLAG),
)


@dataclass(frozen=True)
class EntityResource:
    """Everything a :class:`~teatrade.controller.FilteredListController` needs
    to know about one record type: where it lives, how it is filtered,
    deleted, uploaded and exported.
    """

    name: str
    noun: str
    model: type[WireModel]
    list_path: str
    delete_path: str
    upload_path: str
    export_path: str
    export_ids_param: str
    export_prefix: str
    export_extension: str
    filter_fields: tuple[FilterField, ...]
    csv_spec: CsvSpec
    columns: tuple[tuple[str, str], ...]
    delete_all_path: str | None = None
    delete_all_confirm: bool = False
    filter_options_path: str | None = None
    assign_path: str | None = None
    bulk_assign_path: str | None = None
    unassign_path: str | None = None
    favorite_path: str | None = None
    admin_required: bool = True
    delete_timeout: float | None | Literal["settings"] = "settings"

    @property
    def plural(self) -> str:
        return f"{self.noun}(s)"

    @property
    def supports_delete_by_filter(self) -> bool:
        return self.delete_all_path is not None

    @property
    def supports_assignment(self) -> bool:
        return self.bulk_assign_path is not None


_TRADE_COLUMNS = (
    ("Lot No", "lot_no"),
    ("Selling Mark", "selling_mark"),
    ("Grade", "grade"),
    ("Broker", "broker"),
    ("Invoice No", "invoice_no"),
    ("Sale Code", "sale_code"),
    ("Category", "category"),
    ("RP", "reprint"),
    ("Bags", "bags"),
    ("Net Weight", "net_weight"),
    ("Total Weight", "total_weight"),
    ("Asking Price", "asking_price"),
)

CATALOG = EntityResource(
    name="catalog",
    noun="catalog",
    model=Catalog,
    list_path="/catalogs",
    delete_path="/catalogs/bulk",
    delete_all_path="/catalogs/bulk/delete-all",
    upload_path="/catalogs/upload",
    export_path="/catalogs/export/xlsx",
    export_ids_param="catalogIds",
    export_prefix="tea_catalog",
    export_extension=".xlsx",
    filter_options_path="/catalogs/filters",
    filter_fields=CATALOG_FILTERS,
    csv_spec=CATALOG_CSV,
    columns=(*_TRADE_COLUMNS, ("Producer Country", "producer_country"), ("Manufactured Date", "manufacture_date")),
)

SELLING_PRICES = EntityResource(
    name="sellingPrices",
    noun="selling price",
    model=SellingPrice,
    list_path="/sellingPrices",
    delete_path="/sellingPrices",
    delete_all_path="/sellingPrices/deleteAll",
    delete_all_confirm=True,
    upload_path="/sellingPrices/upload",
    export_path="/sellingPrices/export-xlsx",
    export_ids_param="sellingPriceIds",
    export_prefix="tea_selling_prices",
    export_extension=".xlsx",
    filter_options_path="/sellingPrices/filters",
    filter_fields=SELLING_PRICE_FILTERS,
    csv_spec=SELLING_PRICES_CSV,
    columns=(
        *_TRADE_COLUMNS,
        ("Purchase Price", "purchase_price"),
        ("Producer Country", "producer_country"),
        ("Manufactured Date", "manufacture_date"),
    ),
)

OUT_LOTS = EntityResource(
    name="outLots",
    noun="out lot",
    model=OutLot,
    list_path="/outLots",
    delete_path="/outLots",
    upload_path="/outlots/upload",
    export_path="/outLots/export-xlsx",
    export_ids_param="outLotIds",
    export_prefix="tea_outlots",
    export_extension=".xlsx",
    filter_options_path="/outLots/filters",
    filter_fields=OUT_LOT_FILTERS,
    csv_spec=OUT_LOTS_CSV,
    columns=(
        ("Auction", "auction"),
        ("Lot No", "lot_no"),
        ("Broker", "broker"),
        ("Selling Mark", "selling_mark"),
        ("Grade", "grade"),
        ("Invoice No", "invoice_no"),
        ("Bags", "bags"),
        ("Net Weight", "net_weight"),
        ("Total Weight", "total_weight"),
        ("Baseline Price", "baseline_price"),
        ("Manufacture Date", "manufacture_date"),
    ),
)

STOCK = EntityResource(
    name="stock",
    noun="stock",
    model=Stock,
    list_path="/stocks",
    delete_path="/stocks",
    upload_path="/stocks/upload",
    export_path="/stocks/export-csv",
    export_ids_param="stockIds",
    export_prefix="tea_stocks",
    export_extension=".csv",
    filter_options_path="/stocks/filters",
    assign_path="/stocks/assign",
    bulk_assign_path="/stocks/bulk-assign",
    unassign_path="/stocks/unassign",
    favorite_path="/toggle-favorite",
    filter_fields=STOCK_FILTERS,
    csv_spec=STOCK_CSV,
    columns=(
        ("Lot No", "lot_no"),
        ("Mark", "mark"),
        ("Grade", "grade"),
        ("Invoice No", "invoice_no"),
        ("Sale Code", "sale_code"),
        ("Broker", "broker"),
        ("Bags", "bags"),
        ("Weight", "weight"),
        ("Assigned Weight", "assigned_weight"),
        ("Batch Number", "batch_number"),
    ),
)

RESOURCES = {resource.name: resource for resource in (CATALOG, OUT_LOTS, STOCK, SELLING_PRICES)}


__all__ = [
    "EntityResource",
    "CATALOG",
    "OUT_LOTS",
    "STOCK",
    "SELLING_PRICES",
    "RESOURCES",
    "CATALOG_FILTERS",
    "OUT_LOT_FILTERS",
    "STOCK_FILTERS",
    "SELLING_PRICE_FILTERS",
]
