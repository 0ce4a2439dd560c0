from __future__ import annotations

import asyncio
from datetime import date
from pathlib import Path

import httpx
import pytest
import xlrd

from teatrade.auth import Session
from teatrade.client import TeaTradeClient
from teatrade.config import Settings
from teatrade.controller import FilteredListController
from teatrade.enums import DuplicateAction
from teatrade.filters import FiltersState, FilterStore
from teatrade.notifications import ToastLog
from teatrade.resources import CATALOG, OUT_LOTS, SELLING_PRICES, STOCK

CATALOG_HEADER = (
    "Broker,Lot No,Selling Mark,Grade,Invoice No,Sale Code,Category,RP,Bags,"
    "Net Weight,Total Weight,Asking Price,Producer Country,Manufactured Date"
)
CATALOG_ROW = "AMBR,LOT900,KIPTAGICH,BP1,INV900,24-05,M1,No,20,1000,1040,2.75,Kenya,2024/03/01"


async def test_applying_filters_resets_page_syncs_url_and_refetches(
    make_controller, navigated: list[str], backend
) -> None:
    controller = make_controller(CATALOG)
    await controller.go_to(2)

    controller.set_filter("grade", "PD")
    controller.set_filter("lot_no", "LOT002")
    assert await controller.apply_filters()

    assert controller.fetcher.page == 1
    assert controller.filters == {"lot_no": "LOT002", "grade": "PD"}
    assert controller.fetcher.ids == [2]
    assert backend.calls("GET", "/catalogs")[-1]["params"]["grade"] == "PD"

    await asyncio.sleep(0.05)
    assert navigated == ["/catalogs?lotNo=LOT002&grade=PD"]


async def test_invalid_filters_block_apply(make_controller, toasts: ToastLog, backend) -> None:
    controller = make_controller(STOCK)
    controller.set_filter("min_weight", "heavy")

    assert await controller.apply_filters() is False

    assert toasts.messages("error") == ["Invalid filter values"]
    assert toasts.last is not None and toasts.last.description == "min_weight: Invalid number"
    assert backend.calls("GET") == []


async def test_commit_clears_selection(make_controller) -> None:
    controller = make_controller(CATALOG)
    await controller.refresh()
    controller.select_all()

    controller.set_filter("broker", "ANJL")
    await controller.apply_filters()

    assert controller.selection.empty


async def test_shared_store_drives_each_list_with_its_own_fields(make_controller, backend) -> None:
    store = FilterStore()
    stock = make_controller(STOCK, store=store)
    catalog = make_controller(CATALOG, store=store)

    await store.commit(FiltersState(grade="BP1", asking_price=2.5, min_weight=100))

    assert stock.filters == {"grade": "BP1", "min_weight": 100}
    assert catalog.filters == {"grade": "BP1", "asking_price": 2.5}


async def test_reset_filters_clears_everything(make_controller) -> None:
    controller = make_controller(CATALOG)
    controller.set_filter("grade", "PD")
    await controller.apply_filters()

    await controller.reset_filters()

    assert controller.filters == {}
    assert controller.fetcher.total == 25


async def test_load_from_url_rebuilds_filters_without_navigating(
    make_controller, navigated: list[str]
) -> None:
    controller = make_controller(CATALOG)

    values = await controller.load_from_url("/catalogs?broker=ANJL&grade=any&manufactureDate=2024-01-15&bags=oops")
    await asyncio.sleep(0.05)

    assert values == {"broker": "ANJL", "manufacture_date": date(2024, 1, 15)}
    assert controller.draft.get("broker") == "ANJL"
    assert controller.fetcher.total == 13
    assert navigated == []
    assert controller.url.current_url.endswith("bags=oops")


async def test_unresolved_session_sends_nothing(make_controller, session: Session, backend) -> None:
    session.clear()
    controller = make_controller(OUT_LOTS)

    assert await controller.refresh() is None
    assert backend.requests == []


async def test_upload_rejects_short_file_before_network(make_controller, backend, toasts: ToastLog) -> None:
    controller = make_controller(CATALOG)

    result = await controller.upload_csv(CATALOG_HEADER.encode())

    assert result is None
    assert controller.csv_errors == ["CSV file is empty or missing data rows"]
    assert toasts.last is not None and toasts.last.level == "error"
    assert backend.requests == []


async def test_upload_rejects_oversized_file(make_controller, settings, backend) -> None:
    settings.max_upload_bytes = 64
    controller = make_controller(CATALOG)

    await controller.upload_csv(f"{CATALOG_HEADER}\n{CATALOG_ROW}\n".encode())

    assert controller.csv_errors[0].startswith("File exceeds")
    assert backend.requests == []


async def test_upload_sends_file_and_reports_summary(
    make_controller, backend, toasts: ToastLog, tmp_path: Path
) -> None:
    backend.upload_errors = [{"row": 3, "message": "Duplicate lot number"}]
    sheet = tmp_path / "catalog.csv"
    sheet.write_text(f"\ufeff{CATALOG_HEADER}\n{CATALOG_ROW}\n{CATALOG_ROW}\n", encoding="utf-8")
    controller = make_controller(CATALOG)

    result = await controller.upload_csv(sheet, DuplicateAction.REPLACE)

    assert result is not None
    assert result.success.created == 1
    call = backend.calls("POST", "/catalogs/upload")[0]
    assert call["body"] == {"filename": "catalog.csv", "duplicateAction": "replace"}
    assert toasts.messages("success") == ["Successfully uploaded 1 catalog(s)!"]
    assert toasts.messages("warning") == ["1 row(s) were rejected"]
    assert backend.calls("GET", "/catalogs")


async def test_upload_requires_admin(make_controller, session: Session, plain_user, backend, toasts: ToastLog) -> None:
    session.resolve(plain_user)
    controller = make_controller(CATALOG)

    assert await controller.upload_csv(f"{CATALOG_HEADER}\n{CATALOG_ROW}".encode()) is None

    assert toasts.messages("error") == ["Forbidden: insufficient permissions"]
    assert backend.requests == []


async def test_export_selected_rows_saves_named_file(make_controller, backend, tmp_path: Path) -> None:
    controller = make_controller(SELLING_PRICES)
    controller.toggle(2)
    controller.toggle(4)

    target = await controller.export(tmp_path)

    assert target == tmp_path / "tea_selling_prices_2024-05-01.xlsx"
    assert target.read_bytes() == b"PK-export-bytes"
    body = backend.calls("POST", "/sellingPrices/export-xlsx")[0]["body"]
    assert body == {"sellingPriceIds": "2,4", "page": "1", "limit": "10000"}


async def test_export_with_filters_and_fallback_name(make_controller, backend, tmp_path: Path) -> None:
    controller = make_controller(STOCK)
    controller.set_filter("grade", "PD")
    await controller.apply_filters()

    target = await controller.export(tmp_path)

    assert target is not None
    assert target.name.startswith("tea_stocks_")
    assert target.suffix == ".csv"
    body = backend.calls("POST", "/stocks/export-csv")[0]["body"]
    assert body == {"grade": "PD", "page": "1", "limit": "10000"}


async def test_export_failure_is_reported(make_controller, backend, toasts: ToastLog, tmp_path: Path) -> None:
    backend.failures[("POST", "/outLots/export-xlsx")] = (500, "Export failed")
    controller = make_controller(OUT_LOTS)

    assert await controller.export(tmp_path) is None
    assert toasts.messages("error") == ["Export failed"]


async def test_export_rows_csv_uses_selection(make_controller) -> None:
    controller = make_controller(OUT_LOTS)
    await controller.refresh()
    controller.toggle(3)

    content = controller.export_rows("csv").decode("utf-8-sig").splitlines()

    assert content[0].startswith("Auction,Lot No,Broker")
    assert len(content) == 2
    assert content[1].startswith("NBO,OUT003,ANJL")


async def test_export_rows_xls(make_controller) -> None:
    controller = make_controller(STOCK)
    await controller.refresh()

    book = xlrd.open_workbook(file_contents=controller.export_rows("xls"))
    sheet = book.sheet_by_index(0)

    assert sheet.cell_value(0, 0) == "Exported At"
    assert sheet.cell_value(1, 1) == 10
    assert sheet.row_values(3)[:3] == ["Lot No", "Mark", "Grade"]
    assert sheet.cell_value(4, 0) == "STK001"
    assert sheet.nrows == 14


async def test_filter_options(make_controller, backend) -> None:
    controller = make_controller(CATALOG)
    options = await controller.filter_options()
    assert options["brokers"] == ["AMBR", "ANJL"]

    stock = make_controller(STOCK)
    stock_options = await stock.filter_options()
    assert stock_options["brokers"] == ["AMBR", "ANJL"]
    assert stock_options["grades"] == ["BP1", "PD", "PF1"]
    assert backend.calls("GET", "/stocks/filters") != []


def _refuse_connection(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def _maintenance_page(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="<html>maintenance</html>")


@pytest.mark.parametrize("respond", [_refuse_connection, _maintenance_page], ids=["connect", "html-body"])
async def test_broken_transport_becomes_load_toast(respond, settings: Settings, session: Session, toasts: ToastLog) -> None:
    async with TeaTradeClient(settings, session=session, transport=httpx.MockTransport(respond)) as broken:
        controller = FilteredListController(CATALOG, broken, session, notifier=toasts)

        assert await controller.refresh() is None

        controller.close()

    assert toasts.messages("error") == ["Failed to load catalogs"]
    assert controller.fetcher.loading is False
