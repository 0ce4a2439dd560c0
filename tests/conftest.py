from __future__ import annotations

import asyncio
import csv
import io
import math
from collections.abc import AsyncIterator, Callable, Iterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest
from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from teatrade.auth import Session
from teatrade.client import TeaTradeClient
from teatrade.config import Settings
from teatrade.controller import FilteredListController
from teatrade.enums import Role
from teatrade.filters import FilterStore
from teatrade.notifications import ToastLog
from teatrade.resources import CATALOG, OUT_LOTS, RESOURCES, SELLING_PRICES, STOCK, EntityResource
from teatrade.schemas import AuthUser

GRADES = ("BP1", "PF1", "PD")
BROKERS = ("AMBR", "ANJL")
RECORDS_PER_RESOURCE = 25


def catalog_record(record_id: int) -> dict[str, Any]:
    return {
        "id": record_id,
        "lotNo": f"LOT{record_id:03d}",
        "sellingMark": "KIPTAGICH",
        "bags": 10 + record_id,
        "totalWeight": 500.0,
        "netWeight": 480.0,
        "invoiceNo": f"INV{record_id}",
        "saleCode": "24-01",
        "askingPrice": 2.5,
        "producerCountry": "Kenya",
        "manufactureDate": "2024-01-15T00:00:00.000Z",
        "category": "M1",
        "grade": GRADES[record_id % len(GRADES)],
        "broker": BROKERS[record_id % len(BROKERS)],
        "reprint": "No",
        "adminCognitoId": "admin-1",
    }


def selling_price_record(record_id: int) -> dict[str, Any]:
    record = catalog_record(record_id)
    record.update(purchasePrice=2.1, reprint=0)
    return record


def out_lot_record(record_id: int) -> dict[str, Any]:
    return {
        "id": record_id,
        "auction": "NBO",
        "lotNo": f"OUT{record_id:03d}",
        "broker": BROKERS[record_id % len(BROKERS)],
        "sellingMark": "CHEBUT",
        "grade": GRADES[record_id % len(GRADES)],
        "invoiceNo": f"OINV{record_id}",
        "bags": 20,
        "netWeight": 1000.0,
        "totalWeight": 1040.0,
        "baselinePrice": 1.8,
        "manufactureDate": "2024-02-01",
    }


def stock_record(record_id: int) -> dict[str, Any]:
    return {
        "id": record_id,
        "saleCode": "24-02",
        "broker": BROKERS[record_id % len(BROKERS)],
        "lotNo": f"STK{record_id:03d}",
        "mark": "GREENLAND",
        "grade": GRADES[record_id % len(GRADES)],
        "invoiceNo": f"SINV{record_id}",
        "bags": 40,
        "weight": 100.0 * record_id,
        "purchaseValue": 3.0,
        "batchNumber": f"B{record_id % 4}",
        "assignments": [],
        "isFavorited": False,
    }


def shipment_record(shipment_id: int, user_id: str) -> dict[str, Any]:
    return {
        "id": shipment_id,
        "shipmentDate": "2024-03-01T00:00:00Z",
        "status": "Pending",
        "consignee": "Mombasa Blends",
        "vessel": "first",
        "shipmark": f"SM-{shipment_id}",
        "packagingInstructions": "oneJutetwoPolly",
        "userCognitoId": user_id,
        "stocks": [{"stocksId": shipment_id, "assignedWeight": 50.0}],
    }


FACTORIES: dict[str, Callable[[int], dict[str, Any]]] = {
    CATALOG.name: catalog_record,
    SELLING_PRICES.name: selling_price_record,
    OUT_LOTS.name: out_lot_record,
    STOCK.name: stock_record,
}

_IGNORED_PARAMS = {"page", "limit", "search", "assignmentStatus", "onlyFavorites", "confirm"}


def _matches(record: dict[str, Any], key: str, value: Any) -> bool:
    if key in _IGNORED_PARAMS:
        return True
    if key == "ids":
        wanted = {int(part) for part in str(value).split(",") if part}
        return record["id"] in wanted
    if key == "minWeight":
        return record.get("weight", 0) >= float(value)
    if key not in record:
        return True
    current = record[key]
    if isinstance(current, (int, float)) and not isinstance(current, bool):
        return float(current) == float(value)
    if key == "manufactureDate":
        return str(current).startswith(str(value))
    return str(current) == str(value)


@dataclass
class FakeBackend:
    """In-memory stand-in for the REST API, one table per resource."""

    records: dict[str, dict[int, dict[str, Any]]] = field(default_factory=dict)
    requests: list[dict[str, Any]] = field(default_factory=list)
    failures: dict[tuple[str, str], tuple[int, str]] = field(default_factory=dict)
    delays: dict[tuple[str, str], float] = field(default_factory=dict)
    page_delays: dict[int, float] = field(default_factory=dict)
    upload_errors: list[dict[str, Any]] = field(default_factory=list)
    users: list[dict[str, Any]] = field(default_factory=list)
    shipments: dict[int, dict[str, Any]] = field(default_factory=dict)
    omit_count: bool = False

    def seed(self, count: int = RECORDS_PER_RESOURCE) -> None:
        for name, factory in FACTORIES.items():
            self.records[name] = {record_id: factory(record_id) for record_id in range(1, count + 1)}
        self.users = [
            {"id": 1, "userCognitoId": "user-1", "name": "Amina Buyer", "email": "amina@example.com"},
            {"id": 2, "userCognitoId": "user-2", "name": "Otieno Blender", "email": "otieno@example.com"},
        ]
        self.shipments = {
            1: shipment_record(1, "user-1"),
            2: shipment_record(2, "user-2"),
        }

    def calls(self, method: str | None = None, path: str | None = None) -> list[dict[str, Any]]:
        return [
            call
            for call in self.requests
            if (method is None or call["method"] == method) and (path is None or call["path"] == path)
        ]

    def filtered(self, resource: EntityResource, params: dict[str, Any]) -> list[dict[str, Any]]:
        rows = sorted(self.records[resource.name].values(), key=lambda row: row["id"])
        return [row for row in rows if all(_matches(row, key, value) for key, value in params.items())]

    async def gate(self, request: Request, body: Any = None) -> JSONResponse | None:
        self.requests.append(
            {
                "method": request.method,
                "path": request.url.path,
                "params": dict(request.query_params),
                "body": body,
                "authorization": request.headers.get("authorization"),
            }
        )
        key = (request.method, request.url.path)
        delay = self.delays.get(key)
        if delay:
            await asyncio.sleep(delay)
        if key in self.failures:
            status, message = self.failures[key]
            return JSONResponse({"message": message, "details": {"path": key[1]}}, status_code=status)
        if request.method != "GET" and not request.headers.get("authorization", "").startswith("Bearer "):
            return JSONResponse({"message": "Unauthorized"}, status_code=401)
        return None


def _delete_response(backend: FakeBackend, resource: EntityResource, doomed: list[dict[str, Any]]) -> JSONResponse:
    for row in doomed:
        backend.records[resource.name].pop(row["id"], None)
    payload: dict[str, Any] = {
        "message": f"Successfully deleted {len(doomed)} {resource.plural}",
        "associations": [{"id": row["id"], "lotNo": row["lotNo"]} for row in doomed],
    }
    if not backend.omit_count:
        payload["deletedCount"] = len(doomed)
    return JSONResponse(payload)


def _register(app: FastAPI, backend: FakeBackend, resource: EntityResource) -> None:
    if resource.filter_options_path:

        @app.get(resource.filter_options_path)
        async def filter_options(request: Request) -> Any:
            blocked = await backend.gate(request)
            if blocked is not None:
                return blocked
            rows = backend.records[resource.name].values()
            return {
                "data": {
                    "grades": sorted({row["grade"] for row in rows}),
                    "brokers": sorted({row["broker"] for row in rows}),
                }
            }

    @app.get(resource.list_path)
    async def list_records(request: Request) -> Any:
        blocked = await backend.gate(request)
        if blocked is not None:
            return blocked
        params = dict(request.query_params)
        page = int(params.get("page", 1))
        limit = int(params.get("limit", 10))
        delay = backend.page_delays.get(page)
        if delay:
            await asyncio.sleep(delay)
        rows = backend.filtered(resource, params)
        start = (page - 1) * limit
        return {
            "data": rows[start : start + limit],
            "meta": {
                "page": page,
                "limit": limit,
                "total": len(rows),
                "totalPages": math.ceil(len(rows) / limit) if rows else 0,
            },
        }

    @app.get(resource.list_path + "/{record_id}")
    async def get_record(record_id: int, request: Request) -> Any:
        blocked = await backend.gate(request)
        if blocked is not None:
            return blocked
        row = backend.records[resource.name].get(record_id)
        if row is None:
            return JSONResponse({"message": f"{resource.noun} not found"}, status_code=404)
        return row

    @app.delete(resource.delete_path)
    async def delete_records(request: Request) -> Any:
        body = await request.json()
        blocked = await backend.gate(request, body)
        if blocked is not None:
            return blocked
        ids = body.get("ids") or []
        if not ids:
            return JSONResponse({"message": "No IDs provided"}, status_code=400)
        doomed = [backend.records[resource.name][i] for i in ids if i in backend.records[resource.name]]
        return _delete_response(backend, resource, doomed)

    if resource.delete_all_path:

        @app.delete(resource.delete_all_path)
        async def delete_matching(request: Request) -> Any:
            body = await request.json()
            blocked = await backend.gate(request, body)
            if blocked is not None:
                return blocked
            if resource.delete_all_confirm and body.get("confirm") is not True:
                return JSONResponse({"message": "Confirmation required"}, status_code=400)
            doomed = backend.filtered(resource, body)
            return _delete_response(backend, resource, doomed)

    @app.post(resource.upload_path)
    async def upload(
        request: Request,
        file: UploadFile = File(...),
        duplicateAction: str | None = Form(None),
    ) -> Any:
        content = (await file.read()).decode("utf-8-sig")
        blocked = await backend.gate(
            request, {"filename": file.filename, "duplicateAction": duplicateAction}
        )
        if blocked is not None:
            return blocked
        rows = [row for row in csv.reader(io.StringIO(content)) if any(cell.strip() for cell in row)]
        created = max(len(rows) - 1 - len(backend.upload_errors), 0)
        return {
            "success": {"created": created, "skipped": 0, "replaced": 0},
            "errors": backend.upload_errors,
        }

    @app.post(resource.export_path)
    async def export(request: Request) -> Any:
        body = await request.json()
        blocked = await backend.gate(request, body)
        if blocked is not None:
            return blocked
        headers = {}
        if resource.export_extension == ".xlsx":
            headers["Content-Disposition"] = f'attachment; filename="{resource.export_prefix}_2024-05-01.xlsx"'
        return Response(content=b"PK-export-bytes", media_type="application/octet-stream", headers=headers)


def _register_stock_actions(app: FastAPI, backend: FakeBackend) -> None:
    def stocks() -> dict[int, dict[str, Any]]:
        return backend.records[STOCK.name]

    def assign(stock_id: int, user_id: str, weight: float | None = None) -> dict[str, Any] | None:
        row = stocks().get(stock_id)
        if row is None:
            return None
        assigned = weight if weight is not None else row["weight"]
        row["assignments"].append({"userCognitoId": user_id, "assignedWeight": assigned})
        return {"stockId": stock_id, "userCognitoId": user_id, "assignedWeight": assigned}

    @app.post(STOCK.bulk_assign_path)
    async def bulk_assign(request: Request) -> Any:
        body = await request.json()
        blocked = await backend.gate(request, body)
        if blocked is not None:
            return blocked
        user_id = body.get("userCognitoId")
        items = body.get("assignments") or []
        if not user_id or not items:
            return JSONResponse({"message": "userCognitoId and assignments are required"}, status_code=400)
        created = [assign(item["stockId"], user_id, item.get("assignedWeight")) for item in items]
        records = [record for record in created if record is not None]
        return {"message": f"Assigned {len(records)} stock(s)", "assignments": records}

    @app.post(STOCK.assign_path)
    async def assign_one(request: Request) -> Any:
        body = await request.json()
        blocked = await backend.gate(request, body)
        if blocked is not None:
            return blocked
        record = assign(body["stockId"], body["userCognitoId"])
        if record is None:
            return JSONResponse({"message": "Stock not found"}, status_code=404)
        return {"message": "Stock assigned successfully", "assignment": record}

    @app.post(STOCK.unassign_path)
    async def unassign(request: Request) -> Any:
        body = await request.json()
        blocked = await backend.gate(request, body)
        if blocked is not None:
            return blocked
        row = stocks().get(body["stockId"])
        if row is None:
            return JSONResponse({"message": "Stock not found"}, status_code=404)
        row["assignments"] = [
            entry for entry in row["assignments"] if entry["userCognitoId"] != body["userCognitoId"]
        ]
        return {"message": "Stock unassigned successfully"}

    @app.post(STOCK.favorite_path)
    async def toggle_favorite(request: Request) -> Any:
        body = await request.json()
        blocked = await backend.gate(request, body)
        if blocked is not None:
            return blocked
        row = stocks().get(body["stocksId"])
        if row is None:
            return JSONResponse({"message": "Stock not found"}, status_code=404)
        row["isFavorited"] = not row["isFavorited"]
        return {
            "message": "Favorite added" if row["isFavorited"] else "Favorite removed",
            "userCognitoId": body["userCognitoId"],
            "stocksId": row["id"],
            "favorited": row["isFavorited"],
        }


def _register_people(app: FastAPI, backend: FakeBackend) -> None:
    @app.get("/users/logged-in")
    async def logged_in_users(request: Request) -> Any:
        blocked = await backend.gate(request)
        if blocked is not None:
            return blocked
        search = request.query_params.get("search")
        rows = [user for user in backend.users if not search or search.lower() in user["name"].lower()]
        return {
            "data": {
                "data": rows,
                "meta": {"page": 1, "limit": 10, "total": len(rows), "totalPages": 1 if rows else 0},
            }
        }

    @app.get("/admin/{admin_id}")
    async def get_admin(admin_id: str, request: Request) -> Any:
        blocked = await backend.gate(request)
        if blocked is not None:
            return blocked
        if admin_id != "admin-1":
            return JSONResponse({"message": "Admin not found"}, status_code=404)
        return {"data": {"id": 1, "adminCognitoId": admin_id, "name": "Head Trader", "email": "admin@example.com"}}

    @app.get("/shipments/admin/shipments")
    async def list_shipments(request: Request) -> Any:
        blocked = await backend.gate(request)
        if blocked is not None:
            return blocked
        status = request.query_params.get("status")
        rows = [row for row in backend.shipments.values() if not status or row["status"] == status]
        return {"data": rows, "meta": {"page": 1, "limit": 10, "total": len(rows), "totalPages": 1}}

    @app.get("/shipments/users/{user_id}/shipments")
    async def list_user_shipments(user_id: str, request: Request) -> Any:
        blocked = await backend.gate(request)
        if blocked is not None:
            return blocked
        rows = [row for row in backend.shipments.values() if row["userCognitoId"] == user_id]
        return {"data": rows, "meta": {"page": 1, "limit": 10, "total": len(rows), "totalPages": 1}}

    @app.put("/shipments/admin/shipments/{shipment_id}/status")
    async def update_shipment_status(shipment_id: int, request: Request) -> Any:
        body = await request.json()
        blocked = await backend.gate(request, body)
        if blocked is not None:
            return blocked
        row = backend.shipments.get(shipment_id)
        if row is None:
            return JSONResponse({"message": "Shipment not found"}, status_code=404)
        row["status"] = body["status"]
        return {"data": row}



def create_fake_api(backend: FakeBackend) -> FastAPI:
    app = FastAPI(title="Fake tea trade API")
    for resource in RESOURCES.values():
        _register(app, backend, resource)
    _register_stock_actions(app, backend)
    _register_people(app, backend)
    return app


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        api_base_url="http://test",
        environment="test",
        app_name="Test Tea Trade",
        page_limit=10,
        url_debounce_seconds=0.01,
        bulk_delete_timeout_seconds=1.0,
    )


@pytest.fixture()
def backend() -> FakeBackend:
    fake = FakeBackend()
    fake.seed()
    return fake


@pytest.fixture()
def app(backend: FakeBackend) -> FastAPI:
    return create_fake_api(backend)


@pytest.fixture()
def admin_user() -> AuthUser:
    return AuthUser(user_id="admin-1", role=Role.ADMIN, token="admin-token", email="admin@example.com")


@pytest.fixture()
def plain_user() -> AuthUser:
    return AuthUser(user_id="user-1", role=Role.USER, token="user-token")


@pytest.fixture()
def session(admin_user: AuthUser) -> Session:
    return Session(admin_user)


@pytest.fixture()
async def client(app: FastAPI, settings: Settings, session: Session) -> AsyncIterator[TeaTradeClient]:
    transport = httpx.ASGITransport(app=app)
    async with TeaTradeClient(settings, session=session, transport=transport) as api_client:
        yield api_client


@pytest.fixture()
def toasts() -> ToastLog:
    return ToastLog()


@pytest.fixture()
def navigated() -> list[str]:
    return []


@pytest.fixture()
def make_controller(
    client: TeaTradeClient, session: Session, toasts: ToastLog, navigated: list[str]
) -> Iterator[Callable[..., FilteredListController]]:
    controllers: list[FilteredListController] = []

    def factory(resource: EntityResource = CATALOG, **kwargs: Any) -> FilteredListController:
        kwargs.setdefault("notifier", toasts)
        kwargs.setdefault("navigate", navigated.append)
        kwargs.setdefault("store", FilterStore())
        controller = FilteredListController(resource, client, session, **kwargs)
        controllers.append(controller)
        return controller

    yield factory

    for controller in controllers:
        controller.close()
