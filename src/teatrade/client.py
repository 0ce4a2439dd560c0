"""Async HTTP client for the tea-trading REST API."""
from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

import httpx
from pydantic import ValidationError

from .auth import Session
from .config import Settings, get_settings
from .enums import DuplicateAction, ShipmentStatus
from .errors import RequestFailed, RequestTimedOut, RequestUnavailable, TeaTradeError, UnexpectedResponse
from .query import clean_params, filter_params
from .resources import EntityResource
from .schemas import (
    Admin,
    AssignResult,
    DeleteResult,
    ErrorResponse,
    FavoriteToggle,
    Page,
    Shipment,
    UploadResult,
    User,
    WireModel,
)

logger = logging.getLogger(__name__)


def _error_from_response(response: httpx.Response) -> RequestFailed:
    try:
        body = response.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return RequestFailed(response.status_code)
    try:
        error = ErrorResponse.model_validate(body)
    except ValidationError:
        return RequestFailed(response.status_code)
    return RequestFailed(response.status_code, error.text, error.details)


def _unwrap(payload: Any) -> Any:
    if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
        return payload["data"]
    return payload


class TeaTradeClient:
    """Thin wrapper over :class:`httpx.AsyncClient`.

    Every call carries the session's bearer token. Failures surface as
    :class:`~teatrade.errors.RequestFailed`,
    :class:`~teatrade.errors.RequestTimedOut` or
    :class:`~teatrade.errors.RequestUnavailable`; nothing is retried.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session: Session | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.session = session or Session()
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            base_url=self.settings.api_base_url,
            timeout=self.settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "TeaTradeClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    def _headers(self) -> dict[str, str]:
        token = self.session.token
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {**self._headers(), **kwargs.pop("headers", {})}
        logger.debug("%s %s", method, path)
        try:
            response = await self.http.request(method, path, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out", method, path)
            raise RequestTimedOut() from exc
        except httpx.TransportError as exc:
            logger.warning("%s %s could not be sent: %s", method, path, exc)
            raise RequestUnavailable() from exc
        if response.is_error:
            error = _error_from_response(response)
            logger.warning("%s %s failed with %s: %s", method, path, response.status_code, error.message)
            raise error
        return response

    async def _json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self.request(method, path, **kwargs)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("%s %s answered with a non-JSON body", method, path)
            raise UnexpectedResponse(f"Unexpected response from {path}") from exc

    async def list_page(
        self,
        resource: EntityResource,
        filters: Mapping[str, Any],
        page: int = 1,
        limit: int | None = None,
    ) -> Page[Any]:
        params = filter_params(filters, resource.filter_fields)
        params.update(page=str(page), limit=str(limit or self.settings.page_limit))
        payload = await self._json("GET", resource.list_path, params=params)
        try:
            return Page[resource.model].model_validate(payload)
        except ValidationError as exc:
            raise UnexpectedResponse(f"Unexpected {resource.noun} list payload: {exc}") from exc

    async def get(self, resource: EntityResource, record_id: int) -> WireModel:
        payload = await self._json("GET", f"{resource.list_path}/{record_id}")
        return resource.model.model_validate(_unwrap(payload))

    async def filter_options(self, resource: EntityResource) -> dict[str, Any]:
        if resource.filter_options_path is None:
            return {}
        return _unwrap(await self._json("GET", resource.filter_options_path))

    async def delete_ids(self, resource: EntityResource, ids: Iterable[int]) -> DeleteResult:
        body = {"ids": list(ids)}
        payload = await self._json("DELETE", resource.delete_path, json=body)
        return DeleteResult.model_validate(payload)

    async def delete_by_filter(self, resource: EntityResource, filters: Mapping[str, Any]) -> DeleteResult:
        if resource.delete_all_path is None:
            raise TeaTradeError(f"{resource.noun} records cannot be deleted by filter")
        body: dict[str, Any] = dict(filter_params(filters, resource.filter_fields))
        if resource.delete_all_confirm:
            body["confirm"] = True
        payload = await self._json("DELETE", resource.delete_all_path, json=body)
        return DeleteResult.model_validate(payload)

    async def upload_csv(
        self,
        resource: EntityResource,
        filename: str,
        content: bytes,
        duplicate_action: DuplicateAction | str | None = None,
    ) -> UploadResult:
        data = {}
        if duplicate_action:
            data["duplicateAction"] = DuplicateAction(duplicate_action).value
        files = {"file": (filename, content, "text/csv")}
        payload = await self._json("POST", resource.upload_path, files=files, data=data)
        return UploadResult.model_validate(payload)

    async def export(
        self,
        resource: EntityResource,
        ids: Iterable[int] | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        body: dict[str, Any] = dict(filter_params(filters or {}, resource.filter_fields))
        body.update(
            clean_params(
                {
                    resource.export_ids_param: list(ids) if ids else None,
                    "page": 1,
                    "limit": self.settings.fetch_all_limit,
                }
            )
        )
        return await self.request("POST", resource.export_path, json=body)

    # Stock assignment

    def _assignment_path(self, resource: EntityResource, path: str | None) -> str:
        if path is None:
            raise TeaTradeError(f"{resource.noun} records cannot be assigned to users")
        return path

    async def assign_stock(self, resource: EntityResource, stock_id: int, user_id: str) -> AssignResult:
        path = self._assignment_path(resource, resource.assign_path)
        payload = await self._json("POST", path, json={"stockId": stock_id, "userCognitoId": user_id})
        return AssignResult.model_validate(payload)

    async def assign_stocks(
        self,
        resource: EntityResource,
        user_id: str,
        stock_ids: Iterable[int],
        weights: Mapping[int, float] | None = None,
    ) -> AssignResult:
        """Assign several stocks to one user.

        Without an entry in ``weights`` the server assigns the stock's full weight.
        """

        path = self._assignment_path(resource, resource.bulk_assign_path)
        weights = weights or {}
        assignments = [
            {"stockId": stock_id, **({"assignedWeight": weights[stock_id]} if stock_id in weights else {})}
            for stock_id in stock_ids
        ]
        payload = await self._json("POST", path, json={"userCognitoId": user_id, "assignments": assignments})
        return AssignResult.model_validate(payload)

    async def unassign_stock(self, resource: EntityResource, stock_id: int, user_id: str) -> AssignResult:
        path = self._assignment_path(resource, resource.unassign_path)
        payload = await self._json("POST", path, json={"stockId": stock_id, "userCognitoId": user_id})
        return AssignResult.model_validate(payload)

    async def toggle_favorite(self, resource: EntityResource, stock_id: int, user_id: str) -> FavoriteToggle:
        if resource.favorite_path is None:
            raise TeaTradeError(f"{resource.noun} records cannot be favorited")
        payload = await self._json(
            "POST", resource.favorite_path, json={"userCognitoId": user_id, "stocksId": stock_id}
        )
        return FavoriteToggle.model_validate(payload)

    # People and shipments

    async def list_users(self, page: int = 1, limit: int | None = None, search: str | None = None) -> Page[User]:
        params = clean_params({"page": page, "limit": limit or self.settings.page_limit, "search": search})
        payload = _unwrap(await self._json("GET", "/users/logged-in", params=params))
        try:
            return Page[User].model_validate(payload)
        except ValidationError as exc:
            raise UnexpectedResponse(f"Unexpected user list payload: {exc}") from exc

    async def get_admin(self, admin_id: str) -> Admin:
        payload = await self._json("GET", f"/admin/{admin_id}")
        return Admin.model_validate(_unwrap(payload))

    async def list_shipments(
        self,
        page: int = 1,
        limit: int | None = None,
        *,
        user_id: str | None = None,
        status: ShipmentStatus | str | None = None,
        search: str | None = None,
    ) -> Page[Shipment]:
        path = f"/shipments/users/{user_id}/shipments" if user_id else "/shipments/admin/shipments"
        params = clean_params(
            {"page": page, "limit": limit or self.settings.page_limit, "status": status, "search": search}
        )
        payload = await self._json("GET", path, params=params)
        try:
            return Page[Shipment].model_validate(payload)
        except ValidationError as exc:
            raise UnexpectedResponse(f"Unexpected shipment list payload: {exc}") from exc

    async def update_shipment_status(self, shipment_id: int, status: ShipmentStatus | str) -> Shipment:
        body = {"status": ShipmentStatus(status).value}
        payload = await self._json("PUT", f"/shipments/admin/shipments/{shipment_id}/status", json=body)
        return Shipment.model_validate(_unwrap(payload))


__all__ = ["TeaTradeClient"]
