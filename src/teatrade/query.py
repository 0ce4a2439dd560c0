"""Query-string building and the debounced URL synchronizer."""
from __future__ import annotations

import asyncio
import inspect
import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit

from .filters import FilterField

logger = logging.getLogger(__name__)

UNSET_MARKERS = frozenset({"", "any"})


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def clean_params(params: Mapping[str, Any], unset: frozenset[str] = UNSET_MARKERS) -> dict[str, str]:
    """Drop unset values and stringify the rest for a query string.

    A value is unset when it is None, an empty list, or its text is in ``unset``.
    """

    cleaned: dict[str, str] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            items = [_format(item) for item in value if item is not None]
            if not items:
                continue
            cleaned[key] = ",".join(items)
            continue
        text = _format(value)
        if text.strip() in unset:
            continue
        cleaned[key] = text
    return cleaned


def filter_params(values: Mapping[str, Any], filter_fields: Sequence[FilterField]) -> dict[str, str]:
    """Map snake_case filter values to the camelCase parameters the API reads."""

    ordered: dict[str, Any] = {}
    for filter_field in filter_fields:
        value = values.get(filter_field.name)
        if not filter_field.is_unset(value):
            ordered[filter_field.param] = value
    return clean_params(ordered, unset=frozenset({""}))


def to_query_string(values: Mapping[str, Any], filter_fields: Sequence[FilterField]) -> str:
    return urlencode(filter_params(values, filter_fields))


def parse_query_string(query: str, filter_fields: Sequence[FilterField]) -> dict[str, Any]:
    """Rebuild filter values from a query string, or from a full URL."""

    if "?" in query:
        query = urlsplit(query).query
    by_param = {filter_field.param: filter_field for filter_field in filter_fields}
    values: dict[str, Any] = {}
    for key, raw in parse_qsl(query.lstrip("?"), keep_blank_values=False):
        filter_field = by_param.get(key)
        if filter_field is None:
            continue
        try:
            value = filter_field.coerce(raw)
        except ValueError as exc:
            logger.warning("Ignoring query parameter %s=%r: %s", key, raw, exc)
            continue
        if value is not None:
            values[filter_field.name] = value
    return values


Navigate = Callable[[str], "Awaitable[None] | None"]


class UrlSynchronizer:
    """Write committed filters into the address after a quiet period.

    Each :meth:`schedule` call replaces the pending update, so a burst of
    filter commits results in a single ``navigate`` call.
    """

    def __init__(
        self,
        path: str,
        navigate: Navigate,
        filter_fields: Sequence[FilterField],
        *,
        delay: float = 0.3,
    ) -> None:
        self.path = path
        self.navigate = navigate
        self.filter_fields = list(filter_fields)
        self.delay = delay
        self.current_url: str | None = None
        self._pending: asyncio.Task[None] | None = None
        self._pending_values: Mapping[str, Any] | None = None

    def url_for(self, values: Mapping[str, Any]) -> str:
        query = to_query_string(values, self.filter_fields)
        return f"{self.path}?{query}" if query else self.path

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def schedule(self, values: Mapping[str, Any]) -> None:
        self.cancel()
        self._pending_values = dict(values)
        self._pending = asyncio.get_running_loop().create_task(self._push_later())

    async def _push_later(self) -> None:
        await asyncio.sleep(self.delay)
        await self._push()

    async def _push(self) -> None:
        values = self._pending_values
        self._pending_values = None
        if values is None:
            return
        url = self.url_for(values)
        self.current_url = url
        logger.debug("Navigating to %s", url)
        result = self.navigate(url)
        if inspect.isawaitable(result):
            await result

    async def flush(self) -> None:
        """Push any pending update now instead of waiting out the delay."""

        task = self._pending
        self._pending = None
        if self._pending_values is None:
            # Already past the delay and navigating.
            if task is not None:
                await task
            return
        if task is not None and not task.done():
            task.cancel()
        await self._push()

    def cancel(self) -> None:
        task = self._pending
        self._pending = None
        self._pending_values = None
        if task is not None and not task.done():
            task.cancel()


__all__ = [
    "clean_params",
    "filter_params",
    "to_query_string",
    "parse_query_string",
    "UrlSynchronizer",
]
