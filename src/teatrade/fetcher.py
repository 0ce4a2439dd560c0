"""Paged list fetching with newest-response-wins semantics."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from .auth import Session
from .client import TeaTradeClient
from .errors import AuthenticationRequired, TeaTradeError
from .resources import EntityResource
from .schemas import Page, PageMeta

logger = logging.getLogger(__name__)


class PaginatedFetcher:
    """Fetch one page of a resource for the active filters.

    Each :meth:`fetch` is numbered; a response that arrives after a newer
    request was issued is discarded so ``data`` always reflects the latest
    filters and page.
    """

    def __init__(
        self,
        client: TeaTradeClient,
        resource: EntityResource,
        session: Session,
        *,
        limit: int | None = None,
        fetch_all_limit: int | None = None,
    ) -> None:
        self.client = client
        self.resource = resource
        self.session = session
        self.limit = limit or client.settings.page_limit
        self.fetch_all_limit = fetch_all_limit or client.settings.fetch_all_limit
        self.filters: dict[str, Any] = {}
        self.page = 1
        self.data: list[Any] = []
        self.meta = PageMeta(page=1, limit=self.limit)
        self.loading = False
        self._sequence = 0

    @property
    def total(self) -> int:
        return self.meta.total

    @property
    def total_pages(self) -> int:
        return self.meta.total_pages

    @property
    def has_previous(self) -> bool:
        return not self.loading and self.page > 1

    @property
    def has_next(self) -> bool:
        return not self.loading and self.page < self.meta.total_pages

    @property
    def ids(self) -> list[int]:
        return [item.id for item in self.data]

    def set_filters(self, filters: Mapping[str, Any]) -> None:
        self.filters = dict(filters)
        self.page = 1

    async def fetch(self) -> Page[Any] | None:
        if not self.session.resolved:
            logger.debug("Skipping %s fetch: no resolved user", self.resource.name)
            return None

        self._sequence += 1
        sequence = self._sequence
        self.loading = True
        try:
            result = await self.client.list_page(self.resource, self.filters, self.page, self.limit)
        except TeaTradeError as exc:
            if sequence != self._sequence:
                logger.debug("Ignoring failure of stale %s fetch: %s", self.resource.name, exc)
                return None
            raise
        finally:
            if sequence == self._sequence:
                self.loading = False

        if sequence != self._sequence:
            logger.debug("Discarding stale %s page %s", self.resource.name, result.meta.page)
            return None
        self.data = list(result.data)
        self.meta = result.meta
        return result

    async def go_to(self, page: int) -> Page[Any] | None:
        if page < 1:
            raise ValueError("page must be at least 1")
        self.page = page
        return await self.fetch()

    async def next_page(self) -> Page[Any] | None:
        if not self.has_next:
            return None
        return await self.go_to(self.page + 1)

    async def previous_page(self) -> Page[Any] | None:
        if not self.has_previous:
            return None
        return await self.go_to(self.page - 1)

    async def fetch_all_ids(self) -> list[int]:
        """Return the id of every record matching the active filters."""

        if not self.session.resolved:
            raise AuthenticationRequired()
        result = await self.client.list_page(
            self.resource, self.filters, page=1, limit=self.fetch_all_limit
        )
        if result.meta.total > len(result.data):
            logger.warning(
                "%s matches %s records; only the first %s are included",
                self.resource.name,
                result.meta.total,
                len(result.data),
            )
        return [item.id for item in result.data]


__all__ = ["PaginatedFetcher"]
