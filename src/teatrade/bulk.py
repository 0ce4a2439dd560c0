"""Confirmation-gated bulk deletion."""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Literal, TypeVar

from .auth import Session
from .client import TeaTradeClient
from .errors import AuthenticationRequired, Forbidden, RequestTimedOut, TeaTradeError, describe_error
from .fetcher import PaginatedFetcher
from .notifications import Notifier
from .resources import EntityResource
from .schemas import AuthUser, DeleteResult
from .selection import SelectionTracker

logger = logging.getLogger(__name__)

Confirm = Callable[[str], "Awaitable[bool] | bool"]
Timeout = float | None | Literal["settings"]
R = TypeVar("R")

NO_SELECTION = "No items selected"


class GuardedActions:
    """Shared plumbing for list actions that change records on the server.

    Each action runs with ``busy`` set so a second one started meanwhile is
    ignored. Identity and role are checked first, then the ``confirm``
    callback, then a single request bounded by ``timeout``. Failures become
    error toasts; the current page is reloaded after a success.
    """

    def __init__(
        self,
        resource: EntityResource,
        client: TeaTradeClient,
        session: Session,
        selection: SelectionTracker,
        fetcher: PaginatedFetcher,
        notifier: Notifier,
        *,
        confirm: Confirm | None = None,
        timeout: Timeout = "settings",
    ) -> None:
        self.resource = resource
        self.client = client
        self.session = session
        self.selection = selection
        self.fetcher = fetcher
        self.notifier = notifier
        self.confirm = confirm
        if timeout == "settings":
            timeout = resource.delete_timeout
        if timeout == "settings":
            timeout = client.settings.bulk_delete_timeout_seconds
        self.timeout = timeout
        self.busy = False

    @property
    def plural(self) -> str:
        return f"{self.resource.noun}s"

    def _authorize(self, admin: bool | None = None) -> AuthUser | None:
        if admin is None:
            admin = self.resource.admin_required
        try:
            return self.session.require_admin() if admin else self.session.require_user()
        except (AuthenticationRequired, Forbidden) as exc:
            self.notifier.error(str(exc))
            return None

    async def _confirmed(self, message: str) -> bool:
        if self.confirm is None:
            return True
        answer = self.confirm(message)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    async def _run(self, operation: Awaitable[R], action: str, fallback: str | None = None) -> R | None:
        try:
            return await asyncio.wait_for(operation, self.timeout)
        except (asyncio.TimeoutError, RequestTimedOut):
            logger.warning("%s of %s timed out", action, self.resource.name)
            self.notifier.error(f"{action} request timed out")
        except TeaTradeError as exc:
            self.notifier.error(describe_error(exc, fallback or f"{action} failed"))
        return None

    async def _reload(self) -> None:
        try:
            await self.fetcher.fetch()
            if not self.fetcher.data and self.fetcher.page > 1:
                await self.fetcher.go_to(self.fetcher.page - 1)
        except TeaTradeError as exc:
            self.notifier.error(describe_error(exc, f"Failed to reload {self.plural}"))


class BulkActionGate(GuardedActions):
    """Delete the selected records of one list, or a single record."""

    def confirm_message(self) -> str:
        count = self.selection.count(self.fetcher.total)
        if self.selection.across_pages:
            return (
                f"You are about to delete ALL {count} {self.resource.plural} across all pages. "
                "This action cannot be undone."
            )
        return f"You are about to delete {count} {self.resource.plural}. This action cannot be undone."

    async def delete_selected(self) -> DeleteResult | None:
        if self.busy:
            logger.debug("Delete already running for %s", self.resource.name)
            return None
        self.busy = True
        try:
            if self._authorize() is None:
                return None
            if self.selection.empty:
                self.notifier.error(NO_SELECTION)
                return None
            if not await self._confirmed(self.confirm_message()):
                logger.info("Bulk delete of %s cancelled", self.resource.name)
                return None

            result = await self._run(self._dispatch_selection(), "Bulk deletion")
            if result is not None:
                self.selection.clear()
                await self._after_delete(result)
            return result
        finally:
            self.busy = False

    async def delete_one(self, record_id: int) -> DeleteResult | None:
        if self.busy:
            logger.debug("Delete already running for %s", self.resource.name)
            return None
        self.busy = True
        try:
            if self._authorize() is None:
                return None
            message = f"You are about to delete 1 {self.resource.plural}. This action cannot be undone."
            if not await self._confirmed(message):
                return None

            result = await self._run(self.client.delete_ids(self.resource, [record_id]), "Deletion")
            if result is not None:
                self.selection.remove(record_id)
                await self._after_delete(result)
            return result
        finally:
            self.busy = False

    async def _dispatch_selection(self) -> DeleteResult:
        if self.selection.across_pages:
            if self.resource.supports_delete_by_filter:
                logger.info("Deleting every %s matching %s", self.resource.noun, self.fetcher.filters)
                return await self.client.delete_by_filter(self.resource, self.fetcher.filters)
            ids = await self.fetcher.fetch_all_ids()
        else:
            ids = list(self.selection.selected)
        if not ids:
            return DeleteResult(deleted_count=0)
        logger.info("Deleting %s %s record(s)", len(ids), self.resource.noun)
        return await self.client.delete_ids(self.resource, ids)

    async def _after_delete(self, result: DeleteResult) -> None:
        if result.deleted_count == 0:
            self.notifier.warning(f"No {self.plural} were deleted")
        else:
            count = result.deleted_count if result.deleted_count is not None else "the selected"
            self.notifier.success(result.message or f"Successfully deleted {count} {self.resource.plural}")
        await self._reload()


__all__ = ["GuardedActions", "BulkActionGate", "Confirm", "NO_SELECTION"]
