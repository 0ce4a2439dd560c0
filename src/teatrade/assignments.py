"""Handing stock lots to users and marking favorites."""
from __future__ import annotations

import logging
from typing import Mapping

from .bulk import NO_SELECTION, GuardedActions
from .errors import TeaTradeError, describe_error
from .schemas import AssignResult, FavoriteToggle, Page, User

logger = logging.getLogger(__name__)


class StockAssignmentGate(GuardedActions):
    """Assign selected stock to a user, take it back, or toggle a favorite.

    Assigning and unassigning are admin actions and ask for confirmation.
    Any signed-in user may toggle a favorite for themselves.
    """

    async def assign_selected(
        self, user_id: str, weights: Mapping[int, float] | None = None
    ) -> AssignResult | None:
        if self.busy:
            logger.debug("Assignment already running for %s", self.resource.name)
            return None
        self.busy = True
        try:
            if self._authorize(admin=True) is None:
                return None
            if self.selection.empty:
                self.notifier.error(NO_SELECTION)
                return None
            count = self.selection.count(self.fetcher.total)
            if not await self._confirmed(f"Assign {count} {self.resource.plural} to the selected user?"):
                return None

            result = await self._run(self._assign(user_id, weights), "Assignment", "Failed to assign stock.")
            if result is None:
                return None
            self.selection.clear()
            self.notifier.success(result.message or f"Assigned {len(result.records)} {self.resource.plural}")
            await self._reload()
            return result
        finally:
            self.busy = False

    async def _assign(self, user_id: str, weights: Mapping[int, float] | None) -> AssignResult:
        if self.selection.across_pages:
            ids = await self.fetcher.fetch_all_ids()
        else:
            ids = list(self.selection.selected)
        logger.info("Assigning %s %s record(s) to a user", len(ids), self.resource.noun)
        return await self.client.assign_stocks(self.resource, user_id, ids, weights)

    async def assign_one(self, stock_id: int, user_id: str) -> AssignResult | None:
        if self.busy:
            return None
        self.busy = True
        try:
            if self._authorize(admin=True) is None:
                return None
            result = await self._run(
                self.client.assign_stock(self.resource, stock_id, user_id),
                "Assignment",
                "Failed to assign stock.",
            )
            if result is None:
                return None
            self.notifier.success(result.message or "Stock assigned successfully!")
            await self._reload()
            return result
        finally:
            self.busy = False

    async def unassign(self, stock_id: int, user_id: str) -> AssignResult | None:
        if self.busy:
            return None
        self.busy = True
        try:
            if self._authorize(admin=True) is None:
                return None
            if not await self._confirmed(f"Remove this {self.resource.noun} from the user?"):
                return None
            result = await self._run(
                self.client.unassign_stock(self.resource, stock_id, user_id),
                "Unassignment",
                "Failed to unassign stock.",
            )
            if result is None:
                return None
            self.notifier.success(result.message or "Stock unassigned successfully!")
            await self._reload()
            return result
        finally:
            self.busy = False

    async def toggle_favorite(self, stock_id: int) -> FavoriteToggle | None:
        user = self._authorize(admin=False)
        if user is None:
            return None
        result = await self._run(
            self.client.toggle_favorite(self.resource, stock_id, user.user_id),
            "Favorite toggle",
            "Failed to toggle favorite.",
        )
        if result is None:
            return None
        self.notifier.success(result.message or "Favorite toggled successfully!")
        await self._reload()
        return result

    async def users(self, search: str | None = None, page: int = 1) -> Page[User] | None:
        """Users an admin can pick as the assignee."""

        if self._authorize(admin=True) is None:
            return None
        try:
            return await self.client.list_users(page=page, search=search)
        except TeaTradeError as exc:
            self.notifier.error(describe_error(exc, "Failed to load users"))
            return None


__all__ = ["StockAssignmentGate"]
