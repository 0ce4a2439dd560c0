"""The filtered list controller shared by every record screen."""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Any, Literal, Mapping

from .assignments import StockAssignmentGate
from .auth import Session
from .bulk import BulkActionGate, Confirm
from .client import TeaTradeClient
from .csv_validation import validate_csv
from .enums import DuplicateAction
from .errors import (
    AuthenticationRequired,
    FilterValidationError,
    Forbidden,
    TeaTradeError,
    describe_error,
)
from .exporting import rows_to_csv, rows_to_xls, save_download
from .fetcher import PaginatedFetcher
from .filters import FilterDraft, FiltersState, FilterStore
from .notifications import Notifier, ToastLog
from .query import Navigate, UrlSynchronizer, parse_query_string
from .resources import EntityResource
from .schemas import AssignResult, DeleteResult, FavoriteToggle, Page, UploadResult, User
from .selection import SelectionTracker

logger = logging.getLogger(__name__)

INVALID_FILTERS = "Invalid filter values"
CSV_REJECTED = "CSV validation failed"
UPLOAD_FAILED = "Failed to upload CSV file."


class FilteredListController:
    """Filters, paging, selection, deletion, upload and export for one resource.

    Committing filters to ``store`` resets the page to 1, schedules the URL
    update and refetches. The store may be shared between controllers; each
    one reads only the fields its resource declares.
    """

    def __init__(
        self,
        resource: EntityResource,
        client: TeaTradeClient,
        session: Session | None = None,
        store: FilterStore | None = None,
        *,
        notifier: Notifier | None = None,
        navigate: Navigate | None = None,
        path: str | None = None,
        confirm: Confirm | None = None,
        limit: int | None = None,
    ) -> None:
        self.resource = resource
        self.client = client
        self.settings = client.settings
        self.session = session or client.session
        self.store = store or FilterStore()
        self.notifier = notifier or ToastLog()
        self.draft = FilterDraft(self.store, resource.filter_fields)
        self.fetcher = PaginatedFetcher(client, resource, self.session, limit=limit)
        self.selection = SelectionTracker()
        self.bulk = BulkActionGate(
            resource,
            client,
            self.session,
            self.selection,
            self.fetcher,
            self.notifier,
            confirm=confirm,
        )
        self.assignments: StockAssignmentGate | None = None
        if resource.supports_assignment:
            self.assignments = StockAssignmentGate(
                resource,
                client,
                self.session,
                self.selection,
                self.fetcher,
                self.notifier,
                confirm=confirm,
            )
        self.url = UrlSynchronizer(
            path or resource.list_path,
            navigate or _ignore_navigation,
            resource.filter_fields,
            delay=self.settings.url_debounce_seconds,
        )
        self.csv_errors: list[str] = []
        self._from_url = False
        self.fetcher.set_filters(self.store.subset(resource.filter_fields))
        self._unsubscribe = self.store.subscribe(self._on_commit)

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self.fetcher.filters)

    @property
    def data(self) -> list[Any]:
        return self.fetcher.data

    @property
    def plural(self) -> str:
        return f"{self.resource.noun}s"

    async def _on_commit(self, state: FiltersState) -> None:
        filters = self.store.subset(self.resource.filter_fields)
        self.fetcher.set_filters(filters)
        self.selection.clear()
        if not self._from_url:
            self.url.schedule(filters)
        await self.refresh()

    async def refresh(self) -> Page[Any] | None:
        try:
            return await self.fetcher.fetch()
        except TeaTradeError as exc:
            self.notifier.error(describe_error(exc, f"Failed to load {self.plural}"))
            return None

    # Filters

    def set_filter(self, name: str, raw: Any) -> Any:
        return self.draft.set(name, raw)

    async def apply_filters(self) -> bool:
        try:
            await self.draft.apply()
        except FilterValidationError as exc:
            description = "; ".join(f"{name}: {message}" for name, message in exc.errors.items())
            self.notifier.error(INVALID_FILTERS, description)
            return False
        return True

    async def reset_filters(self) -> None:
        await self.draft.reset()

    async def load_from_url(self, url: str) -> dict[str, Any]:
        """Rebuild filters from a deep link and load the first matching page."""

        values = parse_query_string(url, self.resource.filter_fields)
        changes = {field.name: values.get(field.name) for field in self.resource.filter_fields}
        self.draft.values = dict(values)
        self.draft.errors.clear()
        # The address already shows these filters.
        self._from_url = True
        try:
            await self.store.commit(replace(self.store.state, **changes))
        finally:
            self._from_url = False
        self.url.cancel()
        self.url.current_url = url
        return values

    # Paging

    async def _page(self, action: Any) -> Page[Any] | None:
        try:
            return await action
        except TeaTradeError as exc:
            self.notifier.error(describe_error(exc, f"Failed to load {self.plural}"))
            return None

    async def next_page(self) -> Page[Any] | None:
        return await self._page(self.fetcher.next_page())

    async def previous_page(self) -> Page[Any] | None:
        return await self._page(self.fetcher.previous_page())

    async def go_to(self, page: int) -> Page[Any] | None:
        return await self._page(self.fetcher.go_to(page))

    # Selection and deletion

    def toggle(self, record_id: int) -> bool:
        return self.selection.toggle(record_id)

    def select_all(self, allow_across_pages: bool = True) -> None:
        self.selection.select_all(self.fetcher.ids, allow_across_pages)

    @property
    def selected_count(self) -> int:
        return self.selection.count(self.fetcher.total)

    async def delete_selected(self) -> DeleteResult | None:
        return await self.bulk.delete_selected()

    async def delete_one(self, record_id: int) -> DeleteResult | None:
        return await self.bulk.delete_one(record_id)

    # Assignment and favorites

    def _assignment_gate(self) -> StockAssignmentGate | None:
        if self.assignments is None:
            self.notifier.error(f"{self.resource.noun.capitalize()} records cannot be assigned")
        return self.assignments

    async def assign_selected(
        self, user_id: str, weights: Mapping[int, float] | None = None
    ) -> AssignResult | None:
        gate = self._assignment_gate()
        return await gate.assign_selected(user_id, weights) if gate else None

    async def assign_one(self, stock_id: int, user_id: str) -> AssignResult | None:
        gate = self._assignment_gate()
        return await gate.assign_one(stock_id, user_id) if gate else None

    async def unassign(self, stock_id: int, user_id: str) -> AssignResult | None:
        gate = self._assignment_gate()
        return await gate.unassign(stock_id, user_id) if gate else None

    async def toggle_favorite(self, stock_id: int) -> FavoriteToggle | None:
        gate = self._assignment_gate()
        return await gate.toggle_favorite(stock_id) if gate else None

    async def assignable_users(self, search: str | None = None) -> Page[User] | None:
        gate = self._assignment_gate()
        return await gate.users(search) if gate else None

    # Upload

    async def upload_csv(
        self,
        source: str | Path | bytes,
        duplicate_action: DuplicateAction | str = DuplicateAction.SKIP,
        *,
        filename: str | None = None,
    ) -> UploadResult | None:
        try:
            self.session.require_admin()
        except (AuthenticationRequired, Forbidden) as exc:
            self.notifier.error(str(exc))
            return None

        if isinstance(source, bytes):
            content = source
            filename = filename or f"{self.resource.name}.csv"
        else:
            path = Path(source)
            content = path.read_bytes()
            filename = filename or path.name

        self.csv_errors = validate_csv(
            content, self.resource.csv_spec, max_bytes=self.settings.max_upload_bytes
        )
        if self.csv_errors:
            self.notifier.error(CSV_REJECTED, "; ".join(self.csv_errors))
            return None

        try:
            result = await self.client.upload_csv(self.resource, filename, content, duplicate_action)
        except TeaTradeError as exc:
            self.notifier.error(describe_error(exc, UPLOAD_FAILED))
            return None

        counts = result.success
        self.notifier.success(
            f"Successfully uploaded {counts.created} {self.resource.plural}!",
            f"Skipped {counts.skipped}, replaced {counts.replaced}",
        )
        if result.errors:
            details = "; ".join(f"Row {error.row}: {error.message}" for error in result.errors[:5])
            self.notifier.warning(f"{len(result.errors)} row(s) were rejected", details)
        await self.refresh()
        return result

    # Export

    async def export(self, directory: str | Path, ids: list[int] | None = None) -> Path | None:
        """Download the server-side export into ``directory``.

        Explicit ``ids`` win; otherwise the current selection is exported, or
        everything matching the filters when nothing (or every page) is
        selected.
        """

        try:
            self.session.require_user()
        except AuthenticationRequired as exc:
            self.notifier.error(str(exc))
            return None

        if ids is None and not self.selection.across_pages:
            ids = list(self.selection.selected)
        try:
            response = await self.client.export(self.resource, ids=ids or None, filters=self.fetcher.filters)
        except TeaTradeError as exc:
            self.notifier.error(describe_error(exc, f"Failed to export {self.plural}"))
            return None

        target = save_download(
            response,
            directory,
            prefix=self.resource.export_prefix,
            extension=self.resource.export_extension,
        )
        self.notifier.success(f"Exported {self.plural} to {target.name}")
        return target

    def export_rows(self, kind: Literal["csv", "xls"] = "csv") -> bytes:
        """Render the loaded rows (or the selected ones among them) locally."""

        rows = self.fetcher.data
        if self.selection.selected and not self.selection.across_pages:
            rows = [row for row in rows if row.id in self.selection]
        if kind == "csv":
            return rows_to_csv(self.resource.columns, rows)
        if kind == "xls":
            metadata = [
                ("Exported At", datetime.now().strftime("%Y-%m-%d %H:%M")),
                ("Records", len(rows)),
            ]
            return rows_to_xls(self.resource.columns, rows, metadata=metadata)
        raise ValueError(f"Unsupported export format: {kind}")

    async def filter_options(self) -> dict[str, Any]:
        try:
            return await self.client.filter_options(self.resource)
        except TeaTradeError as exc:
            self.notifier.error(describe_error(exc, "Failed to load filter options"))
            return {}

    def close(self) -> None:
        self._unsubscribe()
        self.url.cancel()


def _ignore_navigation(url: str) -> None:
    logger.debug("No navigator attached; dropping %s", url)


__all__ = ["FilteredListController", "INVALID_FILTERS", "CSV_REJECTED"]
