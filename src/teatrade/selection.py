"""Row selection for list screens, including the select-across-pages flag."""
from __future__ import annotations

from typing import Any, Iterable


def is_valid_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class SelectionTracker:
    """Ordered set of selected ids.

    ``across_pages`` means "every record matching the filters", not only the
    ids held here; any change to individual rows drops it.
    """

    def __init__(self) -> None:
        self.selected: list[int] = []
        self.across_pages = False

    def __contains__(self, record_id: object) -> bool:
        return record_id in self.selected

    def __len__(self) -> int:
        return len(self.selected)

    def toggle(self, record_id: int) -> bool:
        """Flip ``record_id`` and return whether it is now selected."""

        self.across_pages = False
        if record_id in self.selected:
            self.selected.remove(record_id)
            return False
        self.selected.append(record_id)
        return True

    def select_all(self, page_ids: Iterable[Any], allow_across_pages: bool = True) -> None:
        valid = [record_id for record_id in page_ids if is_valid_id(record_id)]
        if not valid or self.across_pages or all(record_id in self.selected for record_id in valid):
            self.clear()
            return
        self.selected = list(dict.fromkeys(valid))
        self.across_pages = allow_across_pages

    def remove(self, record_id: int) -> None:
        if record_id in self.selected:
            self.selected.remove(record_id)
        self.across_pages = False

    def clear(self) -> None:
        self.selected = []
        self.across_pages = False

    def count(self, total: int) -> int:
        return total if self.across_pages else len(self.selected)

    @property
    def empty(self) -> bool:
        return not self.selected and not self.across_pages


__all__ = ["SelectionTracker", "is_valid_id"]
