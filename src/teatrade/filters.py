"""Filter state shared by list screens and the draft used to edit it."""
from __future__ import annotations

import inspect
import logging
import math
from dataclasses import dataclass, field, fields, replace
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence

from pydantic.alias_generators import to_camel

from .dates import parse_trade_date
from .errors import FilterValidationError

logger = logging.getLogger(__name__)


class FieldKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    INTEGER = "integer"
    ENUM = "enum"
    DATE = "date"
    ID_LIST = "id_list"
    FLAG = "flag"
    REPRINT = "reprint"


INVALID_NUMBER = "Invalid number"
INVALID_DATE = "Invalid date"
INVALID_IDS = "Invalid IDs"
INVALID_CHOICE = "Invalid value"
INVALID_FLAG = "Invalid flag"
NEGATIVE_VALUE = "Value cannot be negative"


@dataclass(frozen=True)
class FiltersState:
    """Committed filter values for every list screen.

    A field left at ``None`` is unset. Each screen reads only the fields it
    declares through :meth:`FilterStore.subset`.
    """

    lot_no: str | None = None
    selling_mark: str | None = None
    producer_country: str | None = None
    manufacture_date: date | None = None
    sale_code: str | None = None
    category: str | None = None
    grade: str | None = None
    broker: str | None = None
    invoice_no: str | None = None
    asking_price: float | None = None
    purchase_price: float | None = None
    bags: int | None = None
    total_weight: float | None = None
    net_weight: float | None = None
    reprint: str | int | None = None
    search: str | None = None
    auction: str | None = None
    baseline_price: float | None = None
    batch_number: str | None = None
    min_weight: float | None = None
    assignment_status: str | None = None
    only_favorites: bool | None = None
    ids: tuple[int, ...] | None = None

    def values(self) -> dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


FILTER_NAMES = frozenset(item.name for item in fields(FiltersState))


@dataclass(frozen=True)
class FilterField:
    """How one screen reads, validates and serializes a filter value."""

    name: str
    kind: FieldKind = FieldKind.TEXT
    choices: tuple[str, ...] = ()
    minimum: float | None = None
    inclusive: bool = True
    bound_message: str | None = None
    sentinel: str | None = None
    param: str = field(default="")

    def __post_init__(self) -> None:
        if self.name not in FILTER_NAMES:
            raise ValueError(f"Unknown filter field: {self.name}")
        if not self.param:
            object.__setattr__(self, "param", to_camel(self.name))

    def is_unset(self, raw: Any) -> bool:
        if raw is None:
            return True
        if isinstance(raw, str):
            text = raw.strip()
            return text == "" or (self.sentinel is not None and text == self.sentinel)
        if isinstance(raw, (list, tuple)) and not raw:
            return True
        return False

    def coerce(self, raw: Any) -> Any:
        """Return the typed value for ``raw`` or ``None`` when it means unset.

        Raises ``ValueError`` carrying the message shown next to the field.
        """

        if self.is_unset(raw):
            return None
        if isinstance(raw, Enum):
            raw = raw.value

        if self.kind is FieldKind.TEXT:
            return str(raw).strip()
        if self.kind is FieldKind.NUMBER:
            return self._check_bound(_parse_number(raw))
        if self.kind is FieldKind.INTEGER:
            number = _parse_number(raw)
            if not float(number).is_integer():
                raise ValueError(INVALID_NUMBER)
            return int(self._check_bound(int(number)))
        if self.kind is FieldKind.ENUM:
            text = str(raw).strip()
            if self.choices and text not in self.choices:
                raise ValueError(INVALID_CHOICE)
            return text
        if self.kind is FieldKind.DATE:
            try:
                return parse_trade_date(raw)
            except (TypeError, ValueError):
                raise ValueError(INVALID_DATE) from None
        if self.kind is FieldKind.ID_LIST:
            return _parse_ids(raw)
        if self.kind is FieldKind.FLAG:
            return _parse_flag(raw)
        if self.kind is FieldKind.REPRINT:
            text = str(raw).strip()
            if text.lower() == "no":
                return "No"
            number = _parse_number(text)
            if not float(number).is_integer() or number < 0:
                raise ValueError("Reprint must be 'No' or a non-negative whole number")
            return str(int(number))
        raise ValueError(f"Unsupported filter kind: {self.kind}")

    def _check_bound(self, number: float) -> float:
        if self.minimum is None:
            return number
        below = number < self.minimum if self.inclusive else number <= self.minimum
        if below:
            raise ValueError(self.bound_message or self._default_bound_message())
        return number

    def _default_bound_message(self) -> str:
        if self.minimum == 0 and self.inclusive:
            return NEGATIVE_VALUE
        if self.inclusive:
            return f"Value must be at least {self.minimum:g}"
        return f"Value must be greater than {self.minimum:g}"


def _parse_number(raw: Any) -> float:
    if isinstance(raw, bool):
        raise ValueError(INVALID_NUMBER)
    if isinstance(raw, (int, float)):
        number = float(raw)
    else:
        try:
            number = float(str(raw).strip())
        except ValueError:
            raise ValueError(INVALID_NUMBER) from None
    if math.isnan(number) or math.isinf(number):
        raise ValueError(INVALID_NUMBER)
    if isinstance(raw, int) or number.is_integer() and "." not in str(raw):
        return int(number)
    return number


def _parse_ids(raw: Any) -> tuple[int, ...] | None:
    parts: Iterable[Any]
    if isinstance(raw, str):
        parts = [part.strip() for part in raw.split(",") if part.strip()]
    else:
        parts = raw
    ids: list[int] = []
    for part in parts:
        if isinstance(part, bool):
            raise ValueError(INVALID_IDS)
        try:
            value = int(str(part).strip())
        except ValueError:
            raise ValueError(INVALID_IDS) from None
        if value <= 0:
            raise ValueError(INVALID_IDS)
        ids.append(value)
    return tuple(ids) or None


def _parse_flag(raw: Any) -> bool | None:
    if isinstance(raw, bool):
        return raw or None
    text = str(raw).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return None
    raise ValueError(INVALID_FLAG)


Listener = Callable[[FiltersState], "Awaitable[None] | None"]


class FilterStore:
    """Holds the committed :class:`FiltersState` and notifies on commit."""

    def __init__(self, state: FiltersState | None = None) -> None:
        self._state = state or FiltersState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> FiltersState:
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def commit(self, state: FiltersState) -> None:
        self._state = state
        logger.debug("Filters committed: %s", _active(state.values()))
        for listener in list(self._listeners):
            result = listener(state)
            if inspect.isawaitable(result):
                await result

    async def update(self, **changes: Any) -> None:
        await self.commit(replace(self._state, **changes))

    async def reset(self) -> None:
        await self.commit(FiltersState())

    def subset(self, filter_fields: Sequence[FilterField]) -> dict[str, Any]:
        """Return the committed values ``filter_fields`` recognise.

        Values that no longer pass a field's validation are dropped.
        """

        selected: dict[str, Any] = {}
        for filter_field in filter_fields:
            raw = getattr(self._state, filter_field.name)
            try:
                value = filter_field.coerce(raw)
            except ValueError as exc:
                logger.warning("Dropping filter %s=%r: %s", filter_field.name, raw, exc)
                continue
            if value is not None:
                selected[filter_field.name] = value
        return selected


def _active(values: Mapping[str, Any]) -> dict[str, Any]:
    return {name: value for name, value in values.items() if value is not None}


class FilterDraft:
    """Editable copy of the committed filters for one screen.

    Every :meth:`set` validates the value and records an error message keyed
    by field name. :meth:`apply` refuses to commit while any error exists.
    """

    def __init__(self, store: FilterStore, filter_fields: Sequence[FilterField]) -> None:
        self.store = store
        self.fields = {filter_field.name: filter_field for filter_field in filter_fields}
        self.values: dict[str, Any] = store.subset(filter_fields)
        self.errors: dict[str, str] = {}

    def _field(self, name: str) -> FilterField:
        try:
            return self.fields[name]
        except KeyError:
            raise KeyError(f"Unknown filter field for this list: {name}") from None

    def set(self, name: str, raw: Any) -> Any:
        filter_field = self._field(name)
        try:
            value = filter_field.coerce(raw)
        except ValueError as exc:
            self.values[name] = raw
            self.errors[name] = str(exc)
            return raw
        self.errors.pop(name, None)
        if value is None:
            self.values.pop(name, None)
        else:
            self.values[name] = value
        return value

    def get(self, name: str) -> Any:
        self._field(name)
        return self.values.get(name)

    @property
    def can_apply(self) -> bool:
        return not self.errors

    async def apply(self) -> FiltersState:
        if self.errors:
            logger.info("Filter apply blocked: %s", self.errors)
            raise FilterValidationError(self.errors)
        changes = {name: self.values.get(name) for name in self.fields}
        state = replace(self.store.state, **changes)
        await self.store.commit(state)
        return state

    def revert(self) -> None:
        """Discard unapplied edits and reload from the committed state."""

        self.values = self.store.subset(list(self.fields.values()))
        self.errors.clear()

    async def reset(self) -> None:
        self.values.clear()
        self.errors.clear()
        await self.store.reset()


__all__ = [
    "FieldKind",
    "FiltersState",
    "FilterField",
    "FilterStore",
    "FilterDraft",
    "FILTER_NAMES",
    "INVALID_NUMBER",
    "INVALID_DATE",
    "INVALID_IDS",
    "NEGATIVE_VALUE",
]
