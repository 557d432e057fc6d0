"""Backend-as-a-service contract used by every service and sync object."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Iterable, Sequence

from lesson_app.backend.tables import Table

if TYPE_CHECKING:
    from lesson_app.backend.auth import AuthDirectory


class FilterOp(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    IS_NULL = "is_null"
    IN = "in"


@dataclass(frozen=True, slots=True)
class Filter:
    """Column predicate applied by ``select``, ``update`` and ``delete``."""

    column: str
    op: FilterOp
    value: Any = None


def eq(column: str, value: Any) -> Filter:
    return Filter(column, FilterOp.EQ, value)


def neq(column: str, value: Any) -> Filter:
    return Filter(column, FilterOp.NEQ, value)


def is_null(column: str, expected: bool = True) -> Filter:
    return Filter(column, FilterOp.IS_NULL, expected)


def in_(column: str, values: Iterable[Any]) -> Filter:
    return Filter(column, FilterOp.IN, tuple(values))


class EventType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A row change delivered to subscribers of a table."""

    event_type: EventType
    table: Table
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None


ChangeCallback = Callable[[ChangeEvent], None]


@dataclass(slots=True)
class Subscription:
    """Handle returned by ``subscribe``; pass it back to ``unsubscribe``."""

    id: int
    table: Table
    column: str
    value: Any
    callback: ChangeCallback = field(repr=False)
    active: bool = True

    def wants(self, event: ChangeEvent) -> bool:
        if not self.active or event.table is not self.table:
            return False
        for row in (event.new, event.old):
            if row is not None and row.get(self.column) == self.value:
                return True
        return False


class ObjectStorage(ABC):
    """Bucketed object storage."""

    @abstractmethod
    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` and return its path inside the bucket."""

    @abstractmethod
    def download(self, bucket: str, path: str) -> tuple[bytes, str]:
        """Return the stored bytes and content type; raise ``NotFoundError`` if missing."""

    @abstractmethod
    def remove(self, bucket: str, paths: Sequence[str]) -> None:
        ...

    @abstractmethod
    def get_public_url(self, bucket: str, path: str) -> str:
        ...


class BackendClient(ABC):
    """Relational store with change notifications, auth directory and storage.

    Implementations validate every written row against ``ROW_MODELS`` and raise
    ``BackendError`` for anything the store rejects. Rows are returned as plain
    dicts that the caller owns.
    """

    auth: "AuthDirectory"
    storage: ObjectStorage

    @abstractmethod
    def select(
        self,
        table: Table,
        filters: Sequence[Filter] = (),
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def insert(self, table: Table, row: dict[str, Any]) -> dict[str, Any]:
        ...

    @abstractmethod
    def update(
        self, table: Table, values: dict[str, Any], filters: Sequence[Filter]
    ) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def upsert(
        self, table: Table, rows: Sequence[dict[str, Any]], *, on_conflict: Sequence[str] = ("id",)
    ) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def delete(self, table: Table, filters: Sequence[Filter]) -> list[dict[str, Any]]:
        ...

    @abstractmethod
    def subscribe(
        self, table: Table, column: str, value: Any, callback: ChangeCallback
    ) -> Subscription:
        ...

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        ...

    def select_one(self, table: Table, filters: Sequence[Filter]) -> dict[str, Any] | None:
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None
