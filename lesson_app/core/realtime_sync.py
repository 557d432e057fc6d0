"""Keep a local copy of backend rows current as they change.

``RealTimeSync`` follows the single row matching ``filter_column = value``;
``RealTimeCollection`` follows every matching row. Both fetch once when a
filter value is set, subscribe to change events for that value and expose
their state through ``snapshot``. Fetch failures end up in ``snapshot.error``
and are never raised to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from threading import Lock
from typing import Any, Callable

from pydantic import BaseModel, ValidationError

from lesson_app.backend.client import BackendClient, ChangeEvent, EventType, Subscription, eq
from lesson_app.backend.tables import ROW_MODELS, Table
from lesson_app.core.errors import BackendError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SyncState:
    data: Any
    loading: bool
    error: str | None


SyncListener = Callable[[SyncState], None]


class _SyncBase:
    def __init__(
        self,
        backend: BackendClient,
        table: Table,
        filter_column: str,
        *,
        order_by: str | None = None,
        descending: bool = False,
        on_change: SyncListener | None = None,
    ) -> None:
        self._backend = backend
        self._table = table
        self._row_model: type[BaseModel] = ROW_MODELS[table]
        self._filter_column = filter_column
        self._order_by = order_by
        self._descending = descending
        self._lock = Lock()
        self._generation = 0
        self._filter_value: Any = None
        self._subscription: Subscription | None = None
        self._data: Any = self._empty()
        self._loading = False
        self._error: str | None = None
        self._listeners: list[SyncListener] = [on_change] if on_change else []

    # -- public API ----------------------------------------------------------

    @property
    def snapshot(self) -> SyncState:
        with self._lock:
            return SyncState(data=self._data, loading=self._loading, error=self._error)

    @property
    def data(self) -> Any:
        return self.snapshot.data

    @property
    def filter_value(self) -> Any:
        with self._lock:
            return self._filter_value

    @property
    def is_subscribed(self) -> bool:
        with self._lock:
            return self._subscription is not None

    def add_listener(self, listener: SyncListener) -> None:
        self._listeners.append(listener)

    def set_filter_value(self, value: Any) -> None:
        """Follow the rows matching ``value``; an empty value turns the sync off."""

        active = value not in (None, "")
        with self._lock:
            self._generation += 1
            generation = self._generation
            previous = self._subscription
            self._subscription = None
            self._filter_value = value if active else None
            self._error = None
            # Rows of the previous target never outlive a retarget.
            self._data = self._empty()
            self._loading = active

        if previous is not None:
            self._backend.unsubscribe(previous)
        self._notify()
        if not active:
            return

        self._fetch(generation, value)
        subscription = self._backend.subscribe(
            self._table, self._filter_column, value, partial(self._handle_event, generation)
        )
        with self._lock:
            if generation == self._generation:
                self._subscription = subscription
                return
        # Retargeted while subscribing.
        self._backend.unsubscribe(subscription)

    def refresh(self) -> None:
        with self._lock:
            generation = self._generation
            value = self._filter_value
        if value is not None:
            self._fetch(generation, value)

    def deactivate(self) -> None:
        """Release the subscription; results that arrive afterwards are dropped."""

        with self._lock:
            self._generation += 1
            previous = self._subscription
            self._subscription = None
            self._loading = False
        if previous is not None:
            self._backend.unsubscribe(previous)

    # -- internals -----------------------------------------------------------

    def _empty(self) -> Any:
        raise NotImplementedError

    def _load(self, value: Any) -> Any:
        raise NotImplementedError

    def _handle_event(self, generation: int, event: ChangeEvent) -> None:
        raise NotImplementedError

    def _fetch(self, generation: int, value: Any) -> None:
        data = self._empty()
        error: str | None = None
        current = False
        try:
            data = self._load(value)
        except (BackendError, ValidationError) as exc:
            logger.error(
                "Failed to fetch %s where %s=%s: %s", self._table.value, self._filter_column, value, exc
            )
            error = str(exc)
        finally:
            with self._lock:
                current = generation == self._generation
                if current:
                    self._loading = False
                    self._error = error
                    if error is None:
                        self._data = data
        if current:
            self._notify()

    def _notify(self) -> None:
        state = self.snapshot
        for listener in list(self._listeners):
            listener(state)


class RealTimeSync(_SyncBase):
    """Single-row sync: ``data`` is a validated row model or ``None``."""

    def _empty(self) -> Any:
        return None

    def _load(self, value: Any) -> BaseModel | None:
        rows = self._backend.select(
            self._table,
            [eq(self._filter_column, value)],
            order_by=self._order_by,
            descending=self._descending,
            limit=1,
        )
        if not rows:
            logger.warning("No %s row where %s=%s", self._table.value, self._filter_column, value)
            return None
        return self._row_model.model_validate(rows[0])

    def _handle_event(self, generation: int, event: ChangeEvent) -> None:
        if event.event_type is EventType.DELETE:
            data = None
            error = None
        else:
            try:
                data = self._row_model.model_validate(event.new)
                error = None
            except ValidationError as exc:
                logger.error("Discarding invalid %s event payload: %s", self._table.value, exc)
                data = None
                error = str(exc)
        with self._lock:
            if generation != self._generation:
                return
            self._error = error
            if error is None:
                self._data = data
        self._notify()


class RealTimeCollection(_SyncBase):
    """Collection sync: ``data`` is an ordered list of validated row models."""

    def _empty(self) -> Any:
        return []

    def _load(self, value: Any) -> list[BaseModel]:
        rows = self._backend.select(
            self._table,
            [eq(self._filter_column, value)],
            order_by=self._order_by,
            descending=self._descending,
        )
        return [self._row_model.model_validate(row) for row in rows]

    def _handle_event(self, generation: int, event: ChangeEvent) -> None:
        with self._lock:
            if generation != self._generation:
                return
            value = self._filter_value
        self._fetch(generation, value)
