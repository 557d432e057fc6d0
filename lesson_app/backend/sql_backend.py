"""SQLAlchemy implementation of the backend contract.

The teacher console and the student server share one ``SqlBackend``. Writes
are serialized by the database lock (last write wins per row) and change
events are dispatched to subscribers after the transaction commits and the
lock is released, so a callback may read or write the backend again.
"""

from __future__ import annotations

import copy
import itertools
import logging
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Sequence

from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session

from lesson_app.backend.auth import AuthDirectory
from lesson_app.backend.client import (
    BackendClient,
    ChangeCallback,
    ChangeEvent,
    EventType,
    Filter,
    FilterOp,
    ObjectStorage,
    Subscription,
)
from lesson_app.backend.database import Database
from lesson_app.backend.orm_models import ORM_MODELS, StoredObject
from lesson_app.backend.tables import ROW_MODELS, Table
from lesson_app.core.errors import BackendError, NotFoundError
from lesson_app.core.models import AuthUser

logger = logging.getLogger(__name__)


class DatabaseStorage(ObjectStorage):
    """Bucketed objects kept in the ``stored_objects`` table."""

    def __init__(self, database: Database, public_base_url: str = "") -> None:
        self._database = database
        self.public_base_url = public_base_url.rstrip("/")

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        path = path.strip("/")
        if not path:
            raise BackendError("Object paths must not be empty.")
        with self._database.session() as db:
            stored = self._find(db, bucket, path)
            if stored is None:
                db.add(StoredObject(bucket=bucket, path=path, data=bytes(data), content_type=content_type))
            else:
                stored.data = bytes(data)
                stored.content_type = content_type
        return path

    def download(self, bucket: str, path: str) -> tuple[bytes, str]:
        with self._database.session() as db:
            stored = self._find(db, bucket, path.strip("/"))
            if stored is None:
                raise NotFoundError(f"No object at {bucket}/{path}.")
            return bytes(stored.data), stored.content_type

    def remove(self, bucket: str, paths: Sequence[str]) -> None:
        with self._database.session() as db:
            for path in paths:
                stored = self._find(db, bucket, path.strip("/"))
                if stored is not None:
                    db.delete(stored)

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/storage/{bucket}/{path.strip('/')}"

    @staticmethod
    def _find(db: Session, bucket: str, path: str) -> StoredObject | None:
        return (
            db.query(StoredObject)
            .filter(StoredObject.bucket == bucket, StoredObject.path == path)
            .first()
        )


class SqlBackend(BackendClient):
    """Relational tables with validation, ordering and change events."""

    def __init__(self, database: Database, public_base_url: str = "") -> None:
        self.database = database
        self._subscription_lock = RLock()
        self._subscriptions: dict[int, Subscription] = {}
        self._subscription_ids = itertools.count(1)
        self.auth = AuthDirectory(database, on_register=self._create_profile)
        self.storage = DatabaseStorage(database, public_base_url)

    @classmethod
    def from_url(cls, database_url: str, public_base_url: str = "") -> "SqlBackend":
        return cls(Database(database_url), public_base_url=public_base_url)

    # -- reads ---------------------------------------------------------------

    def select(
        self,
        table: Table,
        filters: Sequence[Filter] = (),
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        model = ORM_MODELS[table]
        with self.database.session() as db:
            query = db.query(model).filter(*_clauses(model, filters))
            if order_by is not None:
                column = _column(model, order_by)
                # Rows missing the column sort last regardless of direction.
                ordering = column.desc() if descending else column.asc()
                query = query.order_by(ordering.nulls_last(), model.pk)
            else:
                query = query.order_by(model.pk)
            if limit is not None:
                query = query.limit(limit)
            return [_read(table, instance) for instance in query.all()]

    # -- writes --------------------------------------------------------------

    def insert(self, table: Table, row: dict[str, Any]) -> dict[str, Any]:
        model = ORM_MODELS[table]
        validated = _validate(table, row)
        with self.database.session() as db:
            if db.query(model.pk).filter(model.id == validated["id"]).first() is not None:
                raise BackendError(f"Duplicate id {validated['id']} in {table.value}.")
            db.add(model(**_to_columns(validated)))
        self._dispatch(ChangeEvent(EventType.INSERT, table, new=validated))
        return copy.deepcopy(validated)

    def update(
        self, table: Table, values: dict[str, Any], filters: Sequence[Filter]
    ) -> list[dict[str, Any]]:
        if "id" in values:
            raise BackendError("Row ids cannot be updated.")
        model = ORM_MODELS[table]
        events: list[ChangeEvent] = []
        with self.database.session() as db:
            targets = db.query(model).filter(*_clauses(model, filters)).order_by(model.pk).all()
            old_rows = [_read(table, instance) for instance in targets]
            # Validate every target before touching any of them.
            new_rows = [_validate(table, {**old, **values}) for old in old_rows]
            for instance, old, new in zip(targets, old_rows, new_rows):
                for key, value in _to_columns(new).items():
                    setattr(instance, key, value)
                events.append(ChangeEvent(EventType.UPDATE, table, new=new, old=old))
        for event in events:
            self._dispatch(event)
        return [copy.deepcopy(event.new) for event in events]

    def upsert(
        self, table: Table, rows: Sequence[dict[str, Any]], *, on_conflict: Sequence[str] = ("id",)
    ) -> list[dict[str, Any]]:
        model = ORM_MODELS[table]
        events: list[ChangeEvent] = []
        with self.database.session() as db:
            for row in rows:
                existing = self._find_conflict(db, model, row, on_conflict)
                if existing is None:
                    new = _validate(table, row)
                    if db.query(model.pk).filter(model.id == new["id"]).first() is not None:
                        raise BackendError(f"Duplicate id {new['id']} in {table.value}.")
                    db.add(model(**_to_columns(new)))
                    events.append(ChangeEvent(EventType.INSERT, table, new=new))
                else:
                    old = _read(table, existing)
                    new = _validate(table, {**old, **{k: v for k, v in row.items() if k != "id"}})
                    for key, value in _to_columns(new).items():
                        setattr(existing, key, value)
                    events.append(ChangeEvent(EventType.UPDATE, table, new=new, old=old))
                db.flush()
        for event in events:
            self._dispatch(event)
        return [copy.deepcopy(event.new) for event in events]

    def delete(self, table: Table, filters: Sequence[Filter]) -> list[dict[str, Any]]:
        model = ORM_MODELS[table]
        with self.database.session() as db:
            targets = db.query(model).filter(*_clauses(model, filters)).order_by(model.pk).all()
            removed = [_read(table, instance) for instance in targets]
            for instance in targets:
                db.delete(instance)
        for row in removed:
            self._dispatch(ChangeEvent(EventType.DELETE, table, old=row))
        return copy.deepcopy(removed)

    # -- change notifications --------------------------------------------------

    def subscribe(
        self, table: Table, column: str, value: Any, callback: ChangeCallback
    ) -> Subscription:
        with self._subscription_lock:
            subscription = Subscription(
                id=next(self._subscription_ids),
                table=table,
                column=column,
                value=value,
                callback=callback,
            )
            self._subscriptions[subscription.id] = subscription
        logger.debug("Subscribed #%s to %s.%s=%s", subscription.id, table.value, column, value)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._subscription_lock:
            subscription.active = False
            self._subscriptions.pop(subscription.id, None)
        logger.debug("Unsubscribed #%s", subscription.id)

    @property
    def subscription_count(self) -> int:
        with self._subscription_lock:
            return len(self._subscriptions)

    def _dispatch(self, event: ChangeEvent) -> None:
        with self._subscription_lock:
            targets = [sub for sub in self._subscriptions.values() if sub.wants(event)]
        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.callback(_copy_event(event))
            except Exception:  # noqa: BLE001
                logger.exception("Change listener #%s failed", subscription.id)

    # -- helpers ---------------------------------------------------------------

    @staticmethod
    def _find_conflict(db: Session, model: type, row: dict[str, Any], on_conflict: Sequence[str]):
        if not all(column in row for column in on_conflict):
            return None
        conditions = [_column(model, column) == row[column] for column in on_conflict]
        return db.query(model).filter(*conditions).first()

    def _create_profile(self, user: AuthUser) -> None:
        self.upsert(
            Table.PROFILES,
            [{"id": user.id, "name": user.name, "email": user.email, "role": user.role.value}],
        )


def _column(model: type, name: str):
    if name == "pk" or name not in model.__table__.columns:
        raise BackendError(f"Unknown column {name} in {model.__tablename__}.")
    return getattr(model, name)


def _clauses(model: type, filters: Sequence[Filter]) -> list:
    clauses = []
    for condition in filters:
        column = _column(model, condition.column)
        if condition.op is FilterOp.EQ:
            clauses.append(column.is_(None) if condition.value is None else column == condition.value)
        elif condition.op is FilterOp.NEQ:
            # NULL differs from every value.
            clauses.append(or_(column != condition.value, column.is_(None)))
        elif condition.op is FilterOp.IS_NULL:
            clauses.append(column.is_(None) if condition.value else column.is_not(None))
        else:
            clauses.append(column.in_(list(condition.value)))
    return clauses


def _as_utc(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


def _read(table: Table, instance: Any) -> dict[str, Any]:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    row = {
        column.key: _as_utc(getattr(instance, column.key))
        for column in instance.__table__.columns
        if column.key != "pk"
    }
    return _validate(table, row)


def _to_columns(row: dict[str, Any]) -> dict[str, Any]:
    return {key: _as_utc(value) for key, value in row.items()}


def _validate(table: Table, row: dict[str, Any]) -> dict[str, Any]:
    try:
        validated = ROW_MODELS[table].model_validate(row).model_dump()
    except ValidationError as exc:
        raise BackendError(f"Invalid {table.value} row: {exc}") from exc
    return {key: _as_utc(value) for key, value in validated.items()}


def _copy_event(event: ChangeEvent) -> ChangeEvent:
    return ChangeEvent(
        event.event_type,
        event.table,
        new=copy.deepcopy(event.new),
        old=copy.deepcopy(event.old),
    )
