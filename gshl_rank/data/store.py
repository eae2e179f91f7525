"""Row-store implementations and natural key construction.

The aggregation pipeline only needs a filtered-collection service: find
records of a kind matching field filters, upsert a record by natural key,
and count. ``InMemoryRowStore`` keeps everything in dictionaries and is what
tests and embedding hosts use; ``SqlRowStore`` persists to the
``stat_records`` table through SQLAlchemy.

Example:
    >>> from gshl_rank.data.store import InMemoryRowStore, build_natural_key
    >>> store = InMemoryRowStore()
    >>> record = {"playerId": "p1", "weekId": "3", "gshlTeamId": "t1", "G": 2}
    >>> store.upsert("PlayerWeek", build_natural_key("PlayerWeek", record), record)
    True
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import Engine, select

from gshl_rank.data.db import get_engine, init_db, session_scope
from gshl_rank.data.models import StatRecord
from gshl_rank.types import Record

logger = logging.getLogger(__name__)

NATURAL_KEY_FIELDS: dict[str, tuple[str, ...]] = {
    "PlayerDay": ("playerId", "gshlTeamId", "date"),
    "PlayerWeek": ("playerId", "weekId", "gshlTeamId"),
    "PlayerSplit": ("playerId", "seasonId", "gshlTeamId", "seasonType"),
    "PlayerTotal": ("playerId", "seasonId", "seasonType"),
    "TeamDay": ("gshlTeamId", "date"),
    "TeamWeek": ("gshlTeamId", "weekId"),
    "TeamSeason": ("gshlTeamId", "seasonId", "seasonType"),
    "Matchup": ("id",),
}


def _key_part(value: Any) -> str:
    if value is None:
        return ""
    if hasattr(value, "isoformat"):
        return value.isoformat()[:10]
    return str(value).strip()


def build_natural_key(model: str, record: Mapping[str, Any]) -> str:
    """Join a record's identity fields for its kind.

    Raises:
        KeyError: If ``model`` is not a known record kind.
    """
    fields = NATURAL_KEY_FIELDS[model]
    return ":".join(_key_part(record.get(field)) for field in fields)


def matches(record: Mapping[str, Any], filters: Mapping[str, Any] | None) -> bool:
    """Whether a record satisfies field filters.

    Values compare as strings. A list, tuple, or set filter value matches any
    of its members.
    """
    if not filters:
        return True
    for field, expected in filters.items():
        actual = _key_part(record.get(field))
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in {_key_part(v) for v in expected}:
                return False
        elif actual != _key_part(expected):
            return False
    return True


class InMemoryRowStore:
    """Dictionary-backed row store.

    Records are kept per kind in insertion order and returned as copies.
    """

    def __init__(self, records: Mapping[str, list[Mapping[str, Any]]] | None = None) -> None:
        self._tables: dict[str, dict[str, Record]] = {}
        for model, rows in (records or {}).items():
            for index, row in enumerate(rows):
                key = (
                    build_natural_key(model, row)
                    if model in NATURAL_KEY_FIELDS
                    else str(row.get("id", index))
                )
                self.upsert(model, key, row)

    def find_many(self, model: str, filters: Mapping[str, Any] | None = None) -> list[Record]:
        table = self._tables.get(model, {})
        return [dict(row) for row in table.values() if matches(row, filters)]

    def upsert(self, model: str, natural_key: str, data: Mapping[str, Any]) -> bool:
        table = self._tables.setdefault(model, {})
        existing = table.get(natural_key)
        if existing is None:
            table[natural_key] = dict(data)
            return True
        existing.update(data)
        return False

    def count(self, model: str, filters: Mapping[str, Any] | None = None) -> int:
        return len(self.find_many(model, filters))


class SqlRowStore:
    """Row store over the ``stat_records`` table.

    Attributes:
        engine: SQLAlchemy engine holding the table.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine or get_engine()
        init_db(self.engine)

    def find_many(self, model: str, filters: Mapping[str, Any] | None = None) -> list[Record]:
        with session_scope(self.engine) as session:
            rows = session.scalars(
                select(StatRecord).where(StatRecord.model == model).order_by(StatRecord.id)
            ).all()
            payloads = [dict(row.payload) for row in rows]
        return [payload for payload in payloads if matches(payload, filters)]

    def upsert(self, model: str, natural_key: str, data: Mapping[str, Any]) -> bool:
        with session_scope(self.engine) as session:
            row = session.scalars(
                select(StatRecord).where(
                    StatRecord.model == model, StatRecord.natural_key == natural_key
                )
            ).one_or_none()
            if row is None:
                session.add(StatRecord(model=model, natural_key=natural_key, payload=dict(data)))
                return True
            # Reassign so the JSON column registers the change
            row.payload = {**row.payload, **data}
            return False

    def count(self, model: str, filters: Mapping[str, Any] | None = None) -> int:
        return len(self.find_many(model, filters))
