"""Change tracking for diff-based partial updates.

Every record produced by the row mapper is *tracked*: a snapshot of its
field values is stored in a TTL cache under the record's identity.  Later,
:meth:`ChangeTracker.build_update` compares the live record to that
snapshot and produces an UPDATE touching only the changed columns.

Identity is ``(type(record), id(record))``.  Each entry keeps a reference
to its record, so the id cannot be reused by another object while the
entry is alive.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from mortarql.compile.base import SQLCompiler
from mortarql.mapping.values import to_db_value
from mortarql.query.model import Query
from mortarql.schema.metadata import DEFAULT_RESOLVER, SchemaResolver
from mortarql.tracking.cache import TTLCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RowCacheEntry:
    """Snapshot of one tracked record.

    Attributes:
        table: Table name.
        key_column: Key column name, or ``None`` when the table has none.
        key_field: Record field mapped to the key column.
        key_value: Key value at snapshot time.
        snapshot: Field name → value at snapshot time.
        record: The tracked record itself.
    """

    table: str
    key_column: str | None
    key_field: str | None
    key_value: Any
    snapshot: dict[str, Any] = field(default_factory=dict)
    record: Any = field(default=None, repr=False, compare=False)


class ChangeTracker:
    """Tracks mapped records and builds diff-only UPDATE statements.

    Args:
        resolver: Schema resolver for record types.
        cache: TTL cache holding the snapshots; a private one with default
            expiry windows is created when omitted.
    """

    def __init__(
        self,
        resolver: SchemaResolver | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        self.resolver = resolver or DEFAULT_RESOLVER
        self.cache = cache if cache is not None else TTLCache()

    @staticmethod
    def identity(record: BaseModel) -> tuple[type, int]:
        return type(record), id(record)

    def track(self, record: BaseModel) -> RowCacheEntry:
        """Snapshot ``record`` and store it under the record's identity."""
        table = self.resolver.resolve(type(record))
        key = table.key
        snapshot = {
            c.field_name: copy.deepcopy(getattr(record, c.field_name)) for c in table.columns
        }
        entry = RowCacheEntry(
            table=table.name,
            key_column=key.column_name if key else None,
            key_field=key.field_name if key else None,
            key_value=snapshot[key.field_name] if key else None,
            snapshot=snapshot,
            record=record,
        )
        self.cache.set(self.identity(record), entry)
        return entry

    def entry_for(self, record: BaseModel) -> RowCacheEntry | None:
        entry = self.cache.get(self.identity(record))
        if entry is None or entry.record is not record:
            return None
        return entry

    def is_tracked(self, record: BaseModel) -> bool:
        return self.entry_for(record) is not None

    def diff(self, record: BaseModel) -> dict[str, Any]:
        """Field name → current value for every field changed since tracking.

        Untracked records have an empty diff.
        """
        entry = self.entry_for(record)
        if entry is None:
            return {}
        return {
            name: getattr(record, name)
            for name, old in entry.snapshot.items()
            if getattr(record, name) != old
        }

    def build_update(
        self, record: BaseModel, compiler: SQLCompiler | str | None = None
    ) -> Query | None:
        """Build ``UPDATE table SET <diff> WHERE key = value`` for ``record``.

        Returns ``None`` when the record is untracked, unchanged, or its
        snapshot has no usable key value.  A table without a key column, or
        with a composite primary key, never produces an update.
        """
        entry = self.entry_for(record)
        if entry is None:
            logger.debug("Skipping update of untracked %s", type(record).__name__)
            return None
        changes = self.diff(record)
        if not changes:
            return None
        if entry.key_column is None or entry.key_value in (None, ""):
            logger.warning(
                "Skipping update of %s: no key value to address the row", entry.table
            )
            return None

        table = self.resolver.resolve(type(record))
        query = Query(compiler, resolver=self.resolver).update(entry.table)
        for field_name, value in changes.items():
            column = table.column_for_field(field_name)
            query.set(column.column_name, to_db_value(value))
        return query.where(entry.key_column, to_db_value(entry.key_value))

    def refresh(self, record: BaseModel) -> RowCacheEntry:
        """Re-snapshot ``record`` after its changes were written."""
        return self.track(record)

    def forget(self, record: BaseModel) -> None:
        self.cache.pop(self.identity(record))
