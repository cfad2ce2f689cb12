"""Bookkeeping of open transactions.

An unnamed transaction is the outer ``BEGIN`` / ``COMMIT`` pair; named
transactions map to savepoints.  Names are kept in opening order; closing a
name also closes every name opened after it, mirroring savepoint release
semantics.
"""
from __future__ import annotations

from collections.abc import Iterator

from mortarql.errors import TransactionError

#: Key under which the unnamed outer transaction is tracked.
OUTER_TRANSACTION = ""


class TransactionStack:
    """Ordered set of open transaction names."""

    def __init__(self) -> None:
        self._names: list[str] = []

    def open(self, name: str | None = None) -> str:
        key = name or OUTER_TRANSACTION
        if key in self._names:
            label = f"'{key}'" if key else "An unnamed transaction"
            raise TransactionError(f"{label} is already open.")
        self._names.append(key)
        return key

    def close(self, name: str | None = None) -> list[str]:
        """Close ``name`` (and everything opened after it); all names when ``None``.

        Returns:
            The closed names, in opening order.

        Raises:
            TransactionError: If ``name`` is not open.
        """
        if name is None:
            closed, self._names = self._names, []
            return closed
        self.ensure_open(name)
        index = self._names.index(name)
        closed, self._names = self._names[index:], self._names[:index]
        return closed

    def ensure_open(self, name: str | None) -> None:
        """Raise :class:`TransactionError` unless ``name`` is open (``None`` always passes)."""
        if name is not None and name not in self._names:
            raise TransactionError(f"Transaction '{name}' is not open.")

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._names))

    def __len__(self) -> int:
        return len(self._names)
