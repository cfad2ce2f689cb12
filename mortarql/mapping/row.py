"""Result rows as ordered column → :class:`Cell` mappings."""
from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from mortarql.mapping.values import Cell


class Row(Mapping[str, Cell]):
    """One result row.

    Lookups try the exact column name first, then a case-insensitive match,
    since engines disagree on identifier case in result descriptions.
    """

    __slots__ = ("_cells", "_folded")

    def __init__(self, cells: Mapping[str, Cell]) -> None:
        self._cells: dict[str, Cell] = dict(cells)
        self._folded = {name.lower(): name for name in reversed(list(self._cells))}

    @classmethod
    def from_values(cls, columns: Sequence[str], values: Sequence[Any]) -> Row:
        return cls({name: Cell.of(value) for name, value in zip(columns, values)})

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Row:
        return cls({name: Cell.of(value) for name, value in mapping.items()})

    def __getitem__(self, column: str) -> Cell:
        if column in self._cells:
            return self._cells[column]
        folded = self._folded.get(column.lower())
        if folded is None:
            raise KeyError(column)
        return self._cells[folded]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def value(self, column: str, default: Any = None) -> Any:
        """Return the raw value of ``column`` (``default`` when absent or NULL)."""
        cell = self.get(column)
        if cell is None or cell.is_null:
            return default
        return cell.value

    def as_dict(self) -> dict[str, Any]:
        return {name: cell.value for name, cell in self._cells.items()}

    def __repr__(self) -> str:
        return f"Row({self.as_dict()!r})"
