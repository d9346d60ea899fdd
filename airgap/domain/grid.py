from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, List, Optional, Sequence

from ..shared.utils import column_index, is_blank


@dataclass(frozen=True)
class CellGrid:
    # прямоугольная матрица значений: str / int / float / None
    data: Sequence[Sequence[Any]] = ()

    @classmethod
    def from_rows(cls, rows) -> "CellGrid":
        return cls(tuple(tuple(r) for r in rows))

    @property
    def n_rows(self) -> int:
        return len(self.data)

    @cached_property
    def n_cols(self) -> int:
        return max((len(r) for r in self.data), default=0)

    def cell_at(self, row: int, col: int):
        if row < 0 or col < 0 or row >= len(self.data):
            return None
        line = self.data[row]
        if col >= len(line):
            return None
        v = line[col]
        return None if is_blank(v) else v

    def cell(self, ref: str, row: int):
        """Адрес по букве колонки: cell('N', 5)."""
        return self.cell_at(row, column_index(ref))

    def row(self, row: int) -> List[Any]:
        return [self.cell_at(row, c) for c in range(self.n_cols)]

    def header(self) -> List[str]:
        return ["" if v is None else str(v).strip() for v in self.row(0)] if self.data else []

    def is_row_empty(self, row: int) -> bool:
        if row < 0 or row >= len(self.data):
            return True
        return all(is_blank(v) for v in self.data[row])


@dataclass(frozen=True)
class Sheet:
    name: str
    grid: CellGrid


@dataclass(frozen=True)
class Workbook:
    name: str
    sheets: List[Sheet] = field(default_factory=list)

    def sheet(self, name: str) -> Optional[Sheet]:
        for s in self.sheets:
            if s.name == name:
                return s
        return None
