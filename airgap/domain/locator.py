"""
Поиск маркеров гнёзд на «ручном» листе приспособления.

Маркер - ячейка с номером гнезда 1..8 («FLU [3] (Hole)», «3», «Nest 3»).
Под маркером идут измерения, справа от маркера - серийник.
Функции чистые: вся диагностика возвращается в LocateResult.
"""
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .grid import CellGrid
from .types import Diagnostic, DropReason
from ..shared.constants import SLOT_TO_PART, SLOT_RANGE, DEFAULT_LOCATOR, LocatorSettings
from ..shared.utils import try_parse_float, is_integral, is_blank, cell_text, column_letter


_BRACKET_RE = re.compile(r"\[(\d+)\]")
_ANY_INT_RE = re.compile(r"(\d+)")

SERIAL_OFFSET = 1


@dataclass(frozen=True)
class Marker:
    code: int
    row: int
    col: int
    text: str = ""

    @property
    def part(self) -> str:
        return SLOT_TO_PART[self.code]

    @property
    def serial_col(self) -> int:
        return self.col + SERIAL_OFFSET

    @property
    def ref(self) -> str:
        return f"{column_letter(self.col)}{self.row + 1}"


@dataclass(frozen=True)
class LocateResult:
    markers: Dict[int, Marker] = field(default_factory=dict)
    marker_row: Optional[int] = None
    header_hits: int = 0
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def found(self) -> bool:
        return bool(self.markers)

    @property
    def data_start_row(self) -> Optional[int]:
        return None if self.marker_row is None else self.marker_row + 1

    def ordered(self) -> List[Marker]:
        return [self.markers[c] for c in sorted(self.markers)]


def _in_range(n: int, lo: int, hi: int) -> bool:
    return lo <= n <= hi


def read_marker_code(value, lo: int = SLOT_RANGE[0], hi: int = SLOT_RANGE[1]) -> Optional[int]:
    """
    Порядок: [n] в тексте -> само значение как целое -> первое целое в тексте.
    Кандидат вне lo..hi отбрасывается, дальше не ищем.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    text = cell_text(value)

    m = _BRACKET_RE.search(text)
    if m:
        n = int(m.group(1))
        return n if _in_range(n, lo, hi) else None

    f = try_parse_float(value)
    if f is not None:
        if is_integral(f) and _in_range(int(round(f)), lo, hi):
            return int(round(f))
        # дробь или большое число (серийник, измерение) маркером не бывает
        return None

    m = _ANY_INT_RE.search(text)
    if m:
        n = int(m.group(1))
        return n if _in_range(n, lo, hi) else None
    return None


def _bracket_hints(grid: CellGrid, rows: int = 30, cols: int = 30, limit: int = 10) -> List[str]:
    hints = []
    for r in range(min(rows, grid.n_rows)):
        for c in range(min(cols, grid.n_cols)):
            v = grid.cell_at(r, c)
            if v is None:
                continue
            s = str(v)
            if "[" in s and "]" in s:
                hints.append(f"{column_letter(c)}{r + 1}={s.strip()!r}")
                if len(hints) >= limit:
                    return hints
    return hints


def infer_marker_row(grid: CellGrid, markers: Dict[int, Marker],
                     settings: LocatorSettings = DEFAULT_LOCATOR) -> Tuple[Optional[int], int]:
    """
    Строка-шапка = строка, где больше всего ЧИСЛОВЫХ ячеек в колонках маркеров
    совпадает со своим номером (не меньше min_header_hits).
    Иначе - строка, в которой найдено больше всего маркеров.
    Возвращает (строка, число совпадений).
    """
    if not markers:
        return None, 0

    best_row, best_hits = None, 0
    for r in range(min(grid.n_rows, settings.max_data_row)):
        hits = 0
        for m in markers.values():
            f = try_parse_float(grid.cell_at(r, m.col))
            if f is not None and f == m.code:
                hits += 1
        if hits > best_hits:
            best_row, best_hits = r, hits
    if best_row is not None and best_hits >= settings.min_header_hits:
        return best_row, best_hits

    rows = Counter(m.row for m in markers.values())
    row = max(rows, key=lambda r: (rows[r], -r))
    return row, 0


def locate_markers(grid: CellGrid, settings: LocatorSettings = DEFAULT_LOCATOR,
                   sheet_name: str = "", source_file: str = "") -> LocateResult:
    lo, hi = SLOT_RANGE
    wanted = hi - lo + 1
    markers: Dict[int, Marker] = {}

    row_stop = min(settings.row_stop, grid.n_rows)
    col_stop = min(settings.col_limit, grid.n_cols)
    for r in range(settings.row_start, row_stop):
        for c in range(col_stop):
            v = grid.cell_at(r, c)
            code = read_marker_code(v, lo, hi)
            if code is None:
                continue
            prev = markers.get(code)
            # каноническая строка перебивает более ранние (слабые) попадания
            if prev is None or (r == settings.canonical_row and prev.row != settings.canonical_row):
                markers[code] = Marker(code=code, row=r, col=c, text=cell_text(v))
        if len(markers) == wanted:
            break

    if not markers:
        hints = _bracket_hints(grid)
        detail = (f"no slot markers in rows {settings.row_start + 1}..{settings.row_stop}, "
                  f"first {settings.col_limit} columns")
        if hints:
            detail += "; bracket cells: " + ", ".join(hints)
        diag = Diagnostic(stage="locate", reason=DropReason.NO_MARKERS,
                          source_file=source_file, sheet=sheet_name, detail=detail)
        return LocateResult(diagnostics=(diag,))

    marker_row, hits = infer_marker_row(grid, markers, settings)
    return LocateResult(markers=markers, marker_row=marker_row, header_hits=hits)


def serial_cell(grid: CellGrid, marker: Marker, row: int):
    # серийник - строго на одну колонку правее маркера, другие смещения не угадываем
    return grid.cell_at(row, marker.serial_col)
