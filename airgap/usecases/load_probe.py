import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ..domain.grid import CellGrid, Sheet, Workbook
from ..domain.keys import coerce_probe_serial
from ..domain.parts import resolve_part
from ..domain.types import Diagnostic, DropReason, ProbeRecord
from ..shared.constants import PROBE_SHEET_HINT, PROBE_SERIAL_LEAK, PROBE_SCHEMA_XLSX, ProbeSchema
from ..shared.utils import try_parse_float, is_integral, is_blank, column_index


log = logging.getLogger(__name__)


@dataclass
class ProbeLoadResult:
    records: List[ProbeRecord] = field(default_factory=list)
    sheet_name: str = ""
    dropped: Counter = field(default_factory=Counter)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def drop(self, reason: DropReason, row: Optional[int] = None, col: Optional[int] = None, detail: str = ""):
        self.dropped[reason] += 1
        diag = Diagnostic(stage="probe", reason=reason, sheet=self.sheet_name, row=row, col=col, detail=detail)
        self.diagnostics.append(diag)
        log.debug("%s", diag)


def select_probe_sheet(book: Workbook) -> Optional[Sheet]:
    """Лист «Passed Parts» (без учёта регистра); если нет - первый лист."""
    if not book.sheets:
        return None
    for s in book.sheets:
        if PROBE_SHEET_HINT in s.name.lower():
            return s
    first = book.sheets[0]
    log.warning("%s: no %r sheet among %s, using first sheet %r",
                book.name, PROBE_SHEET_HINT, [s.name for s in book.sheets], first.name)
    return first


def measurement_columns(schema: ProbeSchema) -> Dict[str, int]:
    letters = tuple(schema.pre_positions) + tuple(schema.post_positions)
    return {label: schema.origin + column_index(label) for label in letters}


def validate_measurement(value) -> Tuple[Optional[float], Optional[DropReason]]:
    """
    Зазор из выгрузки щупа. Величина не ограничена (датчик может дать > 0.80),
    отсекаем только целые >= 1000 - это серийник, уехавший в колонку.
    """
    if is_blank(value):
        return None, None
    f = try_parse_float(value)
    if f is None:
        return None, DropReason.MEASUREMENT_INVALID
    if is_integral(f) and f >= PROBE_SERIAL_LEAK:
        return None, DropReason.MEASUREMENT_SERIAL_LEAK
    return f, None


def _parse_row(grid: CellGrid, r: int, schema: ProbeSchema, cols: Dict[str, int],
               res: ProbeLoadResult) -> Optional[ProbeRecord]:
    raw_serial = grid.cell_at(r, schema.serial_col)
    raw_part = grid.cell_at(r, schema.part_col)

    serial = coerce_probe_serial(raw_serial)
    if serial is None:
        reason = DropReason.SERIAL_MISSING if is_blank(raw_serial) else DropReason.SERIAL_INVALID
        res.drop(reason, r, schema.serial_col, f"serial={raw_serial!r}")
        return None

    part = resolve_part(raw_part)
    if not part:
        res.drop(DropReason.PART_MISSING, r, schema.part_col, f"serial={serial}")
        return None

    values = {}
    for label, c in cols.items():
        v, reason = validate_measurement(grid.cell_at(r, c))
        if reason is not None:
            res.drop(reason, r, c, f"{label}={grid.cell_at(r, c)!r}")
        values[label] = v
    return ProbeRecord(serial=serial, part=part, measurements=values, row=r)


def parse_probe_sheet(sheet: Sheet, schema: ProbeSchema = PROBE_SCHEMA_XLSX) -> ProbeLoadResult:
    """
    Строка = одна деталь. Серийник и деталь - в фиксированных колонках схемы,
    зазоры - по буквам колонок от начала схемы, заголовки не читаем.
    """
    res = ProbeLoadResult(sheet_name=sheet.name)
    grid = sheet.grid
    cols = measurement_columns(schema)
    log.debug("probe sheet %r header: %s", sheet.name, grid.header())

    for r in range(schema.header_rows, grid.n_rows):
        if grid.is_row_empty(r):
            res.drop(DropReason.EMPTY_ROW, r)
            continue
        rec = _parse_row(grid, r, schema, cols, res)
        if rec is not None:
            res.records.append(rec)

    parts = Counter(rec.part for rec in res.records)
    log.info("probe sheet %r: %d records, parts=%s, dropped=%s",
             sheet.name, len(res.records), dict(parts),
             {k.value: v for k, v in res.dropped.items()})
    return res


def parse_probe_workbook(book: Workbook, schema: ProbeSchema = PROBE_SCHEMA_XLSX) -> ProbeLoadResult:
    sheet = select_probe_sheet(book)
    if sheet is None:
        res = ProbeLoadResult()
        res.drop(DropReason.NO_SHEETS, detail=f"{book.name}: workbook has no sheets")
        return res
    return parse_probe_sheet(sheet, schema)
