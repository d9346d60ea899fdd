import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from ..domain.grid import CellGrid, Sheet, Workbook
from ..domain.keys import coerce_fixture_serial
from ..domain.locator import Marker, locate_markers, serial_cell
from ..domain.types import Diagnostic, DropReason, FixtureRecord
from ..shared.constants import (
    DEFAULT_LOCATOR, LocatorSettings, MEASUREMENT_BOUND, FIXTURE_SERIAL_LEAK,
    SPECIAL_SHEET_TOKENS, SPECIAL_OFFSETS, SPECIAL_SCALES,
)
from ..shared.utils import try_parse_float, is_integral, is_blank


log = logging.getLogger(__name__)


@dataclass
class FixtureLoadResult:
    records: List[FixtureRecord] = field(default_factory=list)
    sheets_scanned: int = 0
    sheets_with_records: List[Tuple[str, str]] = field(default_factory=list)
    dropped: Counter = field(default_factory=Counter)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def drop(self, reason: DropReason, source_file: str = "", sheet: str = "",
             row: Optional[int] = None, col: Optional[int] = None, detail: str = ""):
        self.dropped[reason] += 1
        diag = Diagnostic(stage="fixture", reason=reason, source_file=source_file,
                          sheet=sheet, row=row, col=col, detail=detail)
        self.diagnostics.append(diag)
        log.debug("%s", diag)

    def extend(self, other: "FixtureLoadResult"):
        self.records.extend(other.records)
        self.sheets_scanned += other.sheets_scanned
        self.sheets_with_records.extend(other.sheets_with_records)
        self.dropped.update(other.dropped)
        self.diagnostics.extend(other.diagnostics)


def is_special_sheet(sheet_name: str) -> bool:
    low = (sheet_name or "").lower()
    return any(tok in low for tok in SPECIAL_SHEET_TOKENS)


def validate_reference(value) -> Tuple[Optional[float], Optional[DropReason]]:
    """Замер приспособления: малое число |x| <= 0.80; целое >= 100 - это серийник."""
    if is_blank(value):
        return None, None
    f = try_parse_float(value)
    if f is None:
        return None, DropReason.MEASUREMENT_INVALID
    if is_integral(f) and abs(f) >= FIXTURE_SERIAL_LEAK:
        return None, DropReason.MEASUREMENT_SERIAL_LEAK
    if abs(f) > MEASUREMENT_BOUND:
        return None, DropReason.MEASUREMENT_OUT_OF_RANGE
    return f, None


def special_reference(grid: CellGrid, marker: Marker, row: int):
    """
    Лист нового калибра: в колонке маркера бывает «25» вместо 0.25.
    Ищем малую дробь в соседних колонках, потом пробуем масштаб 1/100, 1/1000.
    """
    base = grid.cell_at(row, marker.col)
    f = try_parse_float(base)
    if f is None or abs(f) <= 1:
        return base

    for off in SPECIAL_OFFSETS:
        c = marker.col + off
        if c < 0:
            continue
        tv = try_parse_float(grid.cell_at(row, c))
        if tv is not None and abs(tv) <= MEASUREMENT_BOUND and not is_integral(tv):
            return tv
    for scale in SPECIAL_SCALES:
        scaled = f / scale
        if abs(scaled) <= MEASUREMENT_BOUND:
            return scaled
    return base


def _row_has_values(grid: CellGrid, markers: Iterable[Marker], row: int) -> bool:
    for m in markers:
        if grid.cell_at(row, m.col) is not None or grid.cell_at(row, m.serial_col) is not None:
            return True
    return False


def parse_fixture_sheet(sheet: Sheet, source_file: str,
                        settings: LocatorSettings = DEFAULT_LOCATOR) -> FixtureLoadResult:
    res = FixtureLoadResult(sheets_scanned=1)
    grid = sheet.grid

    located = locate_markers(grid, settings, sheet_name=sheet.name, source_file=source_file)
    if not located.found:
        for d in located.diagnostics:
            res.dropped[d.reason] += 1
            res.diagnostics.append(d)
            log.warning("%s", d)
        return res

    markers = located.ordered()
    special = is_special_sheet(sheet.name)
    log.debug("%s/%s: markers %s, header row %d (%d hits)%s", source_file, sheet.name,
              ", ".join(f"{m.code}@{m.ref}" for m in markers), located.marker_row + 1,
              located.header_hits, ", special layout" if special else "")

    empty_run = 0
    stop = min(grid.n_rows, settings.max_data_row)
    for r in range(located.data_start_row, stop):
        if not _row_has_values(grid, markers, r):
            empty_run += 1
            if empty_run >= settings.empty_run_stop:
                break
            continue
        empty_run = 0

        for m in markers:
            raw_serial = serial_cell(grid, m, r)
            serial = coerce_fixture_serial(raw_serial)
            if serial is None:
                if raw_serial is not None:
                    res.drop(DropReason.SERIAL_INVALID, source_file, sheet.name, r, m.serial_col,
                             f"slot {m.code}: serial={raw_serial!r}")
                elif grid.cell_at(r, m.col) is not None:
                    res.drop(DropReason.SERIAL_MISSING, source_file, sheet.name, r, m.serial_col,
                             f"slot {m.code}")
                continue

            raw = special_reference(grid, m, r) if special else grid.cell_at(r, m.col)
            ref, reason = validate_reference(raw)
            if reason is not None:
                res.drop(reason, source_file, sheet.name, r, m.col, f"slot {m.code}: value={raw!r}")

            res.records.append(FixtureRecord(serial=serial, part=m.part, source_file=source_file,
                                             sheet_name=sheet.name, reference_measurement=ref, row=r))

    if res.records:
        res.sheets_with_records.append((source_file, sheet.name))
    log.info("fixture sheet %s/%s: %d records", source_file, sheet.name, len(res.records))
    return res


def parse_fixture_workbook(book: Workbook, settings: LocatorSettings = DEFAULT_LOCATOR) -> FixtureLoadResult:
    """Все листы книги; сбой одного листа не роняет остальные."""
    res = FixtureLoadResult()
    if not book.sheets:
        res.drop(DropReason.NO_SHEETS, book.name, detail="workbook has no sheets")
        return res
    for sheet in book.sheets:
        try:
            res.extend(parse_fixture_sheet(sheet, book.name, settings))
        except (ValueError, TypeError, KeyError, IndexError) as e:
            res.sheets_scanned += 1
            res.drop(DropReason.SHEET_ERROR, book.name, sheet.name, detail=repr(e))
            log.warning("sheet %r in %s skipped: %s", sheet.name, book.name, e)
    return res


def parse_fixture_workbooks(books: Iterable[Workbook],
                            settings: LocatorSettings = DEFAULT_LOCATOR) -> FixtureLoadResult:
    res = FixtureLoadResult()
    for book in books:
        res.extend(parse_fixture_workbook(book, settings))
    log.info("fixture files: %d sheets scanned, %d with records, %d records",
             res.sheets_scanned, len(res.sheets_with_records), len(res.records))
    return res
