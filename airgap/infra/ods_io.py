import logging
from os.path import basename

from odf import teletype
from odf.opendocument import load
from odf.table import Table, TableRow
from odf.text import P

from ..domain.grid import CellGrid, Sheet, Workbook
from ..shared.utils import try_parse_float


log = logging.getLogger(__name__)

NUMERIC_TYPES = ("float", "percentage", "currency")
CELL_TAGS = ("table-cell", "covered-table-cell")


def _cell_value(cell):
    """float-ячейка -> число из office:value, иначе текст абзацев (или None)."""
    vtype = cell.getAttribute("valuetype")
    if vtype in NUMERIC_TYPES:
        f = try_parse_float(cell.getAttribute("value"))
        if f is not None:
            return int(f) if f.is_integer() else f
    text = "\n".join(teletype.extractText(p) for p in cell.getElementsByType(P)).strip()
    return text or None


def _row_values(row) -> list:
    line = []
    pending = 0
    for cell in row.childNodes:
        if getattr(cell, "qname", (None, None))[1] not in CELL_TAGS:
            continue
        crep = int(cell.getAttribute("numbercolumnsrepeated") or 1)
        v = _cell_value(cell)
        if v is None:
            # пустые хвосты повторяются до конца листа, копим лениво
            pending += crep
            continue
        line.extend([None] * pending)
        pending = 0
        line.extend([v] * crep)
    return line


def table_rows(table) -> list:
    rows = []
    pending = 0
    for row in table.getElementsByType(TableRow):
        rrep = int(row.getAttribute("numberrowsrepeated") or 1)
        line = _row_values(row)
        if not line:
            pending += rrep
            continue
        rows.extend([[] for _ in range(pending)])
        pending = 0
        rows.extend(list(line) for _ in range(rrep))
    return rows


def load_ods_workbook(path: str) -> Workbook:
    doc = load(path)
    sheets = [Sheet(name=t.getAttribute("name") or f"Sheet{i + 1}", grid=CellGrid.from_rows(table_rows(t)))
              for i, t in enumerate(doc.spreadsheet.getElementsByType(Table))]
    log.debug("ods %s: %d sheets", basename(path), len(sheets))
    return Workbook(name=basename(path), sheets=sheets)
