import logging
from os.path import basename

from openpyxl import load_workbook

from ..domain.grid import CellGrid, Sheet, Workbook
from ..shared.utils import is_blank


log = logging.getLogger(__name__)


def _trim_right(line: list) -> list:
    last = len(line) - 1
    while last >= 0 and is_blank(line[last]):
        last -= 1
    return line[:last + 1]


def _trim_bottom(rows: list) -> list:
    last = len(rows) - 1
    while last >= 0 and not rows[last]:
        last -= 1
    return rows[:last + 1]


def sheet_rows(ws) -> list:
    # значения как есть (числа остаются числами), пустые хвосты справа и снизу обрезаем
    rows = []
    for row in ws.iter_rows(values_only=True):
        rows.append(_trim_right(list(row)))
    return _trim_bottom(rows)


def load_xlsx_workbook(path: str) -> Workbook:
    wb = load_workbook(path, data_only=True, read_only=True)
    try:
        sheets = [Sheet(name=name, grid=CellGrid.from_rows(sheet_rows(wb[name]))) for name in wb.sheetnames]
    finally:
        wb.close()
    log.debug("xlsx %s: %d sheets", basename(path), len(sheets))
    return Workbook(name=basename(path), sheets=sheets)
