from airgap.domain.grid import CellGrid, Sheet, Workbook
from airgap.shared.constants import SLOT_TO_PART, PROBE_FILE_PREFIX, FIXTURE_FILE_PREFIX


PROBE_NAME = f"{PROBE_FILE_PREFIX} 2024-10.xlsx"
FIXTURE_NAME = f"{FIXTURE_FILE_PREFIX} week 42.xlsx"
PROBE_HEADER = ["Part Type/Nest", "Serial"] + [None] * 11 + list("NOPQRSTU")

HEADER_ROW = 12
FIXTURE_WIDTH = 16


def probe_row(part, serial, pre=(), post=(), origin=0):
    row = [None] * (origin + 21)
    row[origin] = part
    row[origin + 1] = serial
    for i, v in enumerate(pre):
        row[origin + 13 + i] = v
    for i, v in enumerate(post):
        row[origin + 17 + i] = v
    return row


def probe_book(rows, sheet="Passed Parts", name=PROBE_NAME, origin=0) -> Workbook:
    header = [None] * origin + PROBE_HEADER
    return Workbook(name=name, sheets=[Sheet(name=sheet, grid=CellGrid.from_rows([header] + list(rows)))])


def marker_col(slot: int) -> int:
    return (slot - 1) * 2


def fixture_grid(entries, header_row=HEADER_ROW) -> CellGrid:
    """entries: одна строка данных = {slot: (замер, серийник)}; маркеры «FRU [1]» в строке header_row."""
    rows = [[None] * FIXTURE_WIDTH for _ in range(header_row)]
    header = [None] * FIXTURE_WIDTH
    for slot, code in SLOT_TO_PART.items():
        header[marker_col(slot)] = f"{code} [{slot}]"
    rows.append(header)
    for entry in entries:
        line = [None] * FIXTURE_WIDTH
        for slot, (value, serial) in entry.items():
            line[marker_col(slot)] = value
            line[marker_col(slot) + 1] = serial
        rows.append(line)
    return CellGrid.from_rows(rows)


def fixture_book(sheets, name=FIXTURE_NAME) -> Workbook:
    """sheets: {имя листа: entries}"""
    return Workbook(name=name, sheets=[Sheet(name=n, grid=fixture_grid(e)) for n, e in sheets.items()])
