import csv
import logging
from os.path import basename, splitext

from ..domain.grid import CellGrid, Sheet, Workbook


log = logging.getLogger(__name__)


def load_csv_rows(path):
    with open(path, newline='', encoding='utf-8-sig') as f:
        reader = csv.reader(f)
        rows = [row for row in reader]
    return rows


def load_csv_workbook(path: str) -> Workbook:
    # у CSV один «лист» с именем файла; значения остаются строками
    rows = load_csv_rows(path)
    name = basename(path)
    log.debug("csv %s: %d rows", name, len(rows))
    return Workbook(name=name, sheets=[Sheet(name=splitext(name)[0], grid=CellGrid.from_rows(rows))])
