from os.path import splitext

from ..domain.grid import Workbook
from ..shared.constants import PROBE_SCHEMA_CSV, PROBE_SCHEMA_XLSX, ProbeSchema
from .csv_io import load_csv_workbook
from .ods_io import load_ods_workbook
from .xlsx_io import load_xlsx_workbook


LOADERS = {
    ".xlsx": load_xlsx_workbook,
    ".xlsm": load_xlsx_workbook,
    ".ods": load_ods_workbook,
    ".csv": load_csv_workbook,
}


def load_any(path: str) -> Workbook:
    ext = splitext(path)[1].lower()
    loader = LOADERS.get(ext)
    if loader is None:
        raise ValueError(f"Unsupported file type: {ext or path}")
    return loader(path)


def probe_schema_for(path: str) -> ProbeSchema:
    return PROBE_SCHEMA_CSV if splitext(path)[1].lower() == ".csv" else PROBE_SCHEMA_XLSX
