from dataclasses import dataclass


# Слот (номер гнезда) -> код детали
SLOT_TO_PART = {
    1: "FRU",
    2: "FRL",
    3: "FLU",
    4: "FLL",
    5: "RRU",
    6: "RRL",
    7: "RLU",
    8: "RLL",
}
PART_TO_SLOT = {code: slot for slot, code in SLOT_TO_PART.items()}
VALID_PARTS = tuple(SLOT_TO_PART[s] for s in sorted(SLOT_TO_PART))
SLOT_RANGE = (min(SLOT_TO_PART), max(SLOT_TO_PART))


# Колонки зазоров в выгрузке щупа (буквы = позиции)
PRE_POSITIONS = ("N", "O", "P", "Q")
POST_POSITIONS = ("R", "S", "T", "U")


# Маршрутизация файлов
PROBE_FILE_PREFIX = "Techform Read Probe Values"
FIXTURE_FILE_PREFIX = "Eclipse Check Fixture Sheet Share"
PROBE_SHEET_HINT = "passed parts"


# Границы значений
MEASUREMENT_BOUND = 0.80
PROBE_SERIAL_LEAK = 1000
FIXTURE_SERIAL_LEAK = 100


# Особый макет листа ("Oct 23rd New gauge")
SPECIAL_SHEET_TOKENS = ("new gauge",)
SPECIAL_OFFSETS = (-1, 1, -2, 2, -3, 3)
SPECIAL_SCALES = (100, 1000)


# Серийник приспособления: явный мусор
SERIAL_DENYLIST = {"n/a", "na", "fail", "pass", "0", "null", "undefined", "p", "none"}
SERIAL_DENY_SUBSTRINGS = ("nest", "hole", "pass", "fail", "pin")
SERIAL_MIN_TEXT_LEN = 3


# Точки без подтверждения приспособлением
UNVERIFIED_SOURCE = "raw_airgap"


@dataclass(frozen=True)
class LocatorSettings:
    # строки 0-based: 9..19 == 10..20 в Excel
    row_start: int = 9
    row_stop: int = 20
    col_limit: int = 50
    canonical_row: int = 12
    min_header_hits: int = 3
    max_data_row: int = 1000
    empty_run_stop: int = 3


@dataclass(frozen=True)
class ProbeSchema:
    name: str
    origin: int
    part_col: int
    serial_col: int
    header_rows: int = 1
    pre_positions: tuple = PRE_POSITIONS
    post_positions: tuple = POST_POSITIONS


PROBE_SCHEMA_XLSX = ProbeSchema(name="xlsx", origin=0, part_col=0, serial_col=1)
PROBE_SCHEMA_CSV = ProbeSchema(name="csv", origin=2, part_col=2, serial_col=3)

DEFAULT_LOCATOR = LocatorSettings()
