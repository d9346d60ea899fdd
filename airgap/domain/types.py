from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class State(str, Enum):
    PRE = "pre"
    POST = "post"


class DropReason(str, Enum):
    # структурные
    NO_MARKERS = "no_markers"
    NO_SHEETS = "no_sheets"
    SHEET_ERROR = "sheet_error"
    # уровень значения
    EMPTY_ROW = "empty_row"
    SERIAL_MISSING = "serial_missing"
    SERIAL_INVALID = "serial_invalid"
    PART_MISSING = "part_missing"
    MEASUREMENT_INVALID = "measurement_invalid"
    MEASUREMENT_SERIAL_LEAK = "measurement_serial_leak"
    MEASUREMENT_OUT_OF_RANGE = "measurement_out_of_range"
    # уровень идентичности
    INVALID_PART = "invalid_part"
    NO_MATCH = "no_match"
    DUPLICATE_PROBE_KEY = "duplicate_probe_key"


@dataclass(frozen=True)
class Diagnostic:
    stage: str
    reason: DropReason
    source_file: str = ""
    sheet: str = ""
    row: Optional[int] = None
    col: Optional[int] = None
    detail: str = ""

    def __str__(self) -> str:
        where = self.sheet or self.source_file or self.stage
        if self.row is not None:
            where += f"!R{self.row + 1}"
            if self.col is not None:
                where += f"C{self.col + 1}"
        return f"[{self.stage}] {self.reason.value} at {where}: {self.detail}".rstrip(": ")


@dataclass(frozen=True)
class ProbeRecord:
    serial: str
    part: str
    measurements: Dict[str, Optional[float]] = field(default_factory=dict)
    row: Optional[int] = None


@dataclass(frozen=True)
class FixtureRecord:
    serial: str
    part: str
    source_file: str
    sheet_name: str
    reference_measurement: Optional[float] = None
    row: Optional[int] = None


@dataclass(frozen=True)
class MergedRecord:
    serial: str
    part: str
    measurements: Dict[str, Optional[float]]
    source_file: str
    sheet_name: str
    reference_measurement: Optional[float] = None

    @property
    def key(self) -> Tuple[str, str]:
        return (self.serial, self.part)


@dataclass(frozen=True)
class AirgapPoint:
    part: str
    serial: str
    position: str
    state: State
    value: float
    reference_measurement: Optional[float] = None
    source_file: str = ""
    sheet_name: str = ""


@dataclass(frozen=True)
class RejectionDecision:
    serial: str
    part: str
    rejected: bool
    triggered: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PositionStats:
    rejected: int = 0
    total: int = 0

    @property
    def percentage(self) -> float:
        return (self.rejected / self.total) * 100 if self.total else 0.0
