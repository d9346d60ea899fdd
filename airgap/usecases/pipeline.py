import logging
from dataclasses import dataclass, field
from os.path import basename
from typing import Iterable, List, Mapping, Optional, Sequence

from ..domain.grid import Workbook
from ..domain.types import AirgapPoint, Diagnostic, MergedRecord
from ..shared.constants import (
    PROBE_FILE_PREFIX, FIXTURE_FILE_PREFIX, PROBE_SCHEMA_XLSX, DEFAULT_LOCATOR,
    LocatorSettings, ProbeSchema, UNVERIFIED_SOURCE,
)
from ..shared.errors import ProbeDataError, FileRoutingError
from .load_fixture import FixtureLoadResult, parse_fixture_workbooks
from .load_probe import ProbeLoadResult, parse_probe_workbook
from .reconcile import MergeResult, reconcile
from .recompute_metrics import FilterConfig, SliceKey, recompute
from .tidy import build_points


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileRouting:
    probe: str
    fixtures: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)


def is_probe_file(name: str) -> bool:
    return basename(name).startswith(PROBE_FILE_PREFIX)


def is_fixture_file(name: str) -> bool:
    return basename(name).startswith(FIXTURE_FILE_PREFIX)


def categorize_files(names: Iterable[str]) -> FileRouting:
    """Ровно одна выгрузка щупа, любое число файлов приспособления, прочее - мимо."""
    probe = None
    fixtures, ignored = [], []
    for name in names:
        if is_probe_file(name):
            if probe is not None:
                raise FileRoutingError(f"multiple probe files: {basename(probe)!r}, {basename(name)!r}")
            probe = name
        elif is_fixture_file(name):
            fixtures.append(name)
        else:
            ignored.append(name)
    if probe is None:
        raise FileRoutingError(f"no probe file: expected a name starting with {PROBE_FILE_PREFIX!r}")
    for name in ignored:
        log.warning("file %r matches neither prefix, ignored", basename(name))
    return FileRouting(probe=probe, fixtures=fixtures, ignored=ignored)


@dataclass(frozen=True)
class Summary:
    probe_records: int
    fixture_records: int
    sheets_scanned: int
    sheets_processed: int
    merged_records: int
    matched_serials: int
    matched_parts: int
    unmatched_count: int
    points: int
    unverified: bool


@dataclass
class PipelineResult:
    probe: ProbeLoadResult
    fixture: FixtureLoadResult
    merge: MergeResult
    points: List[AirgapPoint]
    summary: Summary

    @property
    def merged(self) -> List[MergedRecord]:
        return self.merge.merged

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return self.probe.diagnostics + self.fixture.diagnostics + self.merge.diagnostics

    def rejections(self, configs: Optional[Mapping[SliceKey, FilterConfig]] = None,
                   default: Optional[FilterConfig] = None):
        return recompute(self.points, configs, default)


def summarize(probe: ProbeLoadResult, fixture: FixtureLoadResult, merge: MergeResult,
              points: Sequence[AirgapPoint]) -> Summary:
    return Summary(
        probe_records=len(probe.records),
        fixture_records=len(fixture.records),
        sheets_scanned=fixture.sheets_scanned,
        sheets_processed=len(set(fixture.sheets_with_records)),
        merged_records=len(merge.merged),
        matched_serials=len({m.serial for m in merge.merged}),
        matched_parts=len({m.part for m in merge.merged}),
        unmatched_count=merge.unmatched_count,
        points=len(points),
        unverified=any(p.source_file == UNVERIFIED_SOURCE for p in points),
    )


def run_pipeline(probe_book: Workbook, fixture_books: Sequence[Workbook],
                 schema: ProbeSchema = PROBE_SCHEMA_XLSX,
                 settings: LocatorSettings = DEFAULT_LOCATOR) -> PipelineResult:
    """
    Щуп + приспособление -> объединённые записи -> точки.
    Жёсткая ошибка только одна: в выгрузке щупа нет ни одной годной строки.
    """
    probe = parse_probe_workbook(probe_book, schema)
    if not probe.records:
        reasons = {k.value: v for k, v in probe.dropped.items()}
        raise ProbeDataError(f"{probe_book.name}: no valid probe rows (dropped: {reasons})")

    fixture = parse_fixture_workbooks(fixture_books, settings)
    merge = reconcile(probe.records, fixture.records)
    points = build_points(merge.merged, probe.records, schema.pre_positions, schema.post_positions)

    summary = summarize(probe, fixture, merge, points)
    log.info("pipeline: %s", summary)
    return PipelineResult(probe=probe, fixture=fixture, merge=merge, points=points, summary=summary)
