"""
Сведение выгрузки щупа и листов приспособления по ключу (серийник, деталь).

Источник истины по идентичности - щуп: ключи строятся только из его записей,
записи приспособления без пары ничего не порождают. Сопоставление точное,
по нормализованному ключу, без нечётких совпадений.
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from ..domain.keys import make_key, normalize_key
from ..domain.parts import is_valid_part
from ..domain.types import Diagnostic, DropReason, FixtureRecord, MergedRecord, ProbeRecord


log = logging.getLogger(__name__)


# Поле объединённой записи -> откуда берётся.
# Приспособление перекрывает щуп по всем полям, кроме идентичности (serial, part).
MERGE_PRECEDENCE = {
    "serial": "probe",
    "part": "probe",
    "measurements": "probe",
    "source_file": "fixture",
    "sheet_name": "fixture",
    "reference_measurement": "fixture",
}


@dataclass
class MergeResult:
    merged: List[MergedRecord] = field(default_factory=list)
    unmatched_count: int = 0
    matched_keys: Set[Tuple[str, str]] = field(default_factory=set)
    counts: Counter = field(default_factory=Counter)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def drop(self, reason: DropReason, fx: Optional[FixtureRecord] = None, row: Optional[int] = None, detail: str = ""):
        self.counts[reason] += 1
        if fx is not None:
            diag = Diagnostic(stage="reconcile", reason=reason, source_file=fx.source_file,
                              sheet=fx.sheet_name, row=fx.row, detail=detail)
        else:
            diag = Diagnostic(stage="reconcile", reason=reason, row=row, detail=detail)
        self.diagnostics.append(diag)
        log.debug("%s", diag)


def merge_records(probe: ProbeRecord, fixture: FixtureRecord) -> MergedRecord:
    """Явное слияние по таблице MERGE_PRECEDENCE; значения копируются."""
    sources = {"probe": probe, "fixture": fixture}
    fields = {}
    for name, side in MERGE_PRECEDENCE.items():
        value = getattr(sources[side], name)
        fields[name] = dict(value) if isinstance(value, dict) else value
    return MergedRecord(**fields)


def build_probe_index(probe_records: Sequence[ProbeRecord], res: MergeResult) -> Dict[Tuple[str, str], ProbeRecord]:
    index: Dict[Tuple[str, str], ProbeRecord] = {}
    for rec in probe_records:
        key = make_key(rec.serial, rec.part)
        if not key[0]:
            continue
        if key in index:
            # повтор в выгрузке: побеждает более поздняя строка
            res.drop(DropReason.DUPLICATE_PROBE_KEY, row=rec.row, detail=f"{key[0]}|{key[1]}")
        index[key] = rec
    return index


def reconcile(probe_records: Sequence[ProbeRecord], fixture_records: Sequence[FixtureRecord]) -> MergeResult:
    res = MergeResult()
    index = build_probe_index(probe_records, res)

    for fx in fixture_records:
        if not is_valid_part(fx.part):
            res.drop(DropReason.INVALID_PART, fx, detail=f"part={fx.part!r}")
            continue
        serial = normalize_key(fx.serial)
        if not serial:
            res.drop(DropReason.SERIAL_MISSING, fx)
            continue

        key = (serial, fx.part)
        probe = index.get(key)
        if probe is None:
            res.drop(DropReason.NO_MATCH, fx, detail=f"{serial}|{fx.part}")
            continue

        res.merged.append(merge_records(probe, fx))
        res.matched_keys.add(key)
        res.counts["matched"] += 1

    res.unmatched_count = len(probe_records) - len(res.matched_keys)
    log.info("reconcile: %d merged, %d no-match, %d invalid part, %d missing serial, %d probe units unconfirmed",
             len(res.merged), res.counts[DropReason.NO_MATCH], res.counts[DropReason.INVALID_PART],
             res.counts[DropReason.SERIAL_MISSING], res.unmatched_count)
    if not res.merged and probe_records and fixture_records:
        probe_serials = {make_key(r.serial, r.part)[0] for r in probe_records}
        fixture_serials = {normalize_key(r.serial) for r in fixture_records}
        log.warning("no matches: %d probe serials, %d fixture serials, %d shared",
                    len(probe_serials), len(fixture_serials), len(probe_serials & fixture_serials))
    return res
