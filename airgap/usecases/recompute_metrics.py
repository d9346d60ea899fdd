import statistics
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..domain.parts import code_to_slot
from ..domain.rules import FilterResult, evaluate_slice, slice_points
from ..domain.tolerance import ComparisonRule
from ..domain.types import AirgapPoint, State
from ..shared.constants import PRE_POSITIONS, POST_POSITIONS


SliceKey = Tuple[str, State]


@dataclass(frozen=True)
class FilterConfig:
    thresholds: Mapping[str, object] = field(default_factory=dict)
    rules: Tuple[ComparisonRule, ...] = ()


@dataclass(frozen=True)
class AggregateStat:
    pre_position: str
    post_position: str
    avg_difference: float
    count: int


@dataclass(frozen=True)
class ReferenceStats:
    count: int
    minimum: float
    maximum: float
    median: float
    mean: float

    @property
    def span(self) -> float:
        return self.maximum - self.minimum


def _part_order(part: str):
    slot = code_to_slot(part)
    return (slot is None, slot or 0, part)


def slices(points: Iterable[AirgapPoint]) -> List[SliceKey]:
    keys = {(p.part, p.state) for p in points}
    return sorted(keys, key=lambda k: (_part_order(k[0]), k[1] != State.PRE))


def recompute(points: Sequence[AirgapPoint], configs: Optional[Mapping[SliceKey, FilterConfig]] = None,
              default: Optional[FilterConfig] = None) -> Dict[SliceKey, FilterResult]:
    """
    Сводка брака по каждому срезу деталь+состояние.
    Конфигурация среза ищется в configs, иначе берётся default (или «без фильтров»).
    Сами точки не меняются - пересчёт можно гонять сколько угодно раз.
    """
    configs = configs or {}
    default = default or FilterConfig()
    out = {}
    for part, state in slices(points):
        cfg = configs.get((part, state), default)
        out[(part, state)] = evaluate_slice(slice_points(points, part, state), cfg.thresholds,
                                            cfg.rules, part=part, state=state)
    return out


def unique_parts(records: Iterable) -> List[str]:
    return sorted({r.part for r in records}, key=_part_order)


def unique_serials(records: Iterable, part: Optional[str] = None) -> List[str]:
    return sorted({r.serial for r in records if part is None or r.part == part})


def filter_by_serial(points: Iterable[AirgapPoint], serial: str, part: Optional[str] = None) -> List[AirgapPoint]:
    return [p for p in points if p.serial == serial and (part is None or p.part == part)]


def position_averages(points: Iterable[AirgapPoint]) -> Dict[str, float]:
    by_pos: Dict[str, List[float]] = {}
    for p in points:
        by_pos.setdefault(p.position, []).append(p.value)
    return {pos: statistics.fmean(vals) for pos, vals in sorted(by_pos.items())}


def reference_stats(points: Iterable[AirgapPoint]) -> Optional[ReferenceStats]:
    # замер один на юнит и лист, поэтому точки одного юнита с листа считаем один раз
    seen = {}
    for p in points:
        if p.reference_measurement is None:
            continue
        seen.setdefault((p.part, p.serial, p.source_file, p.sheet_name), p.reference_measurement)
    vals = list(seen.values())
    if not vals:
        return None
    return ReferenceStats(count=len(vals), minimum=min(vals), maximum=max(vals),
                          median=statistics.median(vals), mean=statistics.fmean(vals))


def aggregate_stats(points: Sequence[AirgapPoint], pre_positions: Sequence[str] = PRE_POSITIONS,
                    post_positions: Sequence[str] = POST_POSITIONS) -> List[AggregateStat]:
    """Среднее (post - pre) по парам позиций с одинаковым номером: N->R, O->S, ..."""
    values: Dict[Tuple[str, str, str], float] = {}
    for p in points:
        values.setdefault((p.part, p.serial, p.position), p.value)

    units = {(p.part, p.serial) for p in points}
    out = []
    for pre_pos, post_pos in zip(pre_positions, post_positions):
        diffs = []
        for part, serial in units:
            pre = values.get((part, serial, pre_pos))
            post = values.get((part, serial, post_pos))
            if pre is not None and post is not None:
                diffs.append(post - pre)
        avg = statistics.fmean(diffs) if diffs else 0.0
        out.append(AggregateStat(pre_position=pre_pos, post_position=post_pos,
                                 avg_difference=avg, count=len(diffs)))
    return out
