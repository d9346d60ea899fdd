from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .types import AirgapPoint, PositionStats, RejectionDecision, State
from .tolerance import ComparisonRule, exceeds, parse_thresholds


# serial -> position -> первая точка этой позиции
UnitPoints = Dict[str, Dict[str, AirgapPoint]]


@dataclass(frozen=True)
class FilterResult:
    part: str
    state: Optional[State]
    kept: Tuple[AirgapPoint, ...] = ()
    position_stats: Dict[str, PositionStats] = field(default_factory=dict)
    decisions: Dict[str, RejectionDecision] = field(default_factory=dict)

    @property
    def total_units(self) -> int:
        return len(self.decisions)

    @property
    def rejected_serials(self) -> List[str]:
        return [s for s, d in self.decisions.items() if d.rejected]

    @property
    def rejected_count(self) -> int:
        return len(self.rejected_serials)

    @property
    def rejected_percentage(self) -> float:
        total = self.total_units
        return (self.rejected_count / total) * 100 if total else 0.0


def slice_points(points: Iterable[AirgapPoint], part: str, state: Optional[State] = None) -> List[AirgapPoint]:
    return [p for p in points if p.part == part and (state is None or p.state == state)]


def group_by_unit(points: Sequence[AirgapPoint]) -> UnitPoints:
    units: UnitPoints = {}
    for p in points:
        by_pos = units.setdefault(p.serial, {})
        by_pos.setdefault(p.position, p)
    return units


def first_failing_position(unit: Mapping[str, AirgapPoint], thresholds: Mapping[str, float],
                           positions: Sequence[str]) -> Optional[str]:
    for pos in positions:
        t = thresholds.get(pos)
        p = unit.get(pos)
        if t is None or p is None:
            continue
        if exceeds(p.value, t):
            return pos
    return None


def is_unit_rejected(unit: Mapping[str, AirgapPoint], thresholds: Mapping[str, float],
                     rules: Sequence[ComparisonRule], positions: Sequence[str]) -> Tuple[bool, Tuple[str, ...]]:
    """
    Юнит в браке, если:
    - хоть одна позиция вне порога (первая найденная - дальше пороги не смотрим),
    - или нарушено хоть одно активное правило сравнения.
    Правило, для которого у юнита нет нужных позиций, юнит не трогает.
    """
    triggered = []
    pos = first_failing_position(unit, thresholds, positions)
    if pos is not None:
        triggered.append(f"threshold:{pos}")

    values = {k: p.value for k, p in unit.items()}
    for rule in rules:
        if rule.violated_by(values):
            triggered.append(rule.label)
    return bool(triggered), tuple(triggered)


def count_independent(units: UnitPoints, thresholds: Mapping[str, float],
                      positions: Sequence[str]) -> Dict[str, PositionStats]:
    # как будто включён только этот один фильтр
    out = {}
    for pos in positions:
        t = thresholds.get(pos)
        if t is None:
            continue
        total = rejected = 0
        for unit in units.values():
            p = unit.get(pos)
            if p is None:
                continue
            total += 1
            if exceeds(p.value, t):
                rejected += 1
        out[pos] = PositionStats(rejected=rejected, total=total)
    return out


def evaluate_slice(points: Sequence[AirgapPoint], thresholds: Optional[Mapping[str, object]] = None,
                   rules: Sequence[ComparisonRule] = (), part: str = "",
                   state: Optional[State] = None) -> FilterResult:
    """
    Фильтр брака по одному срезу деталь+состояние.
    Входной список не меняется: kept - новый кортеж точек годных юнитов.
    """
    points = list(points)
    limits = parse_thresholds(thresholds or {})
    active = [r for r in rules if r.is_active]
    positions = sorted({p.position for p in points})
    units = group_by_unit(points)

    stats = count_independent(units, limits, positions)

    decisions = {}
    for serial, unit in units.items():
        rejected, triggered = is_unit_rejected(unit, limits, active, positions)
        any_point = next(iter(unit.values()))
        decisions[serial] = RejectionDecision(serial=serial, part=any_point.part,
                                              rejected=rejected, triggered=triggered)

    kept = tuple(p for p in points if not decisions[p.serial].rejected)
    if not part and points:
        part = points[0].part
    return FilterResult(part=part, state=state, kept=kept,
                        position_stats=stats, decisions=decisions)
