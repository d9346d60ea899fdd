import logging
from typing import List, Optional, Sequence

from ..domain.types import AirgapPoint, MergedRecord, ProbeRecord, State
from ..shared.constants import PRE_POSITIONS, POST_POSITIONS, MEASUREMENT_BOUND, PROBE_SERIAL_LEAK, UNVERIFIED_SOURCE
from ..shared.utils import is_integral


log = logging.getLogger(__name__)


def _points_for(rec: MergedRecord, positions: Sequence[str], state: State) -> List[AirgapPoint]:
    out = []
    for pos in positions:
        v = rec.measurements.get(pos)
        if v is None:
            continue
        out.append(AirgapPoint(part=rec.part, serial=rec.serial, position=pos, state=state, value=v,
                               reference_measurement=rec.reference_measurement,
                               source_file=rec.source_file, sheet_name=rec.sheet_name))
    return out


def to_tidy(merged: Sequence[MergedRecord], pre_positions: Sequence[str] = PRE_POSITIONS,
            post_positions: Sequence[str] = POST_POSITIONS) -> List[AirgapPoint]:
    """Одна точка на (юнит, позиция, состояние); замер приспособления общий для всех точек юнита."""
    points: List[AirgapPoint] = []
    for rec in merged:
        points.extend(_points_for(rec, pre_positions, State.PRE))
        points.extend(_points_for(rec, post_positions, State.POST))
    log.info("tidy: %d points from %d merged records", len(points), len(merged))
    return points


def probe_to_points(probe_records: Sequence[ProbeRecord],
                    pre_positions: Sequence[str] = PRE_POSITIONS) -> List[AirgapPoint]:
    """
    Запасной путь без подтверждения приспособлением: только «pre»,
    без замера, и строгая граница |x| <= 0.80.
    """
    points: List[AirgapPoint] = []
    for rec in probe_records:
        for pos in pre_positions:
            v = rec.measurements.get(pos)
            if v is None:
                continue
            if is_integral(v) and v >= PROBE_SERIAL_LEAK:
                continue
            if abs(v) > MEASUREMENT_BOUND:
                continue
            points.append(AirgapPoint(part=rec.part, serial=rec.serial, position=pos, state=State.PRE,
                                      value=v, reference_measurement=None, source_file=UNVERIFIED_SOURCE))
    log.warning("no fixture matches: %d unverified points from %d probe records",
                len(points), len(probe_records))
    return points


def build_points(merged: Sequence[MergedRecord], probe_records: Optional[Sequence[ProbeRecord]] = None,
                 pre_positions: Sequence[str] = PRE_POSITIONS,
                 post_positions: Sequence[str] = POST_POSITIONS) -> List[AirgapPoint]:
    if not merged and probe_records:
        return probe_to_points(probe_records, pre_positions)
    return to_tidy(merged, pre_positions, post_positions)
