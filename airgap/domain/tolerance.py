import math
import re
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from ..shared.utils import normalize_num_str


_NUM_RE = re.compile(r"^[-]?\d+(?:\.\d+)?$")


def _fix_leading_dot(s: str) -> str:
    # ".1" -> "0.1", "-.1" -> "-0.1"
    if s.startswith("."):
        return "0" + s
    if s.startswith("-."):
        return "-0" + s[1:]
    return s


def parse_threshold(raw) -> Optional[float]:
    """
    Порог/запас из поля ввода. None - фильтр выключен:
    пусто, 0, отрицательное, не число.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        f = float(raw)
    else:
        s = _fix_leading_dot(normalize_num_str(raw))
        if not s or not _NUM_RE.fullmatch(s):
            return None
        f = float(s)
    if not math.isfinite(f) or f <= 0:
        return None
    return f


def parse_thresholds(raw: Mapping[str, object]) -> dict:
    """{'N': '.1', 'O': '', 'P': 0} -> {'N': 0.1} - только включённые позиции."""
    out = {}
    for pos, val in (raw or {}).items():
        t = parse_threshold(val)
        if t is not None:
            out[pos] = t
    return out


def exceeds(value: float, threshold: float) -> bool:
    return abs(value) > threshold


@dataclass(frozen=True)
class ComparisonRule:
    """Брак, если |L| >= |R| + margin хотя бы для одной пары позиций L x R."""
    left: Tuple[str, ...]
    right: Tuple[str, ...]
    margin: object = None
    enabled: bool = True

    @property
    def margin_value(self) -> Optional[float]:
        return parse_threshold(self.margin)

    @property
    def is_active(self) -> bool:
        return self.enabled and bool(self.left) and bool(self.right) and self.margin_value is not None

    @property
    def positions(self) -> Tuple[str, ...]:
        return tuple(self.left) + tuple(self.right)

    @property
    def label(self) -> str:
        return f"compare:{'+'.join(self.left)}>={'+'.join(self.right)}+{self.margin_value}"

    def violated_by(self, values: Mapping[str, float]) -> Optional[bool]:
        """
        True/False - результат проверки; None - правило к юниту не применимо
        (выключено или нет одной из нужных позиций).
        """
        margin = self.margin_value
        if not self.is_active:
            return None
        if any(p not in values for p in self.positions):
            return None
        for lp in self.left:
            lv = abs(values[lp])
            for rp in self.right:
                if lv >= abs(values[rp]) + margin:
                    return True
        return False
