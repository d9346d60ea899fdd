"""Канонизация идентификаторов: серийник + деталь -> ключ сопоставления."""
import re
from typing import Optional, Tuple

from ..shared.constants import (
    SERIAL_DENYLIST, SERIAL_DENY_SUBSTRINGS, SERIAL_MIN_TEXT_LEN, FIXTURE_SERIAL_LEAK,
)
from ..shared.utils import try_parse_float, is_integral, is_blank, is_digits, cell_text


_NON_DIGITS_RE = re.compile(r"[^0-9]")
# "1,234" / "12,345,678": разряды через запятую, а не десятичная запятая
_GROUPED_INT_RE = re.compile(r"^[1-9]\d{0,2}(?:,\d{3})+$")


def normalize_key(value) -> str:
    """
    '00123' -> '123', ' A1 ' -> 'A1', None -> ''.
    Идемпотентна: normalize_key(normalize_key(s)) == normalize_key(s).
    """
    if value is None:
        return ""
    s = cell_text(value) if isinstance(value, (int, float)) else str(value).strip()
    if is_digits(s):
        return str(int(s))
    return s


def make_key(serial, part) -> Tuple[str, str]:
    return (normalize_key(serial), (part or "").strip())


def serial_number(value) -> Optional[float]:
    if isinstance(value, str) and _GROUPED_INT_RE.fullmatch(value.strip()):
        return float(value.strip().replace(",", ""))
    return try_parse_float(value)


def coerce_probe_serial(value) -> Optional[str]:
    """
    Серийник из выгрузки щупа: только положительное целое.
    Последний шанс: выкинуть все нецифровые символы ('SN-0042' -> '42').
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    f = serial_number(value)
    if f is not None and is_integral(f):
        # целое, но не положительное (-5, 0) -> отбрасываем
        return str(int(round(f))) if f > 0 else None
    digits = _NON_DIGITS_RE.sub("", str(value))
    if digits and int(digits) > 0:
        return str(int(digits))
    return None


def coerce_fixture_serial(value) -> Optional[str]:
    """
    Серийник справа от маркера на листе приспособления.
    Целое > 0 -> '123' (хвостовые .0 убираем); иначе текст от 3 символов,
    не из списка мусора и не похожий на само измерение (малое дробное).
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    text = cell_text(value)
    low = text.lower()
    if low in SERIAL_DENYLIST:
        return None

    f = serial_number(value)
    if f is not None and is_integral(f) and f > 0:
        return str(int(round(f)))

    if len(text) < SERIAL_MIN_TEXT_LEN:
        return None
    if any(tok in low for tok in SERIAL_DENY_SUBSTRINGS):
        return None
    if f is not None and abs(f) < FIXTURE_SERIAL_LEAK and not is_integral(f):
        return None
    return text
