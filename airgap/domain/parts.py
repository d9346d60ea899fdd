import re
from typing import Optional

from ..shared.constants import SLOT_TO_PART, PART_TO_SLOT, VALID_PARTS
from ..shared.utils import try_parse_float, is_integral, is_blank


_SLOT_WORD_RE = re.compile(r"\b([1-8])\b")


def slot_to_code(slot) -> Optional[str]:
    if isinstance(slot, bool):
        return None
    f = try_parse_float(slot)
    if f is None or not is_integral(f):
        return None
    return SLOT_TO_PART.get(int(round(f)))


def code_to_slot(code: str) -> Optional[int]:
    return PART_TO_SLOT.get((code or "").strip().upper())


def is_valid_part(code) -> bool:
    return isinstance(code, str) and code in VALID_PARTS


def resolve_part(value) -> Optional[str]:
    """
    Колонка «Part Type/Nest» в выгрузке щупа:
    6 / '6' / 'Nest 6' -> 'RRL'; 'rrl' -> 'RRL'; прочее -> текст в верхнем регистре.
    Пусто -> None.
    """
    if is_blank(value):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        code = slot_to_code(value)
        if code:
            return code
        return str(value).strip().upper()

    text = str(value).strip()
    m = _SLOT_WORD_RE.search(text)
    if m:
        return SLOT_TO_PART[int(m.group(1))]
    code = slot_to_code(text)
    if code:
        return code
    # неизвестное значение не подменяем валидным кодом
    return text.upper()
