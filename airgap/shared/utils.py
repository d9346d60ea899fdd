import math
import re


BAD_TO_GOOD = (
    ("\u2212", "-"), ("\u2013", "-"), ("\u2014", "-"),
    ("\u2012", "-"), ("\u2010", "-"),
    ("\u00A0", ""), ("\u202F", ""), ("\u2009", ""), ("\u2007", ""),
    ("\u2002", ""), ("\u2003", "")
)


_INT_RE = re.compile(r"^[0-9]+$")
_COL_RE = re.compile(r"^[A-Z]+$")


def normalize_num_str(s) -> str:
    if s is None:
        return ""
    t = str(s).strip()
    for bad, good in BAD_TO_GOOD:
        t = t.replace(bad, good)
    t = t.replace(" ", "").replace(",", ".")
    return t


def try_parse_float(s):
    """Число из ячейки: int/float как есть, строка через нормализацию. bool и мусор -> None."""
    if s is None or isinstance(s, bool):
        return None
    if isinstance(s, (int, float)):
        f = float(s)
        return f if math.isfinite(f) else None
    t = normalize_num_str(s)
    if not t:
        return None
    try:
        f = float(t)
    except ValueError:
        return None
    return f if math.isfinite(f) else None


def is_integral(f: float) -> bool:
    return abs(f - round(f)) < 1e-9


def is_blank(v) -> bool:
    return v is None or (isinstance(v, str) and v.strip() == "")


def cell_text(v) -> str:
    if v is None:
        return ""
    if isinstance(v, float) and is_integral(v):
        return str(int(round(v)))
    return str(v).strip()


def column_index(letters: str) -> int:
    """'A' -> 0, 'N' -> 13, 'AA' -> 26."""
    t = (letters or "").strip().upper()
    if not _COL_RE.fullmatch(t):
        raise ValueError(f"bad column letters: {letters!r}")
    idx = 0
    for ch in t:
        idx = idx * 26 + (ord(ch) - 64)
    return idx - 1


def column_letter(index: int) -> str:
    if index < 0:
        raise ValueError(f"negative column index: {index}")
    out = ""
    n = index + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        out = chr(65 + rem) + out
    return out


def is_digits(s: str) -> bool:
    return bool(_INT_RE.fullmatch(s or ""))
