from typing import Dict, List, Optional, Sequence

from .profiles import (
    PROFILES,
    VENDOR_DRMASTER,
    VENDOR_GENERIC,
    VENDOR_NHI,
    VENDOR_VISION,
    VENDOR_YAOSHENG,
)

MARKUP_SIGNATURES = ("<?xml", "<RECS>", "<REC>")

# Checked in order; the first vendor whose tags appear wins.
MARKUP_VENDOR_TAGS = (
    (("<d23>", "<d24>", "<d29>", "<d37>"), VENDOR_DRMASTER),
    (("<d22>",), VENDOR_VISION),
)

EXTENSION_OWNERS = {".dat": VENDOR_YAOSHENG}

HEADER_VENDOR_TOKENS = (
    (VENDOR_YAOSHENG, ("yaosheng", "耀聖")),
    (VENDOR_VISION, ("vision", "展望")),
    (VENDOR_DRMASTER, ("drmaster", "看診大師")),
)


class MarkupDecodeError(Exception):
    """XML that could not be read at the root level. Carries the partial result."""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result


def split_line(line: str, sep: str = ",") -> List[str]:
    """Split one delimited line; a double quote toggles quoting and is dropped."""
    fields = []
    buf = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == sep and not in_quotes:
            fields.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    fields.append("".join(buf))
    return fields


def get_field(fields: Sequence[str], index: int) -> str:
    if 0 <= index < len(fields):
        return fields[index].strip()
    return ""


def get_field_by_key(fields: Sequence[str], col_map: Dict[str, int], key: str) -> str:
    idx = col_map.get(key)
    if idx is None:
        return ""
    return get_field(fields, idx)


def safe_slice(raw: bytes, start: int, end: int) -> bytes:
    start = max(start, 0)
    end = min(end, len(raw))
    if start >= end:
        return b""
    return raw[start:end]


def first_line(text: str) -> str:
    return next((line.strip() for line in text.splitlines() if line.strip()), "")


def first_token(line: str, sep: str = ",") -> str:
    return split_line(line, sep)[0].strip().upper() if line else ""


def sniff_separator(line: str, candidates: Sequence[str] = (",", "\t")) -> str:
    counts = [(line.count(c), -i, c) for i, c in enumerate(candidates)]
    best = max(counts)
    return best[2] if best[0] > 0 else candidates[0]


def is_markup(text: str, filename: str = "") -> bool:
    if (filename or "").lower().endswith(".xml"):
        return True
    return any(sig in text for sig in MARKUP_SIGNATURES)


def _vendor_from_filename(filename: str) -> Optional[str]:
    lower = (filename or "").lower()
    for code, profile in PROFILES.items():
        if any(alias in lower for alias in profile.filename_aliases):
            return code
    for ext, code in EXTENSION_OWNERS.items():
        if lower.endswith(ext):
            return code
    return None


def _vendor_from_markup(text: str) -> str:
    for tags, code in MARKUP_VENDOR_TAGS:
        if any(tag in text for tag in tags):
            return code
    return VENDOR_NHI


def _vendor_from_csv(text: str) -> Optional[str]:
    line = first_line(text)
    if first_token(line) == "T":
        return VENDOR_NHI
    lower = line.lower()
    for code, tokens in HEADER_VENDOR_TOKENS:
        if any(tok in lower for tok in tokens):
            return code
    return None


def detect_vendor(text: str, filename: str = "") -> str:
    """Return one of the vendor codes; 'generic' when nothing matches."""
    vendor = _vendor_from_filename(filename)
    if vendor:
        return vendor
    if "|" in text and "," not in text:
        return VENDOR_DRMASTER
    if any(sig in text for sig in ("<?xml", "<RECS>")):
        return _vendor_from_markup(text)
    if "," in text:
        vendor = _vendor_from_csv(text)
        if vendor:
            return vendor
    return VENDOR_GENERIC
