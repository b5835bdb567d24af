from typing import Dict, Iterable, Optional, Sequence

from .profiles import COLUMN_SYNONYMS


def is_header_line(fields: Sequence[str], keywords: Iterable[str], min_matches: int = 2) -> bool:
    """A line is a header when enough of its cells contain a known keyword."""
    keywords = [k.lower() for k in keywords]
    matches = 0
    for f in fields:
        cell = f.strip().lower()
        if cell and any(k in cell for k in keywords):
            matches += 1
    return matches >= min_matches


def build_column_mapping(
    headers: Sequence[str], keys: Optional[Iterable[str]] = None
) -> Dict[str, int]:
    """Map canonical keys to column indexes from header names.

    Each column goes to the first key (in synonym-table order) whose synonym it
    contains. When two columns resolve to the same key the later one wins.
    """
    allowed = set(keys) if keys is not None else set(COLUMN_SYNONYMS)
    col_map: Dict[str, int] = {}
    for idx, header in enumerate(headers):
        h = header.strip().lower()
        if not h:
            continue
        for key, synonyms in COLUMN_SYNONYMS.items():
            if key not in allowed:
                continue
            if any(s.lower() in h for s in synonyms):
                col_map[key] = idx
                break
    return col_map
