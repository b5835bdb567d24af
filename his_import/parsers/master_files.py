"""Master-file imports: pharmacy patient roster and NHI drug master.

Both are plain CSV with a fixed column order and an optional header row.
"""
from typing import Callable, List, Sequence, Tuple, TypeVar

from his_import.commons.logger import logger

from .base import get_field, split_line
from .canonical import normalize_date
from .models import DrugMasterEntry, MasterImportResult, RosterPatient

T = TypeVar("T")

ROSTER_HEADER_TOKENS = ("身分證", "姓名", "national_id")
DRUG_MASTER_HEADER_TOKENS = ("健保碼", "藥品代碼", "代碼", "drug_code")


def _import_lines(
    text: str,
    header_tokens: Sequence[str],
    build: Callable[[List[str]], T],
    required: Callable[[T], bool],
) -> Tuple[MasterImportResult, List[T]]:
    result = MasterImportResult()
    rows: List[T] = []
    first = True
    for line_no, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        if first:
            first = False
            if any(tok in line.lower() for tok in header_tokens):
                continue

        result.total += 1
        fields = split_line(line)
        if len(fields) < 2:
            result.errors.append(f"line {line_no}: malformed row")
            continue
        row = build(fields)
        if not required(row):
            result.errors.append(f"line {line_no}: missing required field")
            continue
        rows.append(row)
        result.success += 1

    if result.errors:
        logger.warning(f"Master import: {len(result.errors)} rejected of {result.total}")
    return result, rows


def parse_patient_roster(text: str) -> Tuple[MasterImportResult, List[RosterPatient]]:
    """Columns: national_id, name, birthday, phone, address, notes."""
    return _import_lines(
        text,
        ROSTER_HEADER_TOKENS,
        lambda f: RosterPatient(
            national_id=get_field(f, 0),
            name=get_field(f, 1),
            birthday=normalize_date(get_field(f, 2)),
            phone=get_field(f, 3),
            address=get_field(f, 4),
            notes=get_field(f, 5),
        ),
        lambda p: bool(p.national_id and p.name),
    )


def parse_drug_master(text: str) -> Tuple[MasterImportResult, List[DrugMasterEntry]]:
    """Columns: NHI drug code, drug name, supplier."""
    return _import_lines(
        text,
        DRUG_MASTER_HEADER_TOKENS,
        lambda f: DrugMasterEntry(
            drug_code=get_field(f, 0),
            drug_name=get_field(f, 1),
            supplier=get_field(f, 2),
        ),
        lambda d: bool(d.drug_code and d.drug_name),
    )
