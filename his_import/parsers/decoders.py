"""Profile-driven decode engine shared by every vendor.

Three sub-formats: XML (RECS/REC/MB2), fixed-width lines, delimited lines.
Delimited input is either record-typed (a leading T/D/P or H/D/M token) or
column-mapped (header row or the vendor's default column order).
"""
from typing import Dict, List, Optional

from defusedxml import ElementTree as SafeET
from defusedxml.ElementTree import ParseError as SafeParseError

from his_import.commons.logger import logger

from .assembler import ResultAssembler
from .base import (
    MarkupDecodeError,
    first_line,
    get_field,
    get_field_by_key,
    safe_slice,
    sniff_separator,
    split_line,
)
from .canonical import Canonicalizer, build_prescription_no, normalize_date
from .field_mapper import build_column_mapping, is_header_line
from .models import ImportResult, Patient, Prescription, PrescriptionItem, VendorRecord
from .profiles import ITEM_SECTION, RECORD_TAG, ROOT_TAG, VendorProfile


def _text(elem) -> str:
    if elem is None:
        return ""
    return (elem.text or "").strip()


class ProfileDecoder:
    def __init__(self, profile: VendorProfile, encoding: str = "utf-8", warn_on_coerced: bool = True):
        self.profile = profile
        self.encoding = encoding
        self.warn_on_coerced = warn_on_coerced

    def _start(self, source_type: str):
        assembler = ResultAssembler(source_type, self.profile.code, self.warn_on_coerced)
        canon = Canonicalizer(assembler, self.profile.prefix, self.profile.track_drug_usage)
        return assembler, canon

    # ------------------------------------------------------------------ XML
    def read_records(self, text: str) -> List[VendorRecord]:
        """Unmarshal RECS/REC into vendor records; raises SafeParseError/ValueError."""
        root = SafeET.fromstring(text)
        if root.tag != ROOT_TAG:
            raise ValueError(f"expected <{ROOT_TAG}> root element, got <{root.tag}>")

        sections = self.profile.xml_sections
        records = []
        for i, rec in enumerate(root.findall(RECORD_TAG), start=1):
            header_el = rec.find(sections["header"]) if sections else rec
            visit_el = rec.find(sections["visit"]) if sections else rec
            header = {}
            visit = {}
            if header_el is not None:
                header = {t: _text(header_el.find(t)) for t in self.profile.xml_header_tags}
            if visit_el is not None:
                visit = {t: _text(visit_el.find(t)) for t in self.profile.xml_visit_tags}
            items = [
                {t: _text(mb2.find(t)) for t in self.profile.xml_item_tags}
                for mb2 in rec.findall(ITEM_SECTION)
            ]
            records.append(
                VendorRecord(
                    vendor=self.profile.code,
                    header=header,
                    visit=visit,
                    items=items,
                    position=f"record {i}",
                )
            )
        return records

    def parse_xml(self, text: str) -> ImportResult:
        assembler, canon = self._start("xml")
        try:
            records = self.read_records(text)
        except (SafeParseError, ValueError) as ex:
            msg = f"XML decode failed: {ex}"
            assembler.error(msg)
            raise MarkupDecodeError(msg, result=assembler.finish([], [])) from ex

        for rec in records:
            assembler.seen()
            if canon.add_record(rec):
                assembler.imported()
            else:
                assembler.fail(f"{rec.position}: no usable patient or item data")

        return assembler.finish(canon.patients, canon.prescriptions, canon.drug_usages)

    # ---------------------------------------------------------- fixed width
    def parse_fixed_width(self, text: str) -> ImportResult:
        offsets = self.profile.fixed_width or {}
        assembler, canon = self._start("dat")

        for line_no, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            # offsets count bytes of the source encoding, not characters
            raw = line.encode(self.encoding, errors="replace")
            if len(raw) < self.profile.fixed_min_width:
                assembler.skip(f"line {line_no}: shorter than {self.profile.fixed_min_width} bytes")
                continue
            start, end = offsets["record_type"]
            if raw[start:end].decode("ascii", errors="ignore") != self.profile.fixed_detail_type:
                continue

            values = {
                key: safe_slice(raw, s, e).decode(self.encoding, errors="ignore").strip()
                for key, (s, e) in offsets.items()
                if key != "record_type"
            }
            self._apply_row(values, f"line {line_no}", assembler, canon)

        return assembler.finish(canon.patients, canon.prescriptions, canon.drug_usages)

    # ------------------------------------------------------- column mapped
    def parse_columns(self, text: str, source_type: str = "csv", separator: Optional[str] = None) -> ImportResult:
        assembler, canon = self._start(source_type)
        sep = separator or sniff_separator(first_line(text))
        col_map: Optional[Dict[str, int]] = None

        for line_no, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            fields = split_line(line, sep)

            if col_map is None:
                if is_header_line(fields, self.profile.header_keywords):
                    col_map = build_column_mapping(fields, self.profile.column_keys)
                    logger.debug(f"[{self.profile.code}] header columns: {col_map}")
                    continue
                col_map = dict(self.profile.default_columns)
                logger.debug(f"[{self.profile.code}] no header row, using default column order")

            if len(fields) < 2:
                assembler.seen()
                assembler.fail(f"line {line_no}: expected '{sep}' separated fields")
                continue

            values = {key: get_field_by_key(fields, col_map, key) for key in col_map}
            self._apply_row(values, f"line {line_no}", assembler, canon)

        return assembler.finish(canon.patients, canon.prescriptions, canon.drug_usages)

    def _apply_row(self, values: Dict[str, str], where: str, assembler: ResultAssembler, canon: Canonicalizer) -> None:
        """One flat row carries patient, prescription header and at most one item."""
        assembler.seen()
        national_id = values.get("national_id", "")
        if not national_id:
            assembler.fail(f"{where}: missing national id")
            return

        canon.add_patient(
            Patient(
                national_id=national_id,
                name=values.get("name", ""),
                birthday=normalize_date(values.get("birthday", "")),
                phone=values.get("phone", ""),
            )
        )

        rx_no = values.get("prescription_no", "")
        visit_date = values.get("visit_date", "")
        visit_key = rx_no or visit_date
        if visit_key:
            rx = canon.open_prescription(
                (national_id, visit_key),
                Prescription(
                    patient_id=national_id,
                    prescription_no=rx_no or build_prescription_no(self.profile.prefix, national_id, visit_date),
                    dispense_date=normalize_date(visit_date),
                    visit_type=values.get("visit_type", ""),
                    provider_code=values.get("hospital", ""),
                ),
            )
            drug_code = values.get("drug_code", "")
            if drug_code:
                canon.add_item(
                    rx,
                    PrescriptionItem(
                        order_type="1",
                        drug_code=drug_code,
                        drug_name=values.get("drug_name", ""),
                        frequency=values.get("frequency", ""),
                        quantity=assembler.to_float(values.get("quantity", ""), "quantity", where),
                        days_supply=assembler.to_int(values.get("days", ""), "days", where),
                    ),
                )
        assembler.imported()

    # -------------------------------------------------------- record typed
    def parse_records(self, text: str) -> ImportResult:
        """Header/detail/item rows.

        States: no open prescription, or one open prescription key. A detail
        row opens (or reopens) its key; item rows append to it; the next
        detail row or the end of input closes it.
        """
        layout = self.profile.records
        assembler, canon = self._start(layout.source_type)
        current_key = None

        for line_no, line in enumerate(text.splitlines(), start=1):
            line = line.strip()
            if not line:
                continue
            fields = split_line(line, layout.separator)
            if len(fields) < 2:
                continue
            record_type = fields[0].strip().upper()
            where = f"line {line_no}"

            if record_type == layout.header or record_type in layout.header_aliases:
                continue

            if record_type == layout.detail:
                assembler.seen()
                if len(fields) < layout.detail_min_fields:
                    assembler.fail(f"{where}: expected at least {layout.detail_min_fields} fields, got {len(fields)}")
                    current_key = None
                    continue
                current_key = self._open_detail(fields, where, assembler, canon)
                assembler.imported()

            elif record_type == layout.item:
                if current_key is None:
                    assembler.skip(f"{where}: item row without an open prescription")
                    continue
                if len(fields) < layout.item_min_fields:
                    assembler.skip(f"{where}: item row with {len(fields)} fields")
                    continue
                self._add_item_row(fields, where, canon.get_prescription(current_key), assembler, canon)

        return assembler.finish(canon.patients, canon.prescriptions, canon.drug_usages)

    def _open_detail(self, fields: List[str], where: str, assembler: ResultAssembler, canon: Canonicalizer):
        layout = self.profile.records
        values = {key: get_field(fields, idx) for key, idx in layout.detail_columns.items()}
        national_id = values.get("national_id", "")
        canon.add_patient(
            Patient(
                national_id=national_id,
                name=values.get("name", ""),
                birthday=normalize_date(values.get("birthday", "")),
                phone=values.get("phone", ""),
            )
        )
        key = tuple(values.get(k, "") for k in layout.key_fields)
        canon.open_prescription(
            key,
            Prescription(
                patient_id=national_id,
                prescription_no=build_prescription_no(
                    self.profile.prefix, *(values.get(k, "") for k in layout.number_fields)
                ),
                dispense_date=normalize_date(values.get("visit_date", "")),
                visit_type=values.get("visit_type", ""),
                total_points=assembler.to_float(values.get("total_points", ""), "total_points", where),
                copay=assembler.to_float(values.get("copay", ""), "copay", where),
            ),
        )
        return key

    def _add_item_row(self, fields, where, rx, assembler, canon) -> None:
        layout = self.profile.records
        values = {key: get_field(fields, idx) for key, idx in layout.item_columns.items()}
        canon.add_item(
            rx,
            PrescriptionItem(
                order_type=values.get("order_type", "") or layout.default_order_type,
                drug_code=values.get("drug_code", ""),
                drug_name=values.get("drug_name", ""),
                frequency=values.get("frequency", ""),
                quantity=assembler.to_float(values.get("quantity", ""), "quantity", where),
                unit_price=assembler.to_float(values.get("unit_price", ""), "unit_price", where),
                days_supply=assembler.to_int(values.get("days", ""), "days", where),
            ),
        )
