import re
from datetime import datetime
from typing import Dict, Hashable, List, Optional, Tuple

from .assembler import ResultAssembler
from .models import DrugUsage, Patient, Prescription, PrescriptionItem, VendorRecord

ERA_OFFSET = 1911
CHRONIC_VISIT_TYPE = "08"
CHRONIC_DAYS_THRESHOLD = 28
_CHRONIC_SEQUENCE = re.compile(r"^IC(\d{2})")
_ERA_DATE = re.compile(r"[0-9]{7}")


def convert_era_date(value: str) -> str:
    """YYYMMDD (era year = AD - 1911) -> YYYY-MM-DD; '' when malformed."""
    value = (value or "").strip()
    # ASCII digits only
    if not _ERA_DATE.fullmatch(value[:7]):
        return ""
    year = int(value[:3]) + ERA_OFFSET
    return f"{year:04d}-{value[3:5]}-{value[5:7]}"


def split_era_datetime(value: str) -> Tuple[str, str]:
    """YYYMMDDHHMMSS -> ('YYYY-MM-DD', 'HH:MM:SS'); time is '' below 13 chars."""
    value = (value or "").strip()
    date = convert_era_date(value[:7])
    time = ""
    if len(value) >= 13:
        time = f"{value[7:9]}:{value[9:11]}:{value[11:13]}"
    return date, time


def convert_era_datetime(value: str) -> Optional[datetime]:
    date, time = split_era_datetime(value)
    if not date or not time:
        return None
    try:
        return datetime.strptime(f"{date} {time}", "%Y-%m-%d %H:%M:%S")
    except ValueError:
        return None


def normalize_date(value: str) -> str:
    """Era dates are converted; anything else (already ISO, empty) passes through."""
    value = (value or "").strip()
    if _ERA_DATE.fullmatch(value):
        return convert_era_date(value)
    return value


def infer_chronic_refill(visit_type: str, visit_sequence: str) -> int:
    if visit_type == CHRONIC_VISIT_TYPE:
        return 1
    m = _CHRONIC_SEQUENCE.match(visit_sequence or "")
    if m:
        return int(m.group(1))
    return 0


def build_prescription_no(prefix: str, *parts: str) -> str:
    return "-".join(([prefix] if prefix else []) + list(parts))


class Canonicalizer:
    """Per-call dedup/correlation state. Never shared between calls."""

    def __init__(self, assembler: ResultAssembler, prefix: str = "", track_drug_usage: bool = False):
        self.assembler = assembler
        self.prefix = prefix
        self.track_drug_usage = track_drug_usage
        self._patients: Dict[str, Patient] = {}
        self._prescriptions: Dict[Hashable, Prescription] = {}
        self._usages: Dict[str, DrugUsage] = {}

    # ---- patients ----
    def add_patient(self, patient: Optional[Patient]) -> bool:
        if patient is None or not patient.national_id:
            return False
        if patient.national_id in self._patients:
            return False
        self._patients[patient.national_id] = patient
        return True

    # ---- prescriptions ----
    def get_prescription(self, key: Hashable) -> Optional[Prescription]:
        return self._prescriptions.get(key)

    def open_prescription(self, key: Hashable, rx: Prescription) -> Prescription:
        """First row for a key establishes the header; later rows reuse it."""
        existing = self._prescriptions.get(key)
        if existing is not None:
            return existing
        if not rx.chronic_refill_no:
            rx.chronic_refill_no = infer_chronic_refill(rx.visit_type, rx.visit_sequence)
        self._prescriptions[key] = rx
        return rx

    def add_item(self, rx: Prescription, item: PrescriptionItem) -> None:
        rx.items.append(item)
        if rx.chronic_refill_no == 0 and item.days_supply >= CHRONIC_DAYS_THRESHOLD:
            rx.chronic_refill_no = 1
        if self.track_drug_usage and item.order_type == "1":
            usage = self._usages.get(item.drug_code)
            if usage is None:
                self._usages[item.drug_code] = DrugUsage(
                    drug_code=item.drug_code,
                    drug_name=item.drug_name,
                    total_qty=item.quantity,
                    dispense_count=1,
                )
            else:
                usage.total_qty += item.quantity
                usage.dispense_count += 1

    # ---- vendor records (XML) ----
    def patient_from_record(self, rec: VendorRecord) -> Optional[Patient]:
        v = rec.visit
        national_id = v.get("A12", "")
        if not national_id:
            return None
        return Patient(
            national_id=national_id,
            name=v.get("d20", ""),
            birthday=convert_era_date(v.get("A13", "")),
            # mobile first when the export carries one
            phone=v.get("d23", "") or v.get("d21", ""),
            card_number=v.get("A11", ""),
            address=v.get("d22", ""),
            emergency_contact=v.get("d24", ""),
        )

    def prescription_from_record(self, rec: VendorRecord) -> Prescription:
        v, h = rec.visit, rec.header
        date, time = split_era_datetime(v.get("A17", ""))
        rx = Prescription(
            patient_id=v.get("A12", ""),
            dispense_date=date,
            dispense_time=time,
            visit_type=v.get("A23", ""),
            visit_sequence=v.get("A18", ""),
            provider_code=v.get("A14", ""),
            diagnosis_code=v.get("d19", ""),
            pharmacist_id=v.get("d31", ""),
            pharmacist_name=v.get("d32", ""),
            data_format=v.get("A01", ""),
            fee_year_month=h.get("h2", ""),
            claim_type=h.get("h3", ""),
        )
        if rx.provider_code:
            parts = (rx.provider_code, rx.dispense_date, rx.visit_sequence)
        else:
            parts = (rx.patient_id, rx.dispense_date)
        rx.prescription_no = build_prescription_no(self.prefix, *parts)
        return rx

    def item_from_section(self, section: Dict[str, str], where: str) -> PrescriptionItem:
        a = self.assembler
        return PrescriptionItem(
            order_type=section.get("p1", ""),
            drug_code=section.get("p2", ""),
            drug_name=section.get("p3", ""),
            frequency=section.get("p5", ""),
            route=section.get("p6", ""),
            quantity=a.to_float(section.get("p7", ""), "p7", where),
            unit_price=a.to_float(section.get("p8", ""), "p8", where),
            cost_price=a.to_float(section.get("p9", ""), "p9", where),
            days_supply=a.to_int(section.get("d27", ""), "d27", where),
            single_dose=section.get("d28", ""),
            unit=section.get("d29", ""),
            refill_no=a.to_int(section.get("d36", ""), "d36", where),
            total_refills=a.to_int(section.get("d37", ""), "d37", where),
        )

    def add_record(self, rec: VendorRecord) -> bool:
        """Canonicalize one XML record. False when it yields nothing usable."""
        patient = self.patient_from_record(rec)
        rx = self.prescription_from_record(rec)
        items = [self.item_from_section(s, rec.position) for s in rec.items]
        if not items and not rx.patient_id:
            return False
        self.add_patient(patient)
        rx = self.open_prescription((rx.patient_id, rx.prescription_no), rx)
        for item in items:
            self.add_item(rx, item)
        return True

    # ---- output ----
    @property
    def patients(self) -> List[Patient]:
        return list(self._patients.values())

    @property
    def prescriptions(self) -> List[Prescription]:
        return list(self._prescriptions.values())

    @property
    def drug_usages(self) -> List[DrugUsage]:
        return list(self._usages.values())
