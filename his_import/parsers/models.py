# ===============================
# File: his_import/parsers/models.py
# ===============================
from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class Patient:
    national_id: str
    name: str = ""
    birthday: str = ""  # YYYY-MM-DD
    phone: str = ""
    card_number: str = ""
    address: str = ""
    emergency_contact: str = ""


@dataclass
class PrescriptionItem:
    order_type: str = ""  # 1=drug, 2=treatment, 9=dispensing fee
    drug_code: str = ""
    drug_name: str = ""
    frequency: str = ""
    route: str = ""
    quantity: float = 0.0
    days_supply: int = 0
    unit_price: float = 0.0
    cost_price: float = 0.0
    single_dose: str = ""
    unit: str = ""
    refill_no: int = 0
    total_refills: int = 0


@dataclass
class Prescription:
    patient_id: str
    prescription_no: str = ""
    dispense_date: str = ""  # YYYY-MM-DD
    dispense_time: str = ""  # HH:MM:SS
    visit_type: str = ""  # 08 = chronic refill
    visit_sequence: str = ""  # IC01, IC02...
    chronic_refill_no: int = 0
    provider_code: str = ""
    provider_name: str = ""
    diagnosis_code: str = ""
    pharmacist_id: str = ""
    pharmacist_name: str = ""
    total_points: float = 0.0
    copay: float = 0.0
    data_format: str = ""
    fee_year_month: str = ""
    claim_type: str = ""
    items: List[PrescriptionItem] = field(default_factory=list)


@dataclass
class DrugUsage:
    drug_code: str
    drug_name: str = ""
    total_qty: float = 0.0
    dispense_count: int = 0


@dataclass
class ImportResult:
    source_type: str
    source_vendor: str
    success: bool = False
    total: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    patients: List[Patient] = field(default_factory=list)
    prescriptions: List[Prescription] = field(default_factory=list)
    drug_usages: List[DrugUsage] = field(default_factory=list)


# Intermediate shapes, one per vendor. They keep the vendor's own tag names;
# the canonicalizer is the only place that knows the canonical field names.
@dataclass
class VendorRecord:
    vendor: str
    header: Dict[str, str] = field(default_factory=dict)  # h1..h4
    visit: Dict[str, str] = field(default_factory=dict)  # A01..d37
    items: List[Dict[str, str]] = field(default_factory=list)  # MB2 sections
    position: str = ""


@dataclass
class MasterImportResult:
    total: int = 0
    success: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class RosterPatient:
    national_id: str
    name: str
    birthday: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""


@dataclass
class DrugMasterEntry:
    drug_code: str
    drug_name: str
    supplier: str = ""
