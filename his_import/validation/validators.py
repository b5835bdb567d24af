# his_import/validation/validators.py
import re
from typing import Any, Dict, List

from pydantic import BaseModel, field_validator, model_validator

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class PatientPayload(BaseModel):
    national_id: str
    name: str = ""
    birthday: str = ""
    phone: str = ""
    card_number: str = ""
    address: str = ""
    emergency_contact: str = ""

    @field_validator("national_id")
    @classmethod
    def _not_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("national_id is required")
        return v

    @field_validator("birthday")
    @classmethod
    def _iso_or_empty(cls, v: str):
        if v and not _ISO_DATE.match(v):
            raise ValueError(f"birthday is not YYYY-MM-DD: {v!r}")
        return v


class ItemPayload(BaseModel):
    order_type: str = ""
    drug_code: str = ""
    drug_name: str = ""
    quantity: float = 0
    days_supply: int = 0


class PrescriptionPayload(BaseModel):
    patient_id: str
    prescription_no: str
    dispense_date: str = ""
    chronic_refill_no: int = 0
    items: List[ItemPayload] = []

    @field_validator("chronic_refill_no")
    @classmethod
    def _non_negative(cls, v: int):
        if v < 0:
            raise ValueError("chronic_refill_no must be >= 0")
        return v


class ImportPayload(BaseModel):
    source_type: str
    source_vendor: str
    success: bool
    total: int
    imported: int
    skipped: int
    failed: int
    errors: List[str] = []
    warnings: List[str] = []
    patients: List[PatientPayload] = []
    prescriptions: List[PrescriptionPayload] = []

    @model_validator(mode="after")
    def _success_matches_failures(self):
        if self.success != (self.failed == 0):
            raise ValueError(f"success={self.success} with failed={self.failed}")
        return self


def validate_import_payload_or_raise(payload: Dict[str, Any]) -> ImportPayload:
    """Builds the model; raises pydantic ValidationError when the payload is inconsistent."""
    return ImportPayload.model_validate(payload)
