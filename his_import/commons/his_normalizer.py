from dataclasses import asdict
from typing import Callable, Dict

from his_import.commons.logger import logger, mask_id
from his_import.parsers.base import detect_vendor
from his_import.parsers.drmaster import parse_drmaster
from his_import.parsers.generic import parse_generic
from his_import.parsers.models import ImportResult
from his_import.parsers.nhi import parse_nhi
from his_import.parsers.profiles import (
    VENDOR_AUTO,
    VENDOR_DRMASTER,
    VENDOR_GENERIC,
    VENDOR_NHI,
    VENDOR_VISION,
    VENDOR_YAOSHENG,
    get_vendor_name,
)
from his_import.parsers.vision import parse_vision
from his_import.parsers.yaosheng import parse_yaosheng

PARSERS: Dict[str, Callable[..., ImportResult]] = {
    VENDOR_NHI: parse_nhi,
    VENDOR_YAOSHENG: parse_yaosheng,
    VENDOR_VISION: parse_vision,
    VENDOR_DRMASTER: parse_drmaster,
    VENDOR_GENERIC: parse_generic,
}


class HISNormalizer:
    def __init__(self, autodetect: bool = True, override: str = "", warn_on_coerced: bool = True):
        self.autodetect = autodetect
        self.override = (override or "").lower()
        self.warn_on_coerced = warn_on_coerced

    def resolve_vendor(self, text: str, filename: str = "", vendor: str = VENDOR_AUTO) -> str:
        vendor = (vendor or VENDOR_AUTO).lower()
        if vendor == VENDOR_AUTO:
            vendor = self.override or VENDOR_AUTO
        if vendor != VENDOR_AUTO and vendor not in PARSERS:
            logger.warning(f"Unknown vendor '{vendor}' for '{filename}', falling back to auto-detection")
            vendor = VENDOR_AUTO
        if vendor == VENDOR_AUTO:
            vendor = detect_vendor(text, filename) if self.autodetect else VENDOR_GENERIC
            logger.info(f"Detected vendor '{vendor}' ({get_vendor_name(vendor)}) for '{filename}'")
        return vendor

    def normalize(self, text: str, filename: str = "", vendor: str = VENDOR_AUTO, encoding: str = "utf-8") -> ImportResult:
        code = self.resolve_vendor(text, filename, vendor)
        return PARSERS[code](text, filename, encoding, self.warn_on_coerced)

    def to_payload(self, result: ImportResult, mask_ids: bool = False) -> Dict:
        """Serializable form of an ImportResult.

        With mask_ids the national ids of patients and prescriptions are
        masked, for payloads handed to a UI.
        """
        payload = asdict(result)
        payload["source_vendor_name"] = get_vendor_name(result.source_vendor)
        if mask_ids:
            for p in payload["patients"]:
                p["national_id"] = mask_id(p["national_id"])
            for rx in payload["prescriptions"]:
                raw = rx["patient_id"]
                rx["patient_id"] = mask_id(raw)
                # DrMaster and column-mapped numbers embed the id
                if raw:
                    rx["prescription_no"] = rx["prescription_no"].replace(raw, rx["patient_id"])
        return payload
