from typing import Any, Dict, List, Tuple

import yaml

from his_import.commons.encoding import decode_content
from his_import.commons.his_normalizer import HISNormalizer
from his_import.commons.logger import logger
from his_import.commons.types import Settings, VendorInfo
from his_import.parsers.master_files import parse_drug_master, parse_patient_roster
from his_import.parsers.models import (
    DrugMasterEntry,
    ImportResult,
    MasterImportResult,
    RosterPatient,
)
from his_import.parsers.profiles import VENDOR_AUTO, VENDOR_TABLE
from his_import.validation.validators import validate_import_payload_or_raise


def list_supported_vendors() -> List[VendorInfo]:
    return [
        VendorInfo(code=code, name=name, description=desc, formats=list(formats))
        for code, name, desc, formats in VENDOR_TABLE
    ]


class HISEngine:
    """Engine facade: loads config, decodes buffers and dispatches to vendor parsers.

    Accepts a YAML path, an already loaded dict, or nothing (defaults).
    """

    def __init__(self, config_path_or_obj: Any = None):
        if isinstance(config_path_or_obj, str):
            with open(config_path_or_obj, "r", encoding="utf-8") as f:
                cfg = yaml.safe_load(f) or {}
        elif isinstance(config_path_or_obj, dict):
            cfg = config_path_or_obj
        else:
            cfg = {}
        self.settings = Settings.from_dict(cfg)

        parser_cfg = self.settings.parser
        self.normalizer = HISNormalizer(
            autodetect=True,
            override="" if parser_cfg.default_vendor == VENDOR_AUTO else parser_cfg.default_vendor,
            warn_on_coerced=parser_cfg.warn_on_coerced_fields,
        )

    def decode(self, buffer: bytes) -> Tuple[str, str]:
        return decode_content(buffer, self.settings.parser.legacy_encoding)

    def detect_and_parse(self, buffer: bytes, filename: str = "", vendor: str = VENDOR_AUTO) -> ImportResult:
        text, encoding = self.decode(buffer)
        logger.debug(f"Decoded '{filename}' ({len(buffer)} bytes) as {encoding}")
        result = self.normalizer.normalize(text, filename, vendor, encoding)
        if self.settings.parser.validate_output:
            validate_import_payload_or_raise(self.to_payload(result))
        return result

    def parse_by_vendor(self, buffer: bytes, filename: str, vendor: str) -> ImportResult:
        return self.detect_and_parse(buffer, filename, vendor)

    def to_payload(self, result: ImportResult, mask_ids: bool = False) -> Dict:
        return self.normalizer.to_payload(result, mask_ids=mask_ids)

    def parse_and_map(self, buffer: bytes, filename: str = "", vendor: str = VENDOR_AUTO, mask_ids: bool = False) -> Dict:
        return self.to_payload(self.detect_and_parse(buffer, filename, vendor), mask_ids=mask_ids)

    # ---- master files ----
    def import_patient_roster(self, buffer: bytes) -> Tuple[MasterImportResult, List[RosterPatient]]:
        text, _ = self.decode(buffer)
        return parse_patient_roster(text)

    def import_drug_master(self, buffer: bytes) -> Tuple[MasterImportResult, List[DrugMasterEntry]]:
        text, _ = self.decode(buffer)
        return parse_drug_master(text)

    @staticmethod
    def list_supported_vendors() -> List[VendorInfo]:
        return list_supported_vendors()
