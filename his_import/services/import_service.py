# his_import/services/import_service.py
import json
import os
import re
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import ValidationError

from his_import.commons.his_engine import HISEngine
from his_import.commons.logger import logger
from his_import.parsers.base import MarkupDecodeError
from his_import.parsers.models import ImportResult
from his_import.parsers.profiles import VENDOR_AUTO


class UploadTooLargeError(ValueError):
    def __init__(self, size: int, limit: int):
        super().__init__(f"upload of {size} bytes exceeds the {limit} byte limit")
        self.size = size
        self.limit = limit


def generate_output_filename(source: str, vendor: str = "unknown", extension: str = "json") -> str:
    """
    Timestamped name for a normalized payload, e.g.
    20251018-101500-123456_yaosheng_ys_export_0601.json
    """
    ts = datetime.utcnow().strftime("%Y%m%d-%H%M%S-%f")
    base_name = os.path.splitext(os.path.basename(source))[0]
    safe_base = re.sub(r"[^a-zA-Z0-9_\-]", "_", base_name)
    return f"{ts}_{vendor}_{safe_base}.{extension}"


class ImportService:
    """Caller side of the engine: owns file handles and the upload ceiling."""

    def __init__(self, engine: HISEngine, max_upload_mb: Optional[int] = None):
        self.engine = engine
        mb = max_upload_mb if max_upload_mb is not None else engine.settings.limits.max_upload_mb
        self.max_bytes = mb * 1024 * 1024

    def check_size(self, size: int) -> None:
        if size > self.max_bytes:
            raise UploadTooLargeError(size, self.max_bytes)

    def import_bytes(self, buffer: bytes, filename: str = "", vendor: str = VENDOR_AUTO) -> ImportResult:
        self.check_size(len(buffer))
        try:
            return self.engine.detect_and_parse(buffer, filename, vendor)
        except MarkupDecodeError as ex:
            logger.exception(f"Could not read XML export '{filename}': {ex}")
            raise
        except ValidationError as ve:
            logger.error(f"Normalized output of '{filename}' failed validation: {ve}")
            raise

    def import_file(self, path: Union[str, Path], vendor: str = VENDOR_AUTO) -> ImportResult:
        path = Path(path)
        self.check_size(path.stat().st_size)
        logger.info(f"Importing {path} (vendor={vendor})")
        return self.import_bytes(path.read_bytes(), path.name, vendor)

    def write_payload(self, result: ImportResult, source: str, out_dir: Union[str, Path], mask_ids: bool = False) -> Path:
        out_dir = Path(out_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        data: Dict = self.engine.to_payload(result, mask_ids=mask_ids)
        out_json = out_dir / generate_output_filename(source, result.source_vendor)
        out_json.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info(f"Payload written: {out_json}")
        return out_json
