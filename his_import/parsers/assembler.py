from typing import Iterable, Optional

from his_import.commons.logger import logger

from .models import DrugUsage, ImportResult, Patient, Prescription


class ResultAssembler:
    """Counters, diagnostics and collections of one parse call."""

    def __init__(self, source_type: str, source_vendor: str, warn_on_coerced: bool = True):
        self.result = ImportResult(source_type=source_type, source_vendor=source_vendor)
        self.warn_on_coerced = warn_on_coerced

    def seen(self) -> None:
        self.result.total += 1

    def imported(self) -> None:
        self.result.imported += 1

    def skip(self, reason: str = "") -> None:
        self.result.skipped += 1
        if reason:
            logger.debug(f"Skipped: {reason}")

    def fail(self, message: str) -> None:
        self.result.failed += 1
        self.result.errors.append(message)
        logger.warning(message)

    def error(self, message: str) -> None:
        """Diagnostic that does not fail the row."""
        self.result.errors.append(message)
        logger.warning(message)

    def warn(self, message: str) -> None:
        self.result.warnings.append(message)
        logger.debug(message)

    # Unparsable numbers become 0; the loss is reported as a warning, never a failure.
    def to_float(self, raw: str, label: str = "", where: str = "") -> float:
        raw = (raw or "").strip()
        if not raw:
            return 0.0
        try:
            return float(raw)
        except ValueError:
            self._coerced(raw, label, where)
            return 0.0

    def to_int(self, raw: str, label: str = "", where: str = "") -> int:
        raw = (raw or "").strip()
        if not raw:
            return 0
        try:
            return int(raw)
        except ValueError:
            self._coerced(raw, label, where)
            return 0

    def _coerced(self, raw: str, label: str, where: str) -> None:
        if self.warn_on_coerced:
            prefix = f"{where}: " if where else ""
            self.warn(f"{prefix}{label} '{raw}' is not numeric, using 0")

    def finish(
        self,
        patients: Iterable[Patient],
        prescriptions: Iterable[Prescription],
        drug_usages: Optional[Iterable[DrugUsage]] = None,
    ) -> ImportResult:
        res = self.result
        res.patients = [p for p in patients if p.national_id]
        res.prescriptions = list(prescriptions)
        res.drug_usages = list(drug_usages or [])
        res.success = res.failed == 0
        logger.info(
            f"[{res.source_vendor}/{res.source_type}] total={res.total} imported={res.imported} "
            f"skipped={res.skipped} failed={res.failed} patients={len(res.patients)} "
            f"prescriptions={len(res.prescriptions)}"
        )
        return res
