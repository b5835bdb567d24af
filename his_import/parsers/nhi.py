from his_import.commons.logger import logger

from .base import first_line, first_token, is_markup
from .decoders import ProfileDecoder
from .generic import parse_generic
from .models import ImportResult
from .profiles import NHI

_RECORD_TOKENS = {NHI.records.header, NHI.records.detail, *NHI.records.header_aliases}


def parse_nhi(text: str, filename: str = "", encoding: str = "utf-8", warn_on_coerced: bool = True) -> ImportResult:
    """NHI daily upload XML (MSH/MB1/MB2) or the monthly T/D/P claim file."""
    decoder = ProfileDecoder(NHI, encoding=encoding, warn_on_coerced=warn_on_coerced)
    if is_markup(text, filename):
        return decoder.parse_xml(text)
    if first_token(first_line(text)) in _RECORD_TOKENS:
        return decoder.parse_records(text)
    logger.info("NHI content is not record-typed, falling back to column mapping")
    result = parse_generic(text, filename, encoding, warn_on_coerced)
    result.source_vendor = NHI.code
    return result
