from .base import is_markup
from .decoders import ProfileDecoder
from .models import ImportResult
from .profiles import DRMASTER


def parse_drmaster(text: str, filename: str = "", encoding: str = "utf-8", warn_on_coerced: bool = True) -> ImportResult:
    """DrMaster exports: XML with mobile/emergency-contact tags, H/D/M pipe TXT, or CSV."""
    decoder = ProfileDecoder(DRMASTER, encoding=encoding, warn_on_coerced=warn_on_coerced)
    if is_markup(text, filename):
        return decoder.parse_xml(text)
    if "|" in text:
        return decoder.parse_records(text)
    return decoder.parse_columns(text)
