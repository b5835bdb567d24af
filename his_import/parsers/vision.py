from .base import is_markup
from .decoders import ProfileDecoder
from .models import ImportResult
from .profiles import VISION


def parse_vision(text: str, filename: str = "", encoding: str = "utf-8", warn_on_coerced: bool = True) -> ImportResult:
    decoder = ProfileDecoder(VISION, encoding=encoding, warn_on_coerced=warn_on_coerced)
    if is_markup(text, filename):
        return decoder.parse_xml(text)
    # claim CSV: T header, D visit rows, P order rows
    return decoder.parse_records(text)
