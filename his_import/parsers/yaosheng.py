from .base import is_markup
from .decoders import ProfileDecoder
from .models import ImportResult
from .profiles import YAOSHENG


def parse_yaosheng(text: str, filename: str = "", encoding: str = "utf-8", warn_on_coerced: bool = True) -> ImportResult:
    """Yaosheng exports: flat XML, fixed-width DAT, or delimited CSV/TXT."""
    decoder = ProfileDecoder(YAOSHENG, encoding=encoding, warn_on_coerced=warn_on_coerced)
    if is_markup(text, filename):
        return decoder.parse_xml(text)
    if (filename or "").lower().endswith(".dat"):
        return decoder.parse_fixed_width(text)
    return decoder.parse_columns(text)
