from .decoders import ProfileDecoder
from .models import ImportResult
from .profiles import GENERIC


def parse_generic(text: str, filename: str = "", encoding: str = "utf-8", warn_on_coerced: bool = True) -> ImportResult:
    source_type = "txt" if (filename or "").lower().endswith(".txt") else "csv"
    decoder = ProfileDecoder(GENERIC, encoding=encoding, warn_on_coerced=warn_on_coerced)
    return decoder.parse_columns(text, source_type=source_type)
