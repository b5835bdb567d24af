from typing import Tuple

from his_import.commons.logger import logger

UTF8_BOM = b"\xef\xbb\xbf"
DEFAULT_LEGACY_ENCODING = "cp950"


def _count_utf8(content: bytes) -> Tuple[int, int]:
    valid = invalid = 0
    i, n = 0, len(content)
    while i < n:
        b = content[i]
        if b < 0x80:
            i += 1
            continue
        # 3-byte sequence (CJK lives here)
        if 0xE0 <= b <= 0xEF and i + 2 < n:
            if content[i + 1] & 0xC0 == 0x80 and content[i + 2] & 0xC0 == 0x80:
                valid += 1
                i += 3
                continue
        if 0xC0 <= b <= 0xDF and i + 1 < n:
            if content[i + 1] & 0xC0 == 0x80:
                valid += 1
                i += 2
                continue
        invalid += 1
        i += 1
    return valid, invalid


def _count_big5_pairs(content: bytes) -> int:
    pairs = 0
    i, n = 0, len(content)
    while i < n - 1:
        b1, b2 = content[i], content[i + 1]
        if 0x81 <= b1 <= 0xFE and (0x40 <= b2 <= 0x7E or 0xA1 <= b2 <= 0xFE):
            pairs += 1
            i += 2
            continue
        i += 1
    return pairs


def detect_big5(content: bytes) -> bool:
    """Byte-statistics guess: True for Big5, False for UTF-8 (the default)."""
    valid, invalid = _count_utf8(content)
    if valid > 5 and invalid < valid // 10:
        return False
    return _count_big5_pairs(content) > 5


def decode_content(content: bytes, legacy_encoding: str = DEFAULT_LEGACY_ENCODING) -> Tuple[str, str]:
    """Decode an export buffer. Returns (text, encoding actually used).

    A UTF-8 BOM is stripped. Big5 content that fails to decode strictly falls
    back to UTF-8 with replacement characters.
    """
    if content.startswith(UTF8_BOM):
        return content[len(UTF8_BOM):].decode("utf-8", errors="replace"), "utf-8"

    if detect_big5(content):
        try:
            return content.decode(legacy_encoding), legacy_encoding
        except UnicodeDecodeError as ex:
            logger.warning(f"Big5 decode failed ({ex.reason} at byte {ex.start}), falling back to UTF-8")
    return content.decode("utf-8", errors="replace"), "utf-8"
