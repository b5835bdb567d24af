from his_import.commons.encoding import UTF8_BOM, decode_content, detect_big5

CHINESE = "藥品名稱測試資料慢性處方箋調劑"


def test_utf8_content_is_not_big5():
    assert detect_big5(CHINESE.encode("utf-8")) is False


def test_big5_content_is_detected():
    assert detect_big5(CHINESE.encode("cp950")) is True


def test_ascii_defaults_to_utf8():
    assert detect_big5(b"A123456789,NAME,1130615") is False
    assert decode_content(b"A1,B2") == ("A1,B2", "utf-8")


def test_bom_is_stripped():
    text, enc = decode_content(UTF8_BOM + "身分證,姓名".encode("utf-8"))
    assert text == "身分證,姓名"
    assert enc == "utf-8"


def test_big5_is_decoded_with_legacy_codec():
    text, enc = decode_content(("身分證號,姓名\n" + CHINESE).encode("cp950"))
    assert enc == "cp950"
    assert text.startswith("身分證號,姓名")


def test_undecodable_big5_falls_back_to_utf8():
    # 0xFF is never a Big5 lead byte
    raw = CHINESE.encode("cp950") + b"\xff\xff"
    text, enc = decode_content(raw, legacy_encoding="big5")
    assert enc == "utf-8"
    assert "\ufffd" in text
