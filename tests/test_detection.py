# flake8: noqa

import pytest

from his_import.parsers.base import detect_vendor, get_field, is_markup, sniff_separator, split_line
from his_import.parsers.field_mapper import build_column_mapping, is_header_line
from his_import.parsers.profiles import COLUMN_SYNONYMS, GENERIC, get_vendor_name

XML_PLAIN = '<?xml version="1.0" encoding="UTF-8"?><RECS><REC><MB1><A12>A123456789</A12></MB1></REC></RECS>'
XML_DRMASTER = "<RECS><REC><MB1><A12>A1</A12><d23>0912000000</d23></MB1></REC></RECS>"
XML_VISION = "<RECS><REC><MB1><A12>A1</A12><d22>台北市</d22></MB1></REC></RECS>"


@pytest.mark.parametrize(
    "filename,vendor",
    [
        ("YS_0601.csv", "yaosheng"),
        ("耀聖匯出.xml", "yaosheng"),
        ("vision_export.xml", "vision"),
        ("展望.csv", "vision"),
        ("dm_0601.txt", "drmaster"),
        ("看診大師.csv", "drmaster"),
        ("export.dat", "yaosheng"),
    ],
)
def test_filename_routing(filename, vendor):
    assert detect_vendor("a,b,c", filename) == vendor


def test_filename_beats_content():
    assert detect_vendor(XML_DRMASTER, "vision_0601.xml") == "vision"


def test_pipe_without_comma_is_drmaster():
    assert detect_vendor("H|DM|1130615\nD|A123456789|王小明", "upload.txt") == "drmaster"


def test_markup_tags_pick_vendor():
    assert detect_vendor(XML_DRMASTER) == "drmaster"
    assert detect_vendor(XML_VISION) == "vision"
    assert detect_vendor(XML_PLAIN) == "nhi"


def test_claim_header_is_nhi():
    assert detect_vendor("T,3501200000,11306\nD,04,0001") == "nhi"


def test_header_line_naming_vendor():
    assert detect_vendor("耀聖匯出,身分證\nA1,X") == "yaosheng"
    assert detect_vendor("Vision export,date\nA1,X") == "vision"


def test_unknown_content_is_generic():
    assert detect_vendor("身分證號,姓名\nA1,X") == "generic"
    assert detect_vendor("") == "generic"
    assert detect_vendor("just some text") == "generic"


def test_is_markup():
    assert is_markup("", "x.XML")
    assert is_markup("<RECS></RECS>")
    assert not is_markup("a,b")


def test_split_line_quotes():
    assert split_line('A1,"王, 小明",3') == ["A1", "王, 小明", "3"]
    assert split_line("A|B||D", "|") == ["A", "B", "", "D"]


def test_get_field_out_of_range():
    assert get_field(["a", " b "], 1) == "b"
    assert get_field(["a"], 5) == ""


def test_sniff_separator():
    assert sniff_separator("a\tb\tc") == "\t"
    assert sniff_separator("a,b\tc,d") == ","
    assert sniff_separator("abc") == ","


def test_header_heuristic():
    assert is_header_line(["身分證號", "姓名", "x"], GENERIC.header_keywords)
    assert is_header_line(["Patient_ID", "Drug_Name"], GENERIC.header_keywords)
    assert not is_header_line(["A123456789", "王小明"], GENERIC.header_keywords)


def test_column_mapping_chinese_headers():
    headers = ["身分證號", "姓名", "生日", "藥品代碼", "藥品名稱", "數量", "給藥天數", "就診日期"]
    assert build_column_mapping(headers) == {
        "national_id": 0,
        "name": 1,
        "birthday": 2,
        "drug_code": 3,
        "drug_name": 4,
        "quantity": 5,
        "days": 6,
        "visit_date": 7,
    }


def test_column_mapping_english_headers():
    headers = ["Patient_ID", "Patient_Name", "Drug_Code", "Drug_Name", "Qty", "Date"]
    assert build_column_mapping(headers) == {
        "national_id": 0,
        "name": 1,
        "drug_code": 2,
        "drug_name": 3,
        "quantity": 4,
        "visit_date": 5,
    }


def test_column_mapping_later_column_wins():
    assert build_column_mapping(["id", "idno"]) == {"national_id": 1}


def test_column_mapping_restricted_keys():
    col_map = build_column_mapping(["醫院", "身分證"], keys=["national_id"])
    assert col_map == {"national_id": 1}
    assert set(COLUMN_SYNONYMS) >= set(col_map)


def test_vendor_display_names():
    assert get_vendor_name("vision") == "展望 HIS"
    assert get_vendor_name("auto") == "自動偵測"
    assert get_vendor_name("unknown") == "unknown"
