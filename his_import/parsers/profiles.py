"""Vendor profiles: everything that tells one HIS export apart from another.

The decoders never branch on a vendor name. They read the tag tables, column
orders, offsets and prefixes declared here.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

VENDOR_AUTO = "auto"
VENDOR_NHI = "nhi"
VENDOR_YAOSHENG = "yaosheng"
VENDOR_VISION = "vision"
VENDOR_DRMASTER = "drmaster"
VENDOR_GENERIC = "generic"


@dataclass(frozen=True)
class RecordLayout:
    """Line formats where a leading token marks header / detail / item rows."""

    header: str
    detail: str
    item: str
    separator: str
    detail_min_fields: int
    item_min_fields: int
    detail_columns: Dict[str, int]
    item_columns: Dict[str, int]
    key_fields: Tuple[str, ...]
    number_fields: Tuple[str, ...]
    default_order_type: str = ""
    source_type: str = "csv"
    # alternative first tokens that also identify the header row
    header_aliases: Tuple[str, ...] = ()


@dataclass(frozen=True)
class VendorProfile:
    code: str
    name: str
    description: str
    formats: Tuple[str, ...]
    prefix: str = ""
    filename_aliases: Tuple[str, ...] = ()
    # XML: None means the header and visit tags sit directly under <REC>
    xml_sections: Optional[Dict[str, str]] = None
    xml_header_tags: Tuple[str, ...] = ()
    xml_visit_tags: Tuple[str, ...] = ()
    xml_item_tags: Tuple[str, ...] = ()
    records: Optional[RecordLayout] = None
    header_keywords: Tuple[str, ...] = ()
    column_keys: Tuple[str, ...] = ()
    default_columns: Dict[str, int] = field(default_factory=dict)
    fixed_width: Optional[Dict[str, Tuple[int, int]]] = None
    fixed_detail_type: str = "2"
    fixed_min_width: int = 10
    track_drug_usage: bool = False


HEADER_TAGS = ("h1", "h2", "h3")
VISIT_TAGS = (
    "A01", "A11", "A12", "A13", "A14", "A17", "A18", "A23",
    "d19", "d20", "d21", "d31", "d32",
)
ITEM_TAGS = ("p1", "p2", "p3", "p5", "p6", "p7", "p8", "d27", "d36")

NESTED_SECTIONS = {"header": "MSH", "visit": "MB1"}
ITEM_SECTION = "MB2"
RECORD_TAG = "REC"
ROOT_TAG = "RECS"

# Ordered: a header cell is assigned to the first key whose synonym it contains,
# so keys with broad synonyms ("id", "name", "date") come after the specific ones.
COLUMN_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "hospital": ("醫院", "hospital", "provider", "來源醫院"),
    "prescription_no": ("處方箋號", "處方號", "處方箋", "prescription_no", "rx_no", "rxno"),
    "drug_code": ("藥品代碼", "藥碼", "健保碼", "drug_code", "nhi_code", "code"),
    "drug_name": ("藥品名稱", "藥名", "drug_name", "drug"),
    "national_id": ("身分證", "身份證", "病患id", "national_id", "idno", "pid", "id"),
    "name": ("姓名", "病患姓名", "patient_name", "name", "patient"),
    "birthday": ("生日", "出生日期", "出生", "birthday", "dob", "birth"),
    "phone": ("電話", "手機", "phone", "tel", "mobile"),
    "quantity": ("數量", "總量", "quantity", "qty"),
    "days": ("給藥天數", "給藥日數", "天數", "日份", "days", "day"),
    "visit_date": ("就診日期", "就診日", "調劑日期", "調劑日", "日期", "visit_date", "dispense_date", "date"),
    "visit_type": ("就醫類別", "案件", "visit_type", "type"),
    "frequency": ("使用頻率", "頻率", "frequency", "freq"),
}

FIXED_WIDTH_OFFSETS: Dict[str, Tuple[int, int]] = {
    "record_type": (0, 1),
    "hospital": (1, 11),
    "national_id": (11, 21),
    "name": (21, 41),
    "birthday": (41, 48),
    "visit_date": (48, 55),
    "drug_code": (55, 65),
    "drug_name": (65, 105),
    "quantity": (105, 115),
    "days": (115, 118),
}

CLAIM_LAYOUT = dict(
    header="T",
    detail="D",
    item="P",
    separator=",",
    detail_min_fields=10,
    item_min_fields=8,
    detail_columns={
        "visit_type": 1,
        "prescription_no": 2,
        "visit_date": 3,
        "national_id": 4,
        "name": 5,
        "total_points": 39,
        "copay": 40,
    },
    item_columns={
        "order_type": 1,
        "drug_code": 2,
        "drug_name": 3,
        "quantity": 7,
        "unit_price": 8,
    },
    key_fields=("national_id", "prescription_no"),
    number_fields=("prescription_no",),
)

NHI = VendorProfile(
    code=VENDOR_NHI,
    name="健保署標準",
    description="NHI daily upload XML / monthly claim CSV",
    formats=("xml", "csv"),
    xml_sections=NESTED_SECTIONS,
    xml_header_tags=HEADER_TAGS,
    xml_visit_tags=VISIT_TAGS,
    xml_item_tags=ITEM_TAGS,
    records=RecordLayout(**CLAIM_LAYOUT, header_aliases=("30",)),
    track_drug_usage=True,
)

YAOSHENG = VendorProfile(
    code=VENDOR_YAOSHENG,
    name="耀聖 HIS",
    description="Yaosheng HIS export (XML, fixed-width DAT, CSV/TXT)",
    formats=("xml", "csv", "dat", "txt"),
    prefix="YS",
    filename_aliases=("yaosheng", "耀聖", "ys_"),
    xml_sections=None,
    xml_header_tags=HEADER_TAGS,
    xml_visit_tags=VISIT_TAGS,
    xml_item_tags=ITEM_TAGS,
    header_keywords=("身分證", "姓名", "藥品", "日期", "代碼", "id", "name", "drug"),
    column_keys=(
        "national_id", "name", "birthday", "visit_date", "drug_code",
        "drug_name", "quantity", "days", "visit_type",
    ),
    default_columns={
        "national_id": 0,
        "name": 1,
        "birthday": 2,
        "visit_date": 3,
        "drug_code": 4,
        "drug_name": 5,
        "quantity": 6,
        "days": 7,
        "visit_type": 8,
    },
    fixed_width=FIXED_WIDTH_OFFSETS,
)

VISION = VendorProfile(
    code=VENDOR_VISION,
    name="展望 HIS",
    description="Vision HIS export (XML, claim CSV)",
    formats=("xml", "csv"),
    prefix="VS",
    filename_aliases=("vision", "展望", "vs_"),
    xml_sections=NESTED_SECTIONS,
    xml_header_tags=HEADER_TAGS,
    xml_visit_tags=VISIT_TAGS + ("d22",),
    xml_item_tags=ITEM_TAGS + ("p4", "d28"),
    records=RecordLayout(**CLAIM_LAYOUT),
)

DRMASTER = VendorProfile(
    code=VENDOR_DRMASTER,
    name="看診大師",
    description="DrMaster HIS export (XML, pipe TXT, CSV)",
    formats=("xml", "csv", "txt"),
    prefix="DM",
    filename_aliases=("drmaster", "看診大師", "dm_"),
    xml_sections=NESTED_SECTIONS,
    xml_header_tags=HEADER_TAGS + ("h4",),
    xml_visit_tags=VISIT_TAGS + ("d23", "d24"),
    xml_item_tags=ITEM_TAGS + ("p4", "p9", "d28", "d29", "d37"),
    records=RecordLayout(
        header="H",
        detail="D",
        item="M",
        separator="|",
        detail_min_fields=7,
        item_min_fields=5,
        detail_columns={
            "national_id": 1,
            "name": 2,
            "birthday": 3,
            "phone": 4,
            "visit_date": 5,
            "visit_type": 6,
        },
        item_columns={
            "drug_code": 1,
            "drug_name": 2,
            "quantity": 3,
            "days": 4,
            "frequency": 5,
        },
        key_fields=("national_id", "visit_date"),
        number_fields=("national_id", "visit_date"),
        default_order_type="1",
        source_type="txt",
    ),
    header_keywords=("身分證", "姓名", "藥品", "日期", "代碼", "處方"),
    column_keys=(
        "national_id", "name", "birthday", "phone", "visit_date", "drug_code",
        "drug_name", "quantity", "days", "visit_type", "frequency",
    ),
    default_columns={
        "national_id": 0,
        "name": 1,
        "birthday": 2,
        "phone": 3,
        "visit_date": 4,
        "drug_code": 5,
        "drug_name": 6,
        "quantity": 7,
        "days": 8,
        "visit_type": 9,
        "frequency": 10,
    },
)

GENERIC = VendorProfile(
    code=VENDOR_GENERIC,
    name="通用格式",
    description="Plain CSV/TSV with automatic column mapping",
    formats=("csv", "txt"),
    prefix="GN",
    header_keywords=(
        "身分證", "姓名", "藥品", "日期", "代碼", "處方",
        "id", "name", "drug", "date", "code", "qty",
    ),
    column_keys=tuple(COLUMN_SYNONYMS),
    default_columns=DRMASTER.default_columns,
)

PROFILES: Dict[str, VendorProfile] = {
    p.code: p for p in (NHI, YAOSHENG, VISION, DRMASTER, GENERIC)
}

VENDOR_TABLE = (
    (VENDOR_AUTO, "自動偵測", "Detect vendor and format automatically", ("xml", "csv", "txt", "dat")),
) + tuple((p.code, p.name, p.description, p.formats) for p in PROFILES.values())


def get_vendor_name(vendor: str) -> str:
    for code, name, _, _ in VENDOR_TABLE:
        if code == vendor:
            return name
    return vendor
