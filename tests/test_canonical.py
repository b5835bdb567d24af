from datetime import datetime

from his_import.parsers.assembler import ResultAssembler
from his_import.parsers.canonical import (
    Canonicalizer,
    build_prescription_no,
    convert_era_date,
    convert_era_datetime,
    infer_chronic_refill,
    normalize_date,
    split_era_datetime,
)
from his_import.parsers.models import Patient, Prescription, PrescriptionItem


def make_canon(track_drug_usage=False):
    return Canonicalizer(ResultAssembler("csv", "generic"), "GN", track_drug_usage)


def test_era_date_conversion():
    assert convert_era_date("1130615") == "2024-06-15"
    assert convert_era_date("0650312") == "1976-03-12"
    assert convert_era_date(" 1130615 ") == "2024-06-15"


def test_era_date_malformed_is_empty():
    assert convert_era_date("113061") == ""
    assert convert_era_date("") == ""
    assert convert_era_date("abc0615") == ""
    assert convert_era_date("²²²0101") == ""
    assert convert_era_date("１１３０６１５") == ""
    assert split_era_datetime("²²²0101120000") == ("", "12:00:00")
    assert convert_era_datetime("²²²0101120000") is None
    assert normalize_date("１１３０６１５") == "１１３０６１５"


def test_era_datetime_split():
    assert split_era_datetime("1130615143025") == ("2024-06-15", "14:30:25")
    assert split_era_datetime("1130615") == ("2024-06-15", "")
    assert split_era_datetime("113061514") == ("2024-06-15", "")


def test_era_datetime_to_datetime():
    assert convert_era_datetime("1130615143025") == datetime(2024, 6, 15, 14, 30, 25)
    assert convert_era_datetime("1130615") is None
    assert convert_era_datetime("1131315143025") is None


def test_normalize_date_passes_iso_through():
    assert normalize_date("2024-06-15") == "2024-06-15"
    assert normalize_date("1130615") == "2024-06-15"
    assert normalize_date("") == ""


def test_chronic_rules_visit_type_and_sequence():
    assert infer_chronic_refill("08", "") == 1
    assert infer_chronic_refill("04", "IC03") == 3
    assert infer_chronic_refill("04", "0001") == 0
    assert infer_chronic_refill("", "") == 0


def test_prescription_number_prefix():
    assert build_prescription_no("", "3501", "2024-06-15", "0001") == "3501-2024-06-15-0001"
    assert build_prescription_no("VS", "0001") == "VS-0001"


def test_patient_dedup_first_write_wins():
    canon = make_canon()
    assert canon.add_patient(Patient(national_id="A123456789", name="王小明"))
    assert not canon.add_patient(Patient(national_id="A123456789", name="OTHER"))
    assert not canon.add_patient(Patient(national_id=""))
    assert [p.name for p in canon.patients] == ["王小明"]


def test_long_supply_marks_chronic():
    canon = make_canon()
    rx = canon.open_prescription(("A1", "1"), Prescription(patient_id="A1", visit_type="04"))
    canon.add_item(rx, PrescriptionItem(order_type="1", drug_code="X", days_supply=30))
    assert rx.chronic_refill_no == 1


def test_short_supply_is_not_chronic():
    canon = make_canon()
    rx = canon.open_prescription(("A1", "1"), Prescription(patient_id="A1", visit_type="04"))
    canon.add_item(rx, PrescriptionItem(order_type="1", drug_code="X", days_supply=20))
    assert rx.chronic_refill_no == 0


def test_sequence_ordinal_not_overwritten_by_days():
    canon = make_canon()
    rx = canon.open_prescription(
        ("A1", "1"), Prescription(patient_id="A1", visit_type="04", visit_sequence="IC03")
    )
    canon.add_item(rx, PrescriptionItem(order_type="1", drug_code="X", days_supply=30))
    assert rx.chronic_refill_no == 3


def test_open_prescription_reuses_key():
    canon = make_canon()
    first = canon.open_prescription(("A1", "1"), Prescription(patient_id="A1", prescription_no="N1"))
    again = canon.open_prescription(("A1", "1"), Prescription(patient_id="A1", prescription_no="N2"))
    assert again is first
    assert len(canon.prescriptions) == 1


def test_drug_usage_counts_drug_orders_only():
    canon = make_canon(track_drug_usage=True)
    rx = canon.open_prescription(("A1", "1"), Prescription(patient_id="A1"))
    canon.add_item(rx, PrescriptionItem(order_type="1", drug_code="D1", quantity=28))
    canon.add_item(rx, PrescriptionItem(order_type="1", drug_code="D1", quantity=14))
    canon.add_item(rx, PrescriptionItem(order_type="9", drug_code="FEE", quantity=1))
    usages = {u.drug_code: u for u in canon.drug_usages}
    assert set(usages) == {"D1"}
    assert usages["D1"].total_qty == 42
    assert usages["D1"].dispense_count == 2


def test_coerced_number_is_a_warning_not_a_failure():
    a = ResultAssembler("csv", "generic")
    assert a.to_float("abc", "quantity", "line 3") == 0.0
    assert a.to_int("", "days") == 0
    assert a.result.failed == 0
    assert a.result.warnings == ["line 3: quantity 'abc' is not numeric, using 0"]


def test_coerced_warnings_can_be_disabled():
    a = ResultAssembler("csv", "generic", warn_on_coerced=False)
    assert a.to_int("x1", "days") == 0
    assert a.result.warnings == []
