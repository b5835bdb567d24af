from his_import.commons.his_engine import HISEngine
from his_import.parsers.master_files import parse_drug_master, parse_patient_roster

ROSTER = """身分證號,姓名,生日,電話,地址,備註
A123456789,王小明,0650312,0912345678,台北市,過敏: penicillin
B223456789,,0700101,,,
C123456789,李小華,1985-02-03,,,
bad-row
"""

DRUGS = """健保碼,藥品名稱,廠商
AC12345100,Amlodipine 5mg,輝瑞
BC23456100,,
"""


def test_roster_import():
    summary, patients = parse_patient_roster(ROSTER)
    assert summary.total == 4
    assert summary.success == 2
    assert len(summary.errors) == 2
    assert patients[0].birthday == "1976-03-12"
    assert patients[0].notes == "過敏: penicillin"
    assert patients[1].birthday == "1985-02-03"


def test_roster_without_header():
    summary, patients = parse_patient_roster("A123456789,王小明\n")
    assert (summary.total, summary.success) == (1, 1)
    assert patients[0].name == "王小明"


def test_drug_master_import():
    summary, entries = parse_drug_master(DRUGS)
    assert (summary.total, summary.success) == (2, 1)
    assert entries[0].supplier == "輝瑞"
    assert "line 3" in summary.errors[0]


def test_engine_master_import_big5():
    summary, entries = HISEngine().import_drug_master(DRUGS.encode("cp950"))
    assert summary.success == 1
    assert entries[0].drug_name == "Amlodipine 5mg"
