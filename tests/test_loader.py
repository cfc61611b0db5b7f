import csv
import tempfile
from pathlib import Path
import pytest
from openpyxl import Workbook
from recap_exam_toolkit.errors import BankValidationError, DomainWeightError
from recap_exam_toolkit.loader import QUESTION_COLUMNS, discover_courses, load_course

COURSE_YAML = """\
course_code: LNX101
marketing_name: Linux Essentials
name: Linux Essentials
duration_days: 5
responsibility: Platform Team
"""

METADATA = [
    ["schema_version", "1.2.0"],
    ["min_questions", "4"],
    ["max_questions", "6"],
    ["exam_time", "30"],
    ["passing_score", "70"],
    ["domains", "Linux:0.5|Cloud:0.5"],
]


def _row(**kw) -> list[str]:
    return [kw.get(c, "") for c in QUESTION_COLUMNS]


def _single(domain: str, text: str) -> list[str]:
    return _row(question_type="single", domain=domain, question_text=text, explanation="because",
                choice_1="right", correct_1="TRUE", explain_1="yes",
                choice_2="wrong", correct_2="FALSE", explain_2="no")


def _valid_rows() -> list[list[str]]:
    rows = METADATA + [QUESTION_COLUMNS]
    rows += [_single("Linux", f"Linux question {i}") for i in range(4)]
    rows += [_single("Cloud", f"Cloud question {i}") for i in range(3)]
    rows.append(_row(question_type="fillblank", domain="Cloud", question_text="Config format?",
                     explanation="YAML", acceptable_answers="YAML| yml |yaml"))
    return rows


def _write_course(root: Path, rows: list[list[str]], code: str = "LNX101", fmt: str = "csv") -> Path:
    course_dir = root / code
    course_dir.mkdir(parents=True)
    (course_dir / "course.yaml").write_text(COURSE_YAML.replace("LNX101", code), encoding="utf-8")
    if fmt == "csv":
        with open(course_dir / "exam_bank.csv", "w", newline="", encoding="utf-8") as f:
            csv.writer(f).writerows(rows)
    else:
        wb = Workbook()
        for row in rows:
            wb.active.append(row)
        wb.save(course_dir / "exam_bank.xlsx")
    return course_dir


def _load_error(rows) -> BankValidationError:
    with tempfile.TemporaryDirectory() as tmpdir:
        course_dir = _write_course(Path(tmpdir), rows)
        with pytest.raises(BankValidationError) as exc:
            load_course(course_dir)
        return exc.value


def test_load_valid_csv():
    with tempfile.TemporaryDirectory() as tmpdir:
        bank = load_course(_write_course(Path(tmpdir), _valid_rows()))
    assert bank.course.marketing_name == "Linux Essentials"
    assert bank.bank_version == "1.2.0"
    assert bank.metadata.domains == {"Linux": 0.5, "Cloud": 0.5}
    assert bank.metadata.passing_score == 70
    assert len(bank.questions) == 8
    assert bank.checksum

    single = bank.questions[0]
    assert [c.order for c in single.choices] == ["A", "B"]
    assert single.correct_answer_texts == ["right"]

    fill = bank.questions[-1]
    assert fill.acceptable_answers == ["yaml", "yml"]
    assert fill.input_method == "text"


def test_load_valid_xlsx():
    with tempfile.TemporaryDirectory() as tmpdir:
        bank = load_course(_write_course(Path(tmpdir), _valid_rows(), fmt="xlsx"))
    assert len(bank.questions) == 8
    assert bank.questions[-1].acceptable_answers == ["yaml", "yml"]


def test_checksum_stable_and_sensitive():
    with tempfile.TemporaryDirectory() as tmpdir:
        a = load_course(_write_course(Path(tmpdir), _valid_rows(), code="A1"))
        rows = _valid_rows()
        rows[8][2] = "Linux question changed"
        b = load_course(_write_course(Path(tmpdir), rows, code="A2"))
        c = load_course(_write_course(Path(tmpdir), _valid_rows(), code="A3"))
    assert a.checksum != b.checksum
    # course_code 不同，摘要也不同
    assert a.checksum != c.checksum


def test_unknown_domain_rejected_with_line():
    rows = _valid_rows() + [_single("Networking", "Which port is SSH?")]
    err = _load_error(rows)
    assert err.line == len(rows)
    assert err.field == "domain"


def test_missing_correct_flag_rejected():
    rows = _valid_rows()
    rows.append(_row(question_type="multi", domain="Linux", question_text="Pick", explanation="x",
                     choice_1="a", correct_1="FALSE", choice_2="b"))
    assert _load_error(rows).field == "correct_flag"


def test_single_with_two_correct_rejected():
    rows = _valid_rows()
    rows.append(_row(question_type="truefalse", domain="Linux", question_text="True?", explanation="x",
                     choice_1="True", correct_1="TRUE", choice_2="False", correct_2="TRUE"))
    err = _load_error(rows)
    assert err.line == len(rows)
    assert "truefalse" in err.message


def test_duplicate_question_text_rejected():
    rows = _valid_rows() + [_single("Linux", "  linux   QUESTION 0 ")]
    err = _load_error(rows)
    assert err.field == "question_text"


def test_bad_input_method_and_image_url():
    rows = _valid_rows() + [_row(question_type="fillblank", domain="Linux", question_text="cmd?",
                                 explanation="x", acceptable_answers="ls", input_method="voice")]
    assert _load_error(rows).field == "input_method"

    rows = _valid_rows()
    rows[7][QUESTION_COLUMNS.index("image_url")] = "ftp://example.com/a.png"
    assert _load_error(rows).field == "image_url"


def test_bad_domain_weights_rejected():
    rows = _valid_rows()
    rows[5] = ["domains", "Linux:0.7|Cloud:0.5"]
    err = _load_error(rows)
    assert isinstance(err, DomainWeightError)
    assert err.line == 6


def test_missing_metadata_rejected():
    rows = [r for r in _valid_rows() if r[0] != "exam_time"]
    assert "exam_time" in _load_error(rows).message


@pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e400", "4.5"])
def test_invalid_question_count_rejected(value):
    rows = _valid_rows()
    rows[1] = ["min_questions", value]
    err = _load_error(rows)
    assert err.field == "min_questions"
    assert err.line == 2


def test_too_many_columns_rejected():
    rows = _valid_rows()
    rows[7] = rows[7] + ["extra"]
    assert _load_error(rows).line == 8


def test_course_code_must_match_directory():
    with tempfile.TemporaryDirectory() as tmpdir:
        course_dir = _write_course(Path(tmpdir), _valid_rows())
        (course_dir / "course.yaml").write_text(COURSE_YAML.replace("LNX101", "OTHER"), encoding="utf-8")
        with pytest.raises(BankValidationError) as exc:
            load_course(course_dir)
    assert exc.value.field == "course_code"


def test_discover_courses():
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        _write_course(root / "courses", _valid_rows(), code="B")
        _write_course(root / "courses", _valid_rows(), code="A")
        (root / "courses" / "notes").mkdir()
        assert [p.name for p in discover_courses(root)] == ["A", "B"]
