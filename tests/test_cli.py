import csv
import tempfile
from pathlib import Path
from click.testing import CliRunner
from recap_exam_toolkit.cli import cli
from recap_exam_toolkit.loader import QUESTION_COLUMNS


def _write_course(root: Path) -> Path:
    course_dir = root / "content" / "courses" / "LNX101"
    course_dir.mkdir(parents=True)
    (course_dir / "course.yaml").write_text(
        "course_code: LNX101\nmarketing_name: Linux Essentials\n", encoding="utf-8")
    rows = [
        ["schema_version", "1.0.0"], ["min_questions", "2"], ["max_questions", "2"],
        ["exam_time", "20"], ["passing_score", "60"], ["domains", "Linux:1.0"],
        QUESTION_COLUMNS,
    ]
    for i in range(4):
        row = dict(question_type="single", domain="Linux", question_text=f"Q{i}", explanation="x",
                   choice_1="a", correct_1="TRUE", choice_2="b")
        rows.append([row.get(c, "") for c in QUESTION_COLUMNS])
    with open(course_dir / "exam_bank.csv", "w", newline="", encoding="utf-8") as f:
        csv.writer(f).writerows(rows)
    return course_dir


def test_validate_plan_ingest_export():
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        course_dir = _write_course(root)
        cfg = root / "config.yaml"
        cfg.write_text(
            f"database_url: sqlite:///{root / 'recap.db'}\ncontent_dir: {root / 'content'}\n",
            encoding="utf-8",
        )
        base = ["-c", str(cfg)]

        result = runner.invoke(cli, base + ["validate", str(course_dir)])
        assert result.exit_code == 0, result.output
        assert "LNX101" in result.output

        result = runner.invoke(cli, base + ["plan", str(course_dir)])
        assert result.exit_code == 0, result.output
        assert "Linux Essentials Practice Exam 2" in result.output

        result = runner.invoke(cli, base + ["ingest", "--all"])
        assert result.exit_code == 0, result.output
        assert "2 套试卷" in result.output

        result = runner.invoke(cli, base + ["ingest", str(course_dir)])
        assert "跳过" in result.output

        out = root / "out" / "exams"
        result = runner.invoke(cli, base + ["export", "LNX101", "-o", str(out), "-f", "csv"])
        assert result.exit_code == 0, result.output
        assert out.with_suffix(".csv").exists()

        result = runner.invoke(cli, base + ["flag", "1"])
        assert "#1" in result.output

        result = runner.invoke(cli, base + ["validity"])
        assert result.exit_code == 0, result.output


def test_validate_reports_error_and_fix():
    runner = CliRunner()
    with tempfile.TemporaryDirectory() as tmpdir:
        course_dir = _write_course(Path(tmpdir))
        bank = course_dir / "exam_bank.csv"
        bank.write_text(bank.read_text(encoding="utf-8").replace("Linux:1.0", "Linux:0.5"), encoding="utf-8")
        result = runner.invoke(cli, ["-c", str(Path(tmpdir) / "none.yaml"), "validate", str(course_dir)])
    assert result.exit_code == 1
    assert "0.50" in result.output
