"""课程目录加载：course.yaml + exam_bank.(csv|xlsx) → ExamBank

任何一行校验失败都会拒收整个题库（不做部分导入）。
"""
from __future__ import annotations
import hashlib
import json
import logging
from dataclasses import asdict
from pathlib import Path
import yaml
from recap_exam_toolkit.dedup import find_duplicates
from recap_exam_toolkit.domains import parse_domain_weights
from recap_exam_toolkit.errors import BankValidationError, DomainWeightError
from recap_exam_toolkit.models import (
    BankMetadata, Choice, Course, ExamBank, Question,
    CHOICE_TYPES, INPUT_METHODS, QUESTION_TYPES,
)
from recap_exam_toolkit.parsers import parser_for

logger = logging.getLogger(__name__)

COURSE_FILE = "course.yaml"
BANK_STEM = "exam_bank"
MAX_CHOICES = 6
DEFAULT_VERSION = "1.0.0"

QUESTION_COLUMNS = [
    "question_type", "domain", "question_text", "explanation", "image_url", "code_block", "input_method",
]
for _i in range(1, MAX_CHOICES + 1):
    QUESTION_COLUMNS += [f"choice_{_i}", f"correct_{_i}", f"explain_{_i}"]
QUESTION_COLUMNS.append("acceptable_answers")

METADATA_KEYS = ("schema_version", "min_questions", "max_questions", "exam_time", "passing_score", "domains")
REQUIRED_METADATA = ("min_questions", "max_questions", "exam_time", "passing_score", "domains")


class _Ctx:
    """同一文件内的报错上下文"""

    def __init__(self, course: str, path: Path):
        self.course = course
        self.path = str(path)
        self.version = ""

    def error(self, message: str, line: int = 0, field: str = "", fix: str = "",
              cls=BankValidationError) -> BankValidationError:
        return cls(message, course=self.course, bank_version=self.version,
                   file_path=self.path, line=line, field=field, suggested_fix=fix)


def load_course_yaml(course_dir: Path, course_code: str | None = None) -> Course:
    fp = course_dir / COURSE_FILE
    course_code = course_code or course_dir.name
    if not fp.exists():
        raise BankValidationError(f"缺少 {COURSE_FILE}", course=course_code, file_path=str(fp),
                                  suggested_fix="确认文件存在且可读")
    try:
        raw = yaml.safe_load(fp.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise BankValidationError(f"{COURSE_FILE} 解析失败: {e}", course=course_code,
                                  file_path=str(fp), suggested_fix="检查 YAML 格式") from e
    if not isinstance(raw, dict):
        raise BankValidationError(f"{COURSE_FILE} 顶层须为映射", course=course_code, file_path=str(fp))

    code = str(raw.get("course_code", "")).strip()
    if code != course_code:
        raise BankValidationError(
            f"course_code ({code}) 与目录名 ({course_code}) 不一致",
            course=course_code, file_path=str(fp), field="course_code",
        )
    marketing = str(raw.get("marketing_name", "")).strip()
    try:
        duration = int(raw.get("duration_days") or 0)
    except (TypeError, ValueError):
        raise BankValidationError("duration_days 须为整数", course=course_code,
                                  file_path=str(fp), field="duration_days") from None
    return Course(
        course_code=code,
        marketing_name=marketing,
        name=str(raw.get("name", "") or marketing).strip(),
        duration_days=duration,
        responsibility=str(raw.get("responsibility", "") or "").strip(),
    )


def find_bank_file(course_dir: Path) -> Path:
    for suffix in (".csv", ".xlsx"):
        fp = course_dir / f"{BANK_STEM}{suffix}"
        if fp.exists():
            return fp
    raise BankValidationError(f"缺少 {BANK_STEM}.csv / {BANK_STEM}.xlsx",
                              course=course_dir.name, file_path=str(course_dir))


def _positive_int(ctx: _Ctx, value: str, line: int, field: str) -> int:
    try:
        v = int(float(value))
        if v <= 0 or v != float(value):
            raise ValueError
        return v
    except (ValueError, OverflowError):
        raise ctx.error(f"{field} 无效: {value!r}", line, field, "须为正整数") from None


def parse_metadata(ctx: _Ctx, rows: list[list[str]]) -> tuple[BankMetadata, int]:
    """读取文件开头的元数据行，返回 (元数据, 首个题目行下标)"""
    meta = BankMetadata(schema_version=DEFAULT_VERSION)
    seen = set()
    index = 0
    for index, row in enumerate(rows):
        key = row[0] if row else ""
        if key not in METADATA_KEYS:
            break
        line = index + 1
        value = row[1] if len(row) > 1 else ""
        seen.add(key)

        if key == "schema_version":
            if value:
                meta.schema_version = value
            else:
                logger.warning("%s:%d schema_version 为空，使用默认值 %s", ctx.path, line, DEFAULT_VERSION)
            ctx.version = meta.schema_version
        elif key in ("min_questions", "max_questions", "exam_time"):
            setattr(meta, key, _positive_int(ctx, value, line, key))
        elif key == "passing_score":
            try:
                score = float(value)
            except ValueError:
                score = -1
            if not 0 <= score <= 100:
                raise ctx.error(f"passing_score 无效: {value!r}", line, key, "须为 0 到 100 之间的数")
            meta.passing_score = score
        elif key == "domains":
            try:
                meta.domains = parse_domain_weights(value)
            except DomainWeightError as e:
                raise ctx.error(e.message, line, key, "格式: 'Name:Weight|Name:Weight'，权重之和为 1.0",
                                cls=DomainWeightError) from e
    else:
        index = len(rows)

    missing = [k for k in REQUIRED_METADATA if k not in seen]
    if missing:
        raise ctx.error(f"缺少关键元数据: {', '.join(missing)}",
                        fix="需定义 min_questions, max_questions, exam_time, passing_score, domains")
    if meta.min_questions > meta.max_questions:
        raise ctx.error(f"min_questions ({meta.min_questions}) 大于 max_questions ({meta.max_questions})",
                        field="min_questions")
    ctx.version = meta.schema_version
    return meta, index


def _is_header(row: list[str]) -> bool:
    return bool(row) and row[0] == "question_type"


def parse_question_row(ctx: _Ctx, row: list[str], line: int, meta: BankMetadata) -> Question:
    if len(row) > len(QUESTION_COLUMNS):
        raise ctx.error(f"列数错误: 期望最多 {len(QUESTION_COLUMNS)} 列, 实际 {len(row)} 列", line)
    r = dict(zip(QUESTION_COLUMNS, row + [""] * (len(QUESTION_COLUMNS) - len(row))))

    qtype = r["question_type"].lower()
    text = r["question_text"]
    domain = r["domain"]
    if not text or not r["explanation"] or not domain:
        raise ctx.error("缺少必填字段", line, fix="question_text, explanation, domain 均为必填")
    if qtype not in QUESTION_TYPES:
        raise ctx.error(f"未知题型: {r['question_type']!r}", line, "question_type",
                        "须为 single / multi / truefalse / fillblank")
    if domain not in meta.domains:
        raise ctx.error(f"领域 '{domain}' 未在 domains 元数据中定义", line, "domain",
                        f"可用领域: {', '.join(meta.domains)}")

    image_url = r["image_url"] or None
    if image_url and not image_url.startswith(("http://", "https://")):
        raise ctx.error(f"image_url 格式无效: {image_url!r}", line, "image_url", "须为 HTTP/S 地址")

    q = Question(
        domain=domain,
        question_type=qtype,
        text=text,
        explanation=r["explanation"],
        image_url=image_url,
        code_block=r["code_block"] or None,
        bank_version=meta.bank_version,
        line=line,
    )

    if qtype in CHOICE_TYPES:
        for i in range(1, MAX_CHOICES + 1):
            choice_text = r[f"choice_{i}"]
            flag = r[f"correct_{i}"].lower()
            if not choice_text:
                continue
            if flag not in ("true", "false", ""):
                raise ctx.error(f"correct_{i} 值无效: {r[f'correct_{i}']!r}", line, f"correct_{i}",
                                "须为 TRUE 或 FALSE")
            q.choices.append(Choice(
                text=choice_text,
                is_correct=flag == "true",
                explanation=r[f"explain_{i}"],
                order=chr(ord("A") + len(q.choices)),
            ))
        if not q.choices:
            raise ctx.error("选择题没有选项", line, "choices", "至少提供一个选项")
        n_correct = len(q.correct_choices)
        if n_correct == 0:
            raise ctx.error("选择题未标记正确答案", line, "correct_flag", "至少一个选项须标记为 TRUE")
        if qtype in ("single", "truefalse") and n_correct != 1:
            raise ctx.error(f"{qtype} 题须恰有一个正确选项，实际 {n_correct} 个", line, "correct_flag",
                            "只将一个选项标记为 TRUE，或改为 multi 题型")
    else:
        answers = [a.strip().lower() for a in r["acceptable_answers"].split("|")]
        answers = list(dict.fromkeys(a for a in answers if a))
        if not answers:
            raise ctx.error("填空题缺少 acceptable_answers", line, "acceptable_answers",
                            "以 | 分隔的可接受答案")
        q.acceptable_answers = answers
        method = r["input_method"].lower() or "text"
        if method not in INPUT_METHODS:
            raise ctx.error(f"input_method 无效: {r['input_method']!r}", line, "input_method",
                            "须为 text、terminal 或留空（默认 text）")
        q.input_method = method
    return q


def parse_bank_rows(rows: list[list[str]], course: Course, path: Path) -> ExamBank:
    ctx = _Ctx(course.course_code, path)
    meta, start = parse_metadata(ctx, rows)

    questions = []
    for index in range(start, len(rows)):
        row = rows[index]
        if not any(row) or (index == start and _is_header(row)):
            continue
        questions.append(parse_question_row(ctx, row, index + 1, meta))

    if not questions:
        raise ctx.error("题库中没有题目", fix="至少需要一行题目")

    duplicates = find_duplicates(questions)
    if duplicates:
        first, dup = duplicates[0]
        raise ctx.error(f"题干重复 (首次出现于第 {first.line} 行): {dup.text[:40]}", dup.line,
                        "question_text", "同一题库版本内题干须唯一")

    return ExamBank(course=course, metadata=meta, questions=questions, source=str(path))


def bank_checksum(course: Course, rows: list[list[str]]) -> str:
    payload = json.dumps([asdict(course), rows], ensure_ascii=False, sort_keys=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def load_course(course_dir: str | Path, course_code: str | None = None) -> ExamBank:
    """读取并校验一个课程目录"""
    course_dir = Path(course_dir)
    if not course_dir.is_dir():
        raise FileNotFoundError(f"课程目录不存在: {course_dir}")

    course = load_course_yaml(course_dir, course_code)
    bank_fp = find_bank_file(course_dir)
    rows = parser_for(bank_fp).read_rows(bank_fp)

    bank = parse_bank_rows(rows, course, bank_fp)
    bank.checksum = bank_checksum(course, rows)
    logger.info(
        "加载完成: %s 版本 %s, %d 题, %d 个领域",
        course.course_code, bank.bank_version, len(bank.questions), len(bank.metadata.domains),
    )
    return bank


def discover_courses(content_dir: str | Path) -> list[Path]:
    """content_dir/courses/<code>/ 或 content_dir/<code>/ 下含 course.yaml 的目录"""
    root = Path(content_dir)
    base = root / "courses" if (root / "courses").is_dir() else root
    if not base.is_dir():
        return []
    return sorted(p for p in base.iterdir() if p.is_dir() and (p / COURSE_FILE).exists())
