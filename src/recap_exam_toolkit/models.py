from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime

QUESTION_TYPES = ("single", "multi", "truefalse", "fillblank")
CHOICE_TYPES = ("single", "multi", "truefalse")
INPUT_METHODS = ("text", "terminal")
MODES = ("practice", "simulation")

RESULT_CORRECT = "correct"
RESULT_INCORRECT = "incorrect"
RESULT_SKIPPED = "skipped"


@dataclass
class Course:
    course_code: str
    marketing_name: str = ""
    name: str = ""
    duration_days: int = 0
    responsibility: str = ""
    id: int | None = None


@dataclass
class Choice:
    text: str
    is_correct: bool = False
    explanation: str = ""
    order: str = ""                          # 'A' .. 'F'
    id: int | None = None


@dataclass
class Question:
    """题库中的一道题，随题库版本整体替换"""
    domain: str
    question_type: str
    text: str
    explanation: str = ""
    choices: list[Choice] = field(default_factory=list)
    acceptable_answers: list[str] = field(default_factory=list)   # 已小写
    input_method: str | None = None          # 仅 fillblank: text / terminal
    image_url: str | None = None
    code_block: str | None = None
    bank_version: str = ""
    validity_score: float | None = None
    flagged: bool = False
    fingerprint: str = ""                    # 查重指纹，由 dedup 模块填充
    line: int = 0                            # 来源文件行号
    id: int | None = None

    @property
    def is_choice_type(self) -> bool:
        return self.question_type in CHOICE_TYPES

    @property
    def correct_choices(self) -> list[Choice]:
        return [c for c in self.choices if c.is_correct]

    @property
    def correct_answer_texts(self) -> list[str]:
        if self.is_choice_type:
            return [c.text for c in self.correct_choices]
        return list(self.acceptable_answers)


@dataclass
class BankMetadata:
    """exam_bank 元数据行"""
    schema_version: str = "1.0.0"
    min_questions: int = 0
    max_questions: int = 0
    exam_time: int = 0                       # 分钟
    passing_score: float = 0.0
    domains: dict[str, float] = field(default_factory=dict)

    @property
    def bank_version(self) -> str:
        return self.schema_version


@dataclass
class ExamBank:
    """一次加载得到的完整题库：课程 + 元数据 + 题目"""
    course: Course
    metadata: BankMetadata
    questions: list[Question] = field(default_factory=list)
    source: str = ""
    checksum: str = ""                       # 源文件内容摘要，未变化时可跳过重新导入

    @property
    def bank_version(self) -> str:
        return self.metadata.bank_version


@dataclass
class ExamPlan:
    questions_per_exam: int
    num_exams: int
    per_domain_quota: dict[str, int]
    remainder: int = 0

    def describe(self) -> str:
        quota = ", ".join(f"{d}={n}" for d, n in sorted(self.per_domain_quota.items()))
        return (
            f"num_exams={self.num_exams}, questions_per_exam={self.questions_per_exam}, "
            f"remainder={self.remainder}, quota={{{quota}}}"
        )


@dataclass
class ExamQuestion:
    question: Question
    order: int                               # 从 1 开始
    id: int | None = None


@dataclass
class Exam:
    course_code: str
    title: str
    bank_version: str
    min_questions: int
    max_questions: int
    exam_time: int
    passing_score: float
    domain_weights: dict[str, float]
    questions: list[ExamQuestion] = field(default_factory=list)
    seed: int = 0
    id: int | None = None
    created_at: datetime | None = None

    @property
    def questions_per_exam(self) -> int:
        return len(self.questions)

    def question_ids(self) -> list[int | None]:
        return [eq.question.id for eq in self.questions]


@dataclass
class Answer:
    """考生对某道考试题的作答；同一 (attempt, exam_question) 只保留最后一次"""
    exam_question_id: int | None = None
    choice_ids: list[int] = field(default_factory=list)
    text_answer: str | None = None

    @property
    def is_blank(self) -> bool:
        return not self.choice_ids and not (self.text_answer or "").strip()


@dataclass
class Attempt:
    exam_id: int
    email: str
    mode: str
    started_at: datetime
    completed_at: datetime | None = None
    score_percent: int | None = None
    id: int | None = None

    @property
    def completed(self) -> bool:
        return self.completed_at is not None


@dataclass
class ChoiceFeedback:
    choice_id: int | None
    is_correct: bool
    explanation: str = ""


@dataclass
class AnswerFeedback:
    """练习模式下的即时反馈"""
    correct: bool
    explanation: str = ""
    hint: str | None = None
    choice_feedback: list[ChoiceFeedback] = field(default_factory=list)


@dataclass
class QuestionReport:
    question: str
    your_answer: list[str]
    correct_answer: list[str]
    result: str                              # correct / incorrect / skipped
    explanation: str = ""
    domain: str = ""


@dataclass
class ExamSubmissionResult:
    score_percent: int
    passed: bool
    domain_breakdown: dict[str, int] = field(default_factory=dict)
    detailed_report: list[QuestionReport] = field(default_factory=list)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.detailed_report if r.result == RESULT_CORRECT)

    @property
    def skipped_count(self) -> int:
        return sum(1 for r in self.detailed_report if r.result == RESULT_SKIPPED)


@dataclass
class SessionStatus:
    completed: bool
    answered_count: int
    remaining_count: int
    time_remaining: str                      # HH:MM:SS


@dataclass
class HistoryEntry:
    exam_title: str
    score_percent: int | None
    started_at: datetime
    completed_at: datetime | None
    domain_breakdown: dict[str, int] = field(default_factory=dict)
