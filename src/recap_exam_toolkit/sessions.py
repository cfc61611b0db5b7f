"""考试会话：开始 / 作答 / 状态 / 交卷 / 历史"""
from __future__ import annotations
import logging
from datetime import datetime, timedelta
from recap_exam_toolkit.errors import SessionError
from recap_exam_toolkit.grading import grade_exam, practice_feedback
from recap_exam_toolkit.models import (
    MODES, Answer, AnswerFeedback, Attempt, Exam, ExamQuestion, ExamSubmissionResult,
    HistoryEntry, SessionStatus,
)
from recap_exam_toolkit.store import Store
from recap_exam_toolkit.utils import utcnow

logger = logging.getLogger(__name__)


def format_remaining(delta: timedelta) -> str:
    """HH:MM:SS，超时记为 00:00:00"""
    total = max(int(delta.total_seconds()), 0)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


class ExamSessionService:

    def __init__(self, store: Store):
        self.store = store

    # ── 内部 ──

    def _load(self, attempt_id: int, email: str | None = None) -> tuple[Attempt, Exam]:
        attempt = self.store.get_attempt(attempt_id)
        if attempt is None:
            raise SessionError(f"考试记录不存在: {attempt_id}")
        if email is not None and attempt.email != email:
            raise SessionError(f"考试记录 {attempt_id} 不属于 {email}")
        exam = self.store.get_exam(attempt.exam_id)
        if exam is None:
            raise SessionError(f"试卷不存在: {attempt.exam_id}")
        return attempt, exam

    @staticmethod
    def _find_question(exam: Exam, exam_question_id: int) -> ExamQuestion:
        for eq in exam.questions:
            if eq.id == exam_question_id:
                return eq
        raise SessionError(f"题目 {exam_question_id} 不属于试卷 '{exam.title}'",
                           course=exam.course_code, bank_version=exam.bank_version)

    def _grade(self, attempt: Attempt, exam: Exam) -> ExamSubmissionResult:
        answers = self.store.get_answers(attempt.id)
        return grade_exam(
            ((eq.question, answers.get(eq.id)) for eq in exam.questions),
            exam.passing_score,
        )

    # ── 对外操作 ──

    def start(self, exam_id: int, email: str, mode: str = "simulation") -> Attempt:
        if mode not in MODES:
            raise SessionError(f"未知模式: {mode!r}", suggested_fix="practice 或 simulation")
        if not email:
            raise SessionError("缺少考生邮箱")
        exam = self.store.get_exam(exam_id)
        if exam is None:
            raise SessionError(f"试卷不存在: {exam_id}")

        attempt = self.store.create_attempt(
            Attempt(exam_id=exam_id, email=email, mode=mode, started_at=utcnow())
        )
        logger.info("开始考试: %s %s (%s), attempt=%s", email, exam.title, mode, attempt.id)
        return attempt

    def record_answer(
        self,
        attempt_id: int,
        exam_question_id: int,
        choice_ids: list[int] | None = None,
        text_answer: str | None = None,
        email: str | None = None,
    ) -> AnswerFeedback | None:
        """
        保存作答（同题重复提交时覆盖）。

        练习模式返回即时反馈；模拟考试模式只保存，返回 None。
        """
        attempt, exam = self._load(attempt_id, email)
        if attempt.completed:
            raise SessionError(f"考试记录 {attempt_id} 已交卷，不能再作答")
        eq = self._find_question(exam, exam_question_id)

        answer = Answer(
            exam_question_id=exam_question_id,
            choice_ids=list(choice_ids or []),
            text_answer=text_answer,
        )
        valid_ids = {c.id for c in eq.question.choices}
        unknown = [cid for cid in answer.choice_ids if cid not in valid_ids]
        if unknown:
            raise SessionError(f"选项 {unknown} 不属于该题", course=exam.course_code,
                               bank_version=exam.bank_version)

        self.store.save_answer(attempt.id, answer)
        if attempt.mode == "practice":
            return practice_feedback(eq.question, answer)
        return None

    def status(self, attempt_id: int, email: str | None = None,
               now: datetime | None = None) -> SessionStatus:
        attempt, exam = self._load(attempt_id, email)
        answered = self.store.get_answers(attempt.id)
        answered_count = sum(1 for a in answered.values() if not a.is_blank)

        if attempt.completed:
            remaining = "00:00:00"
        else:
            deadline = attempt.started_at + timedelta(minutes=exam.exam_time or 0)
            remaining = format_remaining(deadline - (now or utcnow()))
        return SessionStatus(
            completed=attempt.completed,
            answered_count=answered_count,
            remaining_count=max(exam.questions_per_exam - answered_count, 0),
            time_remaining=remaining,
        )

    def submit(self, attempt_id: int, email: str | None = None) -> ExamSubmissionResult:
        attempt, exam = self._load(attempt_id, email)
        if attempt.completed:
            raise SessionError(f"考试记录 {attempt_id} 已交卷")

        result = self._grade(attempt, exam)
        if not self.store.complete_attempt(attempt.id, utcnow(), result.score_percent):
            # 并发交卷时只接受第一次
            raise SessionError(f"考试记录 {attempt_id} 已交卷")

        logger.info("交卷: attempt=%s 得分 %d%% (%s)", attempt.id, result.score_percent,
                    "通过" if result.passed else "未通过")
        return result

    def history(self, email: str) -> list[HistoryEntry]:
        entries = []
        exams: dict[int, Exam | None] = {}
        for attempt in self.store.attempts_for_email(email):
            if attempt.exam_id not in exams:
                exams[attempt.exam_id] = self.store.get_exam(attempt.exam_id)
            exam = exams[attempt.exam_id]
            if exam is None:
                continue
            breakdown = self._grade(attempt, exam).domain_breakdown if attempt.completed else {}
            entries.append(HistoryEntry(
                exam_title=exam.title,
                score_percent=attempt.score_percent,
                started_at=attempt.started_at,
                completed_at=attempt.completed_at,
                domain_breakdown=breakdown,
            ))
        return entries
