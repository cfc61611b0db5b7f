"""判分引擎：按题型判定正误，汇总总分与领域得分"""
from __future__ import annotations
from collections import Counter
from typing import Iterable
from recap_exam_toolkit.models import (
    Answer, AnswerFeedback, ChoiceFeedback, ExamSubmissionResult, Question, QuestionReport,
    RESULT_CORRECT, RESULT_INCORRECT, RESULT_SKIPPED,
)
from recap_exam_toolkit.utils import levenshtein, round_half_up

HINT_MAX_DISTANCE = 2

# 终端输入题的固定提示: (命令前缀, 期望包含的片段, 提示)
TERMINAL_HINTS = [
    ("ls", "-l", "Did you mean `ls -l`? Check the flag."),
    ("cat", ".txt", "Are you looking for a file? Try specifying the file extension, e.g., `filename.txt`."),
]


def normalize_text_answer(text: str | None) -> str:
    return (text or "").strip().lower()


def is_correct(question: Question, answer: Answer | None) -> bool:
    if answer is None or answer.is_blank:
        return False

    qtype = question.question_type
    if qtype == "fillblank":
        accepted = {a.lower() for a in question.acceptable_answers}
        return normalize_text_answer(answer.text_answer) in accepted

    selected = set(answer.choice_ids)
    correct = {c.id for c in question.choices if c.is_correct}
    if qtype in ("single", "truefalse"):
        # 只选一项，且恰为唯一正确项
        return len(selected) == 1 and len(correct) == 1 and selected == correct
    if qtype == "multi":
        return selected == correct
    return False


def grade_question(question: Question, answer: Answer | None) -> QuestionReport:
    if answer is None or answer.is_blank:
        result = RESULT_SKIPPED
        your_answer: list[str] = []
    else:
        result = RESULT_CORRECT if is_correct(question, answer) else RESULT_INCORRECT
        your_answer = answer_texts(question, answer)

    return QuestionReport(
        question=question.text,
        your_answer=your_answer,
        correct_answer=question.correct_answer_texts,
        result=result,
        explanation=question.explanation,
        domain=question.domain,
    )


def answer_texts(question: Question, answer: Answer) -> list[str]:
    if question.question_type == "fillblank":
        return [answer.text_answer] if answer.text_answer is not None else []
    chosen = set(answer.choice_ids)
    return [c.text for c in question.choices if c.id in chosen]


def score_percent(correct: int, total: int) -> int:
    if total <= 0:
        return 0
    return round_half_up(correct / total * 100)


def grade_exam(
    items: Iterable[tuple[Question, Answer | None]],
    passing_score: float,
) -> ExamSubmissionResult:
    """
    对整张试卷判分。

    items 为按题序排列的 (题目, 作答)，未作答传 None。
    总分 = round(正确数 / 总题数 * 100)，score >= passing_score 即通过；
    领域得分按试卷涉及的每个领域独立计算。
    """
    reports = [grade_question(q, a) for q, a in items]

    domain_total = Counter(r.domain for r in reports)
    domain_correct = Counter(r.domain for r in reports if r.result == RESULT_CORRECT)
    correct = sum(domain_correct.values())

    score = score_percent(correct, len(reports))
    breakdown = {
        domain: score_percent(domain_correct.get(domain, 0), total)
        for domain, total in domain_total.items()
    }
    return ExamSubmissionResult(
        score_percent=score,
        passed=score >= passing_score,
        domain_breakdown=breakdown,
        detailed_report=reports,
    )


def fill_blank_hint(question: Question, text: str | None) -> str | None:
    """填空题答错时的提示，仅供参考，不影响判分"""
    submitted = normalize_text_answer(text)
    if question.input_method == "terminal":
        for prefix, expected, hint in TERMINAL_HINTS:
            if submitted.startswith(prefix) and expected not in submitted:
                return hint
        return None

    if not submitted:
        return None
    for accepted in question.acceptable_answers:
        if levenshtein(submitted, accepted.lower()) <= HINT_MAX_DISTANCE:
            return f"Did you mean `{accepted.lower()}`?"
    return None


def practice_feedback(question: Question, answer: Answer) -> AnswerFeedback:
    """练习模式：记录作答后立即返回的反馈"""
    correct = is_correct(question, answer)
    feedback = AnswerFeedback(correct=correct, explanation=question.explanation)

    if question.is_choice_type:
        feedback.choice_feedback = [
            ChoiceFeedback(choice_id=c.id, is_correct=c.is_correct, explanation=c.explanation)
            for c in question.choices
        ]
    elif question.question_type == "fillblank" and not correct:
        feedback.hint = fill_blank_hint(question, answer.text_answer)
    return feedback
