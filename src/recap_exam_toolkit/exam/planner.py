"""组卷规划：确定每卷题数、各领域配额与试卷数量"""
from __future__ import annotations
import logging
from collections import Counter
from recap_exam_toolkit.errors import BankValidationError, InsufficientQuestionsError
from recap_exam_toolkit.exam.selector import SelectionScope
from recap_exam_toolkit.models import ExamPlan, Question
from recap_exam_toolkit.utils import round_half_up

logger = logging.getLogger(__name__)


def domain_counts(questions: list[Question]) -> Counter:
    return Counter(q.domain for q in questions)


def domain_quota(q_per_exam: int, weights: dict[str, float]) -> dict[str, int]:
    """按权重计算每个领域的题数；权重 > 0 的领域至少 1 题"""
    quota = {}
    for domain, weight in weights.items():
        required = round_half_up(q_per_exam * weight)
        if required == 0 and weight > 0:
            required = 1
        quota[domain] = required
    return quota


def plan_exams(
    questions: list[Question],
    min_questions: int,
    max_questions: int,
    weights: dict[str, float],
    scope: SelectionScope | str = SelectionScope.EXAM,
) -> ExamPlan:
    """
    在 [min_questions, max_questions] 中选出最优的每卷题数。

    对每个候选值：按权重算出各领域配额，任一领域题量不足则跳过；
    配额之和为实际每卷题数，据此算出卷数与余数。
    取余数最小者，余数相同取卷数最多者（再相同取较小的候选值）。
    batch 范围内同一批试卷不重复用题，卷数另受各领域“题量 // 配额”限制。
    """
    if min_questions <= 0 or max_questions <= 0:
        raise BankValidationError(
            f"min_questions/max_questions 须为正整数 (min={min_questions}, max={max_questions})",
        )
    if min_questions > max_questions:
        raise BankValidationError(
            f"min_questions ({min_questions}) 大于 max_questions ({max_questions})",
        )

    scope = SelectionScope(scope)
    available = domain_counts(questions)
    total = len(questions)

    best: ExamPlan | None = None
    for candidate in range(min_questions, max_questions + 1):
        quota = domain_quota(candidate, weights)

        short = [d for d, need in quota.items() if available.get(d, 0) < need]
        if short:
            logger.debug("候选 %d 不可行，题量不足的领域: %s", candidate, short)
            continue

        actual = sum(quota.values())
        if actual == 0:
            continue

        num_exams = total // actual
        if scope is SelectionScope.BATCH:
            num_exams = min([num_exams] + [available[d] // need for d, need in quota.items() if need > 0])
        remainder = total - num_exams * actual
        if best is None or remainder < best.remainder or (
            remainder == best.remainder and num_exams > best.num_exams
        ):
            best = ExamPlan(
                questions_per_exam=actual,
                num_exams=num_exams,
                per_domain_quota=quota,
                remainder=remainder,
            )

    if best is None:
        counts = ", ".join(f"{d}={available.get(d, 0)}" for d in sorted(weights))
        raise InsufficientQuestionsError(
            f"题量不足，无法在 {min_questions}-{max_questions} 题范围内按领域权重组成任何试卷 "
            f"(共 {total} 题; {counts})",
            suggested_fix="补充题目或调整 min_questions / 领域权重",
        )

    logger.info("组卷计划: %s", best.describe())
    return best
