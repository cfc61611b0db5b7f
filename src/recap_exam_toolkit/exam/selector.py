"""确定性抽题"""
from __future__ import annotations
import enum
import hashlib
import logging
import random
from collections import defaultdict
from recap_exam_toolkit.errors import SelectionIntegrityError
from recap_exam_toolkit.models import ExamPlan, Question

logger = logging.getLogger(__name__)


class SelectionScope(str, enum.Enum):
    """已用题目的记录范围"""
    EXAM = "exam"      # 每卷独立从全题库抽取，卷内不重复
    BATCH = "batch"    # 同一批次内，前面试卷用过的题不再出现


def exam_seed(bank_version: str, course_name: str, exam_index: int) -> int:
    """sha256("版本:课程名:序号") 前 8 字节（大端）作为种子"""
    digest = hashlib.sha256(f"{bank_version}:{course_name}:{exam_index}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def _sort_key(q: Question):
    return (q.id is None, q.id or 0, q.line, q.text)


class ExamSelector:

    def __init__(
        self,
        questions: list[Question],
        plan: ExamPlan,
        scope: SelectionScope = SelectionScope.EXAM,
    ):
        self.plan = plan
        self.scope = SelectionScope(scope)
        self._by_domain: dict[str, list[Question]] = defaultdict(list)
        for q in sorted(questions, key=_sort_key):
            self._by_domain[q.domain].append(q)
        self._batch_used: set = set()

    @staticmethod
    def _qkey(q: Question):
        return q.id if q.id is not None else (q.line, q.text)

    def select(self, seed: int, label: str = "") -> list[Question]:
        """按计划配额为一张试卷抽题，返回最终题序"""
        rng = random.Random(seed)
        used = set(self._batch_used) if self.scope is SelectionScope.BATCH else set()
        selected: list[Question] = []

        for domain in sorted(self.plan.per_domain_quota):
            need = self.plan.per_domain_quota[domain]
            if need <= 0:
                continue
            available = [q for q in self._by_domain.get(domain, []) if self._qkey(q) not in used]
            rng.shuffle(available)
            if len(available) < need:
                logger.error(
                    "领域 %s 题量不足: available=%d required=%d (%s)",
                    domain, len(available), need, label,
                )
                raise SelectionIntegrityError(
                    f"领域 '{domain}' 可用题目不足 (available: {len(available)}, required: {need})",
                    domain=domain,
                )
            picked = available[:need]
            used.update(self._qkey(q) for q in picked)
            selected.extend(picked)

        random.Random(seed).shuffle(selected)

        if self.scope is SelectionScope.BATCH:
            self._batch_used.update(self._qkey(q) for q in selected)
        return selected
