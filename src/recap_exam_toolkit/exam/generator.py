"""组卷引擎：规划 → 抽题 → 生成试卷记录"""
from __future__ import annotations
import logging
from collections import Counter
from recap_exam_toolkit.errors import RecapError, SelectionIntegrityError
from recap_exam_toolkit.exam.planner import plan_exams
from recap_exam_toolkit.exam.selector import ExamSelector, SelectionScope, exam_seed
from recap_exam_toolkit.models import BankMetadata, Course, Exam, ExamPlan, ExamQuestion, Question

logger = logging.getLogger(__name__)


class ExamGenerationError(Exception):
    pass


class ExamGenerator:

    def __init__(
        self,
        questions: list[Question],
        course: Course,
        metadata: BankMetadata,
        scope: SelectionScope | str = SelectionScope.EXAM,
    ):
        self.pool = questions
        self.course = course
        self.metadata = metadata
        self.scope = SelectionScope(scope)
        self._plan: ExamPlan | None = None

    @property
    def course_name(self) -> str:
        return self.course.marketing_name or self.course.name or self.course.course_code

    def plan(self) -> ExamPlan:
        if self._plan is None:
            try:
                self._plan = plan_exams(
                    self.pool,
                    self.metadata.min_questions,
                    self.metadata.max_questions,
                    self.metadata.domains,
                    self.scope,
                )
            except RecapError as e:
                e.course = e.course or self.course.course_code
                e.bank_version = e.bank_version or self.metadata.bank_version
                raise
        return self._plan

    def generate(self) -> list[Exam]:
        if not self.pool:
            raise ExamGenerationError(
                f"课程 {self.course.course_code} 版本 {self.metadata.bank_version} 没有可用题目",
            )

        plan = self.plan()
        selector = ExamSelector(self.pool, plan, self.scope)
        version = self.metadata.bank_version

        exams = []
        for i in range(plan.num_exams):
            title = f"{self.course_name} Practice Exam {i + 1}"
            seed = exam_seed(version, self.course_name, i)
            logger.debug("生成试卷 '%s' seed=%d", title, seed)
            try:
                selected = selector.select(seed, label=title)
            except SelectionIntegrityError as e:
                e.course = self.course.course_code
                e.bank_version = version
                raise

            if len(selected) != plan.questions_per_exam:
                raise SelectionIntegrityError(
                    f"试卷 '{title}' 题数不符: 期望 {plan.questions_per_exam}, 实际 {len(selected)}",
                    course=self.course.course_code, bank_version=version,
                )

            exams.append(Exam(
                course_code=self.course.course_code,
                title=title,
                bank_version=version,
                min_questions=self.metadata.min_questions,
                max_questions=self.metadata.max_questions,
                exam_time=self.metadata.exam_time,
                passing_score=self.metadata.passing_score,
                domain_weights=dict(self.metadata.domains),
                questions=[ExamQuestion(question=q, order=n) for n, q in enumerate(selected, 1)],
                seed=seed,
            ))

        logger.info(
            "课程 %s 版本 %s 共生成 %d 套试卷，每卷 %d 题",
            self.course.course_code, version, len(exams), plan.questions_per_exam,
        )
        return exams

    def summary(self, exams: list[Exam]) -> str:
        plan = self.plan()
        quota_str = ", ".join(f"{d}: {n}" for d, n in sorted(plan.per_domain_quota.items()))
        lines = [
            f"课程: {self.course_name} ({self.course.course_code})",
            f"题库版本: {self.metadata.bank_version}",
            f"题库总数: {len(self.pool)} 题",
            f"每卷题数: {plan.questions_per_exam}  试卷数: {plan.num_exams}  未用余数: {plan.remainder}",
            f"领域配额: {quota_str}",
            f"抽题范围: {'每卷独立' if self.scope is SelectionScope.EXAM else '整批不重复'}",
        ]
        used = Counter()
        for exam in exams:
            for eq in exam.questions:
                used[ExamSelector._qkey(eq.question)] += 1
        if exams:
            lines.append(f"覆盖题目: {len(used)}/{len(self.pool)}")
        return "\n".join(lines)
