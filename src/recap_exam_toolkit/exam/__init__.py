"""自动组卷组件"""
from recap_exam_toolkit.exam.planner import plan_exams, domain_quota
from recap_exam_toolkit.exam.selector import ExamSelector, SelectionScope, exam_seed
from recap_exam_toolkit.exam.generator import ExamGenerator, ExamGenerationError

__all__ = [
    "plan_exams", "domain_quota",
    "ExamSelector", "SelectionScope", "exam_seed",
    "ExamGenerator", "ExamGenerationError",
]
