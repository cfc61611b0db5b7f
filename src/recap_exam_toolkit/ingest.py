"""题库导入：加载 → 校验 → 组卷 → 入库"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from recap_exam_toolkit.errors import RecapError
from recap_exam_toolkit.exam import ExamGenerator, SelectionScope
from recap_exam_toolkit.loader import discover_courses, load_course
from recap_exam_toolkit.models import Exam, ExamBank
from recap_exam_toolkit.store import Store

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    course_code: str
    bank_version: str = ""
    questions: int = 0
    exams: list[Exam] = field(default_factory=list)
    skipped: bool = False                    # 题库未变化
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


def ingest_bank(store: Store, bank: ExamBank,
                scope: SelectionScope | str = SelectionScope.EXAM) -> list[Exam]:
    """
    先在内存中用 bank.questions 组卷，再把题库与试卷在同一事务内写入。
    组卷或写入失败时库中题库与旧试卷都保持不变。
    """
    course_code = bank.course.course_code
    version = bank.bank_version
    try:
        generator = ExamGenerator(bank.questions, bank.course, bank.metadata, scope)
        exams = generator.generate()
        return store.publish_bank(bank, exams)
    except RecapError as e:
        e.course = e.course or course_code
        e.bank_version = e.bank_version or version
        store.log_error("ingest", e)
        raise


def ingest_course(
    store: Store,
    course_dir: str | Path,
    scope: SelectionScope | str = SelectionScope.EXAM,
    force: bool = False,
) -> IngestResult:
    """
    导入单个课程目录。

    题库内容（checksum）与库中一致时跳过，以免周期任务反复清空考试记录；
    force=True 强制重新导入。
    """
    course_dir = Path(course_dir)
    try:
        bank = load_course(course_dir)
    except RecapError as e:
        store.log_error("ingest", e, course_code=course_dir.name)
        raise

    course_code = bank.course.course_code
    result = IngestResult(course_code=course_code, bank_version=bank.bank_version,
                          questions=len(bank.questions))

    unchanged = (
        bank.checksum
        and store.bank_checksum(course_code) == bank.checksum
        and store.current_version(course_code) == bank.bank_version
        and store.count_exams(course_code) > 0
    )
    if unchanged and not force:
        logger.info("课程 %s 版本 %s 未变化，跳过导入", course_code, bank.bank_version)
        result.skipped = True
        return result

    result.exams = ingest_bank(store, bank, scope)
    return result


def ingest_all(
    store: Store,
    content_dir: str | Path,
    scope: SelectionScope | str = SelectionScope.EXAM,
    force: bool = False,
) -> list[IngestResult]:
    """逐个导入内容目录下的全部课程；单个课程失败不影响其余课程"""
    results = []
    course_dirs = discover_courses(content_dir)
    if not course_dirs:
        logger.warning("内容目录 %s 下没有找到课程", content_dir)
    for course_dir in course_dirs:
        try:
            results.append(ingest_course(store, course_dir, scope, force))
        except (RecapError, OSError) as e:
            logger.error("课程 %s 导入失败: %s", course_dir.name, e)
            if not isinstance(e, RecapError):
                store.log_error("ingest", e, course_code=course_dir.name)
            results.append(IngestResult(course_code=course_dir.name, error=str(e)))
    return results
