"""关系型存储：SQLAlchemy Core 表结构与增删改查

题库与其试卷在同一事务内发布，读方只会看到完整的旧数据或完整的新数据。
"""
from __future__ import annotations
import logging
from collections import defaultdict
from datetime import datetime
from typing import Iterator
from sqlalchemy import (
    JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, MetaData, String, Table, Text,
    UniqueConstraint, create_engine, delete, func, select, update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool
from recap_exam_toolkit.errors import RecapError
from recap_exam_toolkit.grading import is_correct
from recap_exam_toolkit.models import (
    Answer, Attempt, Choice, Course, Exam, ExamBank, ExamQuestion, Question,
)
from recap_exam_toolkit.utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS = {
    "question_validity_threshold": (
        "0.25", "低分组所占比例（按总分排序后的后 N%），用于计算题目效度",
    ),
}

metadata = MetaData()

courses = Table(
    "courses", metadata,
    Column("id",              Integer, primary_key=True, autoincrement=True),
    Column("course_code",     String(64), unique=True, nullable=False),
    Column("name",            String(256), default=""),
    Column("marketing_name",  String(256), default=""),
    Column("duration_days",   Integer, default=0),
    Column("responsibility",  String(256), default=""),
    Column("current_version", String(32)),
    Column("bank_checksum",   String(64)),
)

domains = Table(
    "domains", metadata,
    Column("id",                Integer, primary_key=True, autoincrement=True),
    Column("course_id",         Integer, ForeignKey("courses.id"), nullable=False),
    Column("exam_bank_version", String(32), nullable=False),
    Column("name",              String(256), nullable=False),
    Column("weight",            Float, default=0.0),
    UniqueConstraint("course_id", "exam_bank_version", "name"),
)

questions = Table(
    "questions", metadata,
    Column("id",                Integer, primary_key=True, autoincrement=True),
    Column("domain_id",         Integer, ForeignKey("domains.id"), nullable=False),
    Column("question_text",     Text, nullable=False),
    Column("explanation",       Text, default=""),
    Column("question_type",     String(16), nullable=False),
    Column("image_url",         Text),
    Column("code_block",        Text),
    Column("input_method",      String(16)),
    Column("exam_bank_version", String(32), nullable=False, index=True),
    Column("fingerprint",       String(32)),
    Column("validity_score",    Float),
    Column("flagged",           Boolean, default=False),
)

choices = Table(
    "choices", metadata,
    Column("id",          Integer, primary_key=True, autoincrement=True),
    Column("question_id", Integer, ForeignKey("questions.id"), nullable=False, index=True),
    Column("choice_text", Text, nullable=False),
    Column("is_correct",  Boolean, default=False),
    Column("explanation", Text, default=""),
    Column("order_label", String(2), default=""),
)

fill_blank_answers = Table(
    "fill_blank_answers", metadata,
    Column("id",                Integer, primary_key=True, autoincrement=True),
    Column("question_id",       Integer, ForeignKey("questions.id"), nullable=False, index=True),
    Column("acceptable_answer", Text, nullable=False),
)

exams = Table(
    "exams", metadata,
    Column("id",                Integer, primary_key=True, autoincrement=True),
    Column("course_id",         Integer, ForeignKey("courses.id"), nullable=False),
    Column("title",             String(256), nullable=False),
    Column("exam_bank_version", String(32), nullable=False),
    Column("min_questions",     Integer),
    Column("max_questions",     Integer),
    Column("exam_time",         Integer),
    Column("passing_score",     Float),
    Column("domain_weights",    JSON),
    Column("seed",              String(24)),      # 64 位无符号，超出 BIGINT
    Column("created_at",        DateTime),
)

exam_questions = Table(
    "exam_questions", metadata,
    Column("id",                Integer, primary_key=True, autoincrement=True),
    Column("exam_id",           Integer, ForeignKey("exams.id"), nullable=False, index=True),
    Column("question_id",       Integer, ForeignKey("questions.id"), nullable=False),
    Column("question_order",    Integer, nullable=False),
    Column("exam_bank_version", String(32)),
    UniqueConstraint("exam_id", "question_id"),
)

exam_attempts = Table(
    "exam_attempts", metadata,
    Column("id",            Integer, primary_key=True, autoincrement=True),
    Column("exam_id",       Integer, ForeignKey("exams.id"), nullable=False),
    Column("email",         String(256), nullable=False, index=True),
    Column("started_at",    DateTime, nullable=False),
    Column("completed_at",  DateTime),
    Column("score_percent", Integer),
    Column("mode",          String(16), nullable=False),
)

user_answers = Table(
    "user_answers", metadata,
    Column("id",               Integer, primary_key=True, autoincrement=True),
    Column("attempt_id",       Integer, ForeignKey("exam_attempts.id"), nullable=False),
    Column("exam_question_id", Integer, ForeignKey("exam_questions.id"), nullable=False),
    Column("choice_ids",       JSON),
    Column("text_answer",      Text),
    UniqueConstraint("attempt_id", "exam_question_id"),
)

error_logs = Table(
    "error_logs", metadata,
    Column("id",            Integer, primary_key=True, autoincrement=True),
    Column("timestamp",     DateTime, nullable=False),
    Column("source",        String(64)),
    Column("course_code",   String(64)),
    Column("file_path",     Text),
    Column("line_number",   Integer),
    Column("field_name",    String(64)),
    Column("error_message", Text),
    Column("suggested_fix", Text),
)

settings = Table(
    "settings", metadata,
    Column("key",         String(128), primary_key=True),
    Column("value",       Text),
    Column("description", Text, default=""),
    Column("updated_at",  DateTime),
    Column("updated_by",  String(256), default="system"),
)


def make_engine(db_url: str) -> Engine:
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # 内存库需在各线程间共享同一连接
        return create_engine(
            db_url, echo=False, poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(db_url, echo=False, pool_pre_ping=True)


class Store:

    def __init__(self, db_url: str = "sqlite:///recap.db", engine: Engine | None = None):
        self.db_url = db_url
        self.engine = engine or make_engine(db_url)

    def create_schema(self) -> None:
        metadata.create_all(self.engine)
        with self.engine.begin() as conn:
            existing = set(conn.execute(select(settings.c.key)).scalars())
            for key, (value, desc) in DEFAULT_SETTINGS.items():
                if key not in existing:
                    conn.execute(settings.insert().values(
                        key=key, value=value, description=desc, updated_at=utcnow(),
                    ))

    # ── 课程 ──

    @staticmethod
    def _upsert_course(conn: Connection, course: Course) -> int:
        values = dict(
            name=course.name,
            marketing_name=course.marketing_name,
            duration_days=course.duration_days,
            responsibility=course.responsibility,
        )
        row = conn.execute(
            select(courses.c.id).where(courses.c.course_code == course.course_code)
        ).first()
        if row:
            conn.execute(update(courses).where(courses.c.id == row.id).values(**values))
            return row.id
        result = conn.execute(courses.insert().values(course_code=course.course_code, **values))
        return result.inserted_primary_key[0]

    def upsert_course(self, course: Course) -> int:
        with self.engine.begin() as conn:
            course.id = self._upsert_course(conn, course)
        return course.id

    def get_course(self, course_code: str) -> Course | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(courses).where(courses.c.course_code == course_code)
            ).mappings().first()
        if row is None:
            return None
        return Course(
            course_code=row["course_code"], marketing_name=row["marketing_name"] or "",
            name=row["name"] or "", duration_days=row["duration_days"] or 0,
            responsibility=row["responsibility"] or "", id=row["id"],
        )

    def all_course_codes(self) -> list[str]:
        with self.engine.connect() as conn:
            return list(conn.execute(select(courses.c.course_code).order_by(courses.c.course_code)).scalars())

    def current_version(self, course_code: str) -> str | None:
        with self.engine.connect() as conn:
            return conn.execute(
                select(courses.c.current_version).where(courses.c.course_code == course_code)
            ).scalar()

    def bank_checksum(self, course_code: str) -> str | None:
        with self.engine.connect() as conn:
            return conn.execute(
                select(courses.c.bank_checksum).where(courses.c.course_code == course_code)
            ).scalar()

    # ── 题库 ──

    @staticmethod
    def _delete_exams(conn: Connection, exam_ids: list[int]) -> None:
        """删除试卷及其题目、考试记录与作答"""
        if not exam_ids:
            return
        attempt_ids = select(exam_attempts.c.id).where(exam_attempts.c.exam_id.in_(exam_ids))
        conn.execute(delete(user_answers).where(user_answers.c.attempt_id.in_(attempt_ids)))
        conn.execute(delete(exam_attempts).where(exam_attempts.c.exam_id.in_(exam_ids)))
        conn.execute(delete(exam_questions).where(exam_questions.c.exam_id.in_(exam_ids)))
        conn.execute(delete(exams).where(exams.c.id.in_(exam_ids)))

    def _write_bank(self, conn: Connection, bank: ExamBank) -> int:
        """替换课程某版本的领域与题目（连同该版本已生成的试卷），回填 id，返回课程 id"""
        version = bank.bank_version
        course_id = self._upsert_course(conn, bank.course)
        bank.course.id = course_id

        exam_ids = list(conn.execute(
            select(exams.c.id).where(exams.c.course_id == course_id,
                                     exams.c.exam_bank_version == version)
        ).scalars())
        self._delete_exams(conn, exam_ids)

        old_domain_ids = list(conn.execute(
            select(domains.c.id).where(domains.c.course_id == course_id,
                                       domains.c.exam_bank_version == version)
        ).scalars())
        old_qids = list(conn.execute(
            select(questions.c.id).where(questions.c.domain_id.in_(old_domain_ids or [-1]))
        ).scalars())
        conn.execute(delete(choices).where(choices.c.question_id.in_(old_qids)))
        conn.execute(delete(fill_blank_answers).where(fill_blank_answers.c.question_id.in_(old_qids)))
        conn.execute(delete(questions).where(questions.c.id.in_(old_qids)))
        conn.execute(delete(domains).where(domains.c.id.in_(old_domain_ids)))

        # 权重按版本保存，旧版本的领域与权重不受影响
        domain_ids: dict[str, int] = {}
        for name, weight in bank.metadata.domains.items():
            result = conn.execute(domains.insert().values(
                course_id=course_id, exam_bank_version=version, name=name, weight=weight,
            ))
            domain_ids[name] = result.inserted_primary_key[0]

        for q in bank.questions:
            result = conn.execute(questions.insert().values(
                domain_id=domain_ids[q.domain],
                question_text=q.text,
                explanation=q.explanation,
                question_type=q.question_type,
                image_url=q.image_url,
                code_block=q.code_block,
                input_method=q.input_method,
                exam_bank_version=version,
                fingerprint=q.fingerprint,
                flagged=False,
            ))
            q.id = result.inserted_primary_key[0]
            q.bank_version = version
            for c in q.choices:
                result = conn.execute(choices.insert().values(
                    question_id=q.id, choice_text=c.text, is_correct=c.is_correct,
                    explanation=c.explanation, order_label=c.order,
                ))
                c.id = result.inserted_primary_key[0]
            if q.acceptable_answers:
                conn.execute(fill_blank_answers.insert(), [
                    {"question_id": q.id, "acceptable_answer": a.lower()}
                    for a in q.acceptable_answers
                ])

        conn.execute(update(courses).where(courses.c.id == course_id).values(
            current_version=version, bank_checksum=bank.checksum or None,
        ))
        return course_id

    def publish_bank(self, bank: ExamBank, new_exams: list[Exam]) -> list[Exam]:
        """
        题库与试卷在同一事务内写入。
        new_exams 须由 bank.questions 生成，题目 id 在写入题库时回填。
        """
        course_code, version = bank.course.course_code, bank.bank_version
        with self.engine.begin() as conn:
            course_id = self._write_bank(conn, bank)
            self._write_exams(conn, course_id, course_code, version, new_exams)
        logger.info("题库已发布: %s 版本 %s, %d 题 → %d 套试卷",
                    course_code, version, len(bank.questions), len(new_exams))
        return new_exams

    def domain_weights(self, course_code: str, version: str | None = None) -> dict[str, float]:
        version = version or self.current_version(course_code)
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(domains.c.name, domains.c.weight)
                .select_from(domains.join(courses, domains.c.course_id == courses.c.id))
                .where(courses.c.course_code == course_code, domains.c.exam_bank_version == version)
                .order_by(domains.c.id)
            ).all()
        return {r.name: r.weight for r in rows}

    @staticmethod
    def _load_questions(conn: Connection, where) -> dict[int, Question]:
        rows = conn.execute(
            select(questions, domains.c.name.label("domain_name"))
            .join(domains, questions.c.domain_id == domains.c.id)
            .where(where)
            .order_by(questions.c.id)
        ).mappings().all()
        result: dict[int, Question] = {}
        for r in rows:
            result[r["id"]] = Question(
                id=r["id"],
                domain=r["domain_name"],
                question_type=r["question_type"],
                text=r["question_text"],
                explanation=r["explanation"] or "",
                image_url=r["image_url"],
                code_block=r["code_block"],
                input_method=r["input_method"],
                bank_version=r["exam_bank_version"],
                fingerprint=r["fingerprint"] or "",
                validity_score=r["validity_score"],
                flagged=bool(r["flagged"]),
            )
        if not result:
            return result

        ids = list(result)
        for c in conn.execute(
            select(choices).where(choices.c.question_id.in_(ids)).order_by(choices.c.id)
        ).mappings():
            result[c["question_id"]].choices.append(Choice(
                id=c["id"], text=c["choice_text"], is_correct=bool(c["is_correct"]),
                explanation=c["explanation"] or "", order=c["order_label"] or "",
            ))
        for a in conn.execute(
            select(fill_blank_answers).where(fill_blank_answers.c.question_id.in_(ids))
            .order_by(fill_blank_answers.c.id)
        ).mappings():
            result[a["question_id"]].acceptable_answers.append(a["acceptable_answer"])
        return result

    def get_questions(self, course_code: str, version: str | None = None) -> list[Question]:
        version = version or self.current_version(course_code)
        with self.engine.connect() as conn:
            course_id = conn.execute(
                select(courses.c.id).where(courses.c.course_code == course_code)
            ).scalar()
            if course_id is None:
                return []
            loaded = self._load_questions(
                conn, (domains.c.course_id == course_id) & (questions.c.exam_bank_version == version),
            )
        return list(loaded.values())

    def set_flagged(self, question_id: int, flagged: bool = True) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(
                update(questions).where(questions.c.id == question_id).values(flagged=flagged)
            )
        return result.rowcount > 0

    def update_validity_scores(self, scores: dict[int, float]) -> None:
        with self.engine.begin() as conn:
            for qid, score in scores.items():
                conn.execute(update(questions).where(questions.c.id == qid).values(validity_score=score))

    # ── 试卷 ──

    def _write_exams(self, conn: Connection, course_id: int, course_code: str, version: str,
                     new_exams: list[Exam]) -> int:
        """删除该版本旧试卷并写入 new_exams，返回删除的旧试卷数"""
        old_ids = list(conn.execute(
            select(exams.c.id).where(exams.c.course_id == course_id,
                                     exams.c.exam_bank_version == version)
        ).scalars())
        self._delete_exams(conn, old_ids)

        now = utcnow()
        for exam in new_exams:
            result = conn.execute(exams.insert().values(
                course_id=course_id,
                title=exam.title,
                exam_bank_version=version,
                min_questions=exam.min_questions,
                max_questions=exam.max_questions,
                exam_time=exam.exam_time,
                passing_score=exam.passing_score,
                domain_weights=exam.domain_weights,
                seed=str(exam.seed),
                created_at=now,
            ))
            exam.id = result.inserted_primary_key[0]
            exam.created_at = now
            for eq in exam.questions:
                if eq.question.id is None:
                    raise RecapError(f"试卷 '{exam.title}' 引用了未入库的题目",
                                     course=course_code, bank_version=version)
                result = conn.execute(exam_questions.insert().values(
                    exam_id=exam.id, question_id=eq.question.id,
                    question_order=eq.order, exam_bank_version=version,
                ))
                eq.id = result.inserted_primary_key[0]
        return len(old_ids)

    def replace_exams(self, course_code: str, version: str, new_exams: list[Exam]) -> list[Exam]:
        """在一个事务内用 new_exams 整体替换课程某版本的试卷"""
        with self.engine.begin() as conn:
            course_id = conn.execute(
                select(courses.c.id).where(courses.c.course_code == course_code)
            ).scalar()
            if course_id is None:
                raise RecapError(f"课程不存在: {course_code}", course=course_code, bank_version=version)
            replaced = self._write_exams(conn, course_id, course_code, version, new_exams)

        logger.info("试卷已替换: %s 版本 %s, 旧 %d 套 → 新 %d 套",
                    course_code, version, replaced, len(new_exams))
        return new_exams

    def _exam_from_row(self, conn: Connection, row, course_code: str) -> Exam:
        eq_rows = conn.execute(
            select(exam_questions).where(exam_questions.c.exam_id == row["id"])
            .order_by(exam_questions.c.question_order)
        ).mappings().all()
        loaded = self._load_questions(conn, questions.c.id.in_([r["question_id"] for r in eq_rows] or [-1]))
        return Exam(
            id=row["id"],
            course_code=course_code,
            title=row["title"],
            bank_version=row["exam_bank_version"],
            min_questions=row["min_questions"],
            max_questions=row["max_questions"],
            exam_time=row["exam_time"],
            passing_score=row["passing_score"],
            domain_weights=dict(row["domain_weights"] or {}),
            seed=int(row["seed"] or 0),
            created_at=row["created_at"],
            questions=[
                ExamQuestion(id=r["id"], question=loaded[r["question_id"]], order=r["question_order"])
                for r in eq_rows
            ],
        )

    def list_exams(self, course_code: str, version: str | None = None) -> list[Exam]:
        version = version or self.current_version(course_code)
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(exams).join(courses, exams.c.course_id == courses.c.id)
                .where(courses.c.course_code == course_code, exams.c.exam_bank_version == version)
                .order_by(exams.c.id)
            ).mappings().all()
            return [self._exam_from_row(conn, r, course_code) for r in rows]

    def get_exam(self, exam_id: int) -> Exam | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(exams, courses.c.course_code)
                .select_from(exams.join(courses, exams.c.course_id == courses.c.id))
                .where(exams.c.id == exam_id)
            ).mappings().first()
            if row is None:
                return None
            return self._exam_from_row(conn, row, row["course_code"])

    def count_exams(self, course_code: str) -> int:
        with self.engine.connect() as conn:
            return conn.execute(
                select(func.count(exams.c.id))
                .select_from(exams.join(courses, exams.c.course_id == courses.c.id))
                .where(courses.c.course_code == course_code,
                       exams.c.exam_bank_version == courses.c.current_version)
            ).scalar() or 0

    # ── 考试记录与作答 ──

    @staticmethod
    def _attempt_from_row(row) -> Attempt:
        return Attempt(
            id=row["id"], exam_id=row["exam_id"], email=row["email"], mode=row["mode"],
            started_at=row["started_at"], completed_at=row["completed_at"],
            score_percent=row["score_percent"],
        )

    def create_attempt(self, attempt: Attempt) -> Attempt:
        with self.engine.begin() as conn:
            result = conn.execute(exam_attempts.insert().values(
                exam_id=attempt.exam_id, email=attempt.email, mode=attempt.mode,
                started_at=attempt.started_at,
            ))
            attempt.id = result.inserted_primary_key[0]
        return attempt

    def get_attempt(self, attempt_id: int) -> Attempt | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(exam_attempts).where(exam_attempts.c.id == attempt_id)
            ).mappings().first()
        return self._attempt_from_row(row) if row else None

    def attempts_for_email(self, email: str) -> list[Attempt]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(exam_attempts).where(exam_attempts.c.email == email)
                .order_by(exam_attempts.c.started_at.desc(), exam_attempts.c.id.desc())
            ).mappings().all()
        return [self._attempt_from_row(r) for r in rows]

    def complete_attempt(self, attempt_id: int, completed_at: datetime, score_percent: int) -> bool:
        """仅在尚未完成时写入，返回是否成功"""
        with self.engine.begin() as conn:
            result = conn.execute(
                update(exam_attempts)
                .where(exam_attempts.c.id == attempt_id, exam_attempts.c.completed_at.is_(None))
                .values(completed_at=completed_at, score_percent=score_percent)
            )
        return result.rowcount > 0

    def save_answer(self, attempt_id: int, answer: Answer) -> None:
        """同一 (attempt, exam_question) 重复提交时覆盖"""
        values = dict(choice_ids=list(answer.choice_ids), text_answer=answer.text_answer)
        with self.engine.begin() as conn:
            existing = conn.execute(
                select(user_answers.c.id).where(
                    user_answers.c.attempt_id == attempt_id,
                    user_answers.c.exam_question_id == answer.exam_question_id,
                )
            ).scalar()
            if existing is None:
                conn.execute(user_answers.insert().values(
                    attempt_id=attempt_id, exam_question_id=answer.exam_question_id, **values,
                ))
            else:
                conn.execute(update(user_answers).where(user_answers.c.id == existing).values(**values))

    def get_answers(self, attempt_id: int) -> dict[int, Answer]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(user_answers).where(user_answers.c.attempt_id == attempt_id)
            ).mappings().all()
        return {
            r["exam_question_id"]: Answer(
                exam_question_id=r["exam_question_id"],
                choice_ids=list(r["choice_ids"] or []),
                text_answer=r["text_answer"],
            )
            for r in rows
        }

    def completed_attempt_scores(self) -> list[tuple[int, int]]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(exam_attempts.c.id, exam_attempts.c.score_percent)
                .where(exam_attempts.c.completed_at.is_not(None),
                       exam_attempts.c.score_percent.is_not(None))
                .order_by(exam_attempts.c.score_percent, exam_attempts.c.id)
            ).all()
        return [(r.id, r.score_percent) for r in rows]

    def iter_responses(self) -> Iterator[tuple[int, Question, Answer]]:
        """已完成考试中的全部作答 (attempt_id, 题目, 作答)"""
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(user_answers, exam_questions.c.question_id)
                .join(exam_questions, user_answers.c.exam_question_id == exam_questions.c.id)
                .join(exam_attempts, user_answers.c.attempt_id == exam_attempts.c.id)
                .where(exam_attempts.c.completed_at.is_not(None))
                .order_by(user_answers.c.id)
            ).mappings().all()
            loaded = self._load_questions(
                conn, questions.c.id.in_(sorted({r["question_id"] for r in rows}) or [-1]),
            )
        for r in rows:
            yield r["attempt_id"], loaded[r["question_id"]], Answer(
                exam_question_id=r["exam_question_id"],
                choice_ids=list(r["choice_ids"] or []),
                text_answer=r["text_answer"],
            )

    def question_stats(self, course_code: str, version: str | None = None) -> list[dict]:
        """每道题的作答次数、正确次数、效度分与标记状态"""
        qs = {q.id: q for q in self.get_questions(course_code, version)}
        attempted: dict[int, int] = defaultdict(int)
        correct: dict[int, int] = defaultdict(int)
        for _, q, answer in self.iter_responses():
            if q.id not in qs:
                continue
            attempted[q.id] += 1
            if is_correct(q, answer):
                correct[q.id] += 1
        return [
            {
                "question_id": qid,
                "question_text": q.text,
                "question_type": q.question_type,
                "domain": q.domain,
                "validity_score": q.validity_score,
                "flagged": q.flagged,
                "times_attempted": attempted[qid],
                "correct_count": correct[qid],
            }
            for qid, q in qs.items()
        ]

    # ── 设置与错误日志 ──

    def get_setting(self, key: str) -> str | None:
        with self.engine.connect() as conn:
            return conn.execute(select(settings.c.value).where(settings.c.key == key)).scalar()

    def set_setting(self, key: str, value: str, updated_by: str = "system") -> None:
        with self.engine.begin() as conn:
            exists = conn.execute(select(settings.c.key).where(settings.c.key == key)).scalar()
            values = dict(value=value, updated_at=utcnow(), updated_by=updated_by)
            if exists:
                conn.execute(update(settings).where(settings.c.key == key).values(**values))
            else:
                conn.execute(settings.insert().values(key=key, **values))

    def log_error(self, source: str, error: Exception, course_code: str = "") -> None:
        ctx = error if isinstance(error, RecapError) else None
        with self.engine.begin() as conn:
            conn.execute(error_logs.insert().values(
                timestamp=utcnow(),
                source=source,
                course_code=(ctx.course if ctx and ctx.course else course_code),
                file_path=(ctx.file_path or None) if ctx else None,
                line_number=(ctx.line or None) if ctx else None,
                field_name=(ctx.field or ctx.domain or None) if ctx else None,
                error_message=ctx.message if ctx else str(error),
                suggested_fix=(ctx.suggested_fix or None) if ctx else None,
            ))

    def recent_errors(self, limit: int = 50) -> list[dict]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(error_logs).order_by(error_logs.c.id.desc()).limit(limit)
            ).mappings().all()
        return [dict(r) for r in rows]
