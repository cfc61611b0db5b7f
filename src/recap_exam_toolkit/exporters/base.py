from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from recap_exam_toolkit.models import Exam

MAX_CHOICES = 6


class BaseExporter(ABC):
    name = ""

    @abstractmethod
    def export(self, exams: list[Exam], output_path: Path, **kwargs) -> Path:
        ...

    @staticmethod
    def get_columns(max_choices: int = MAX_CHOICES) -> list[str]:
        base = [
            "exam_title", "bank_version", "order", "question_id", "domain",
            "question_type", "question_text", "code_block", "image_url",
        ]
        choice_cols = [f"choice_{chr(65 + i)}" for i in range(max_choices)]
        tail = ["answer", "explanation", "validity_score", "flagged"]
        return base + choice_cols + tail

    @staticmethod
    def answer_key(question) -> str:
        """选择题给出选项字母，填空题给出全部可接受答案"""
        if question.is_choice_type:
            return ",".join(c.order for c in question.correct_choices)
        return " | ".join(question.acceptable_answers)

    @staticmethod
    def flatten(exams: list[Exam], with_answers: bool = True) -> tuple[list[dict], list[str]]:
        """每道试卷题展开为一行"""
        max_choices = max(
            (len(eq.question.choices) for e in exams for eq in e.questions),
            default=0,
        )
        columns = BaseExporter.get_columns(min(max_choices, MAX_CHOICES))
        if not with_answers:
            columns = [c for c in columns if c not in ("answer", "explanation")]

        rows = []
        for exam in exams:
            for eq in exam.questions:
                q = eq.question
                row = {
                    "exam_title":     exam.title,
                    "bank_version":   exam.bank_version,
                    "order":          eq.order,
                    "question_id":    q.id if q.id is not None else "",
                    "domain":         q.domain,
                    "question_type":  q.question_type,
                    "question_text":  q.text,
                    "code_block":     q.code_block or "",
                    "image_url":      q.image_url or "",
                    "validity_score": "" if q.validity_score is None else round(q.validity_score, 3),
                    "flagged":        "Y" if q.flagged else "",
                }
                for c in q.choices[:MAX_CHOICES]:
                    row[f"choice_{c.order}"] = c.text
                if with_answers:
                    row["answer"] = BaseExporter.answer_key(q)
                    row["explanation"] = q.explanation
                rows.append(row)
        return rows, columns
