from __future__ import annotations
import json
import logging
from pathlib import Path
from recap_exam_toolkit.exporters import register
from recap_exam_toolkit.exporters.base import BaseExporter
from recap_exam_toolkit.models import Exam

logger = logging.getLogger(__name__)


@register("json")
class JsonExporter(BaseExporter):

    def export(self, exams: list[Exam], output_path: Path, **kwargs) -> Path:
        with_answers = kwargs.get("with_answers", True)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fp = output_path.with_suffix(".json")

        data = []
        for exam in exams:
            questions = []
            for eq in exam.questions:
                q = eq.question
                item = {
                    "order": eq.order,
                    "question_id": q.id,
                    "domain": q.domain,
                    "question_type": q.question_type,
                    "question_text": q.text,
                    "code_block": q.code_block,
                    "image_url": q.image_url,
                    "input_method": q.input_method,
                    "choices": [{"id": c.id, "order": c.order, "text": c.text} for c in q.choices],
                }
                if with_answers:
                    item["answer"] = q.correct_answer_texts
                    item["explanation"] = q.explanation
                    for choice, c in zip(item["choices"], q.choices):
                        choice["is_correct"] = c.is_correct
                        choice["explanation"] = c.explanation
                questions.append(item)
            data.append({
                "title": exam.title,
                "course_code": exam.course_code,
                "bank_version": exam.bank_version,
                "exam_time": exam.exam_time,
                "passing_score": exam.passing_score,
                "domain_weights": exam.domain_weights,
                "seed": str(exam.seed),
                "questions": questions,
            })

        fp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info("JSON 导出完成: %s (%d 套试卷)", fp, len(data))
        return fp
