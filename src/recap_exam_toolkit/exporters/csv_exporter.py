from __future__ import annotations
import csv
import logging
from pathlib import Path
from recap_exam_toolkit.exporters import register
from recap_exam_toolkit.exporters.base import BaseExporter
from recap_exam_toolkit.models import Exam

logger = logging.getLogger(__name__)


@register("csv")
class CsvExporter(BaseExporter):

    def export(self, exams: list[Exam], output_path: Path, **kwargs) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fp = output_path.with_suffix(".csv")

        rows, columns = self.flatten(exams, with_answers=kwargs.get("with_answers", True))

        with open(fp, "w", newline="", encoding="utf-8-sig") as f:
            writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
            writer.writeheader()
            writer.writerows(rows)

        logger.info("CSV 导出完成: %s (%d 行, %d 列)", fp, len(rows), len(columns))
        return fp
