from __future__ import annotations
import logging
from pathlib import Path
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from recap_exam_toolkit.exporters import register
from recap_exam_toolkit.exporters.base import BaseExporter
from recap_exam_toolkit.models import Exam

logger = logging.getLogger(__name__)

HEADER_LABELS = {
    "exam_title":     "试卷",
    "bank_version":   "题库版本",
    "order":          "题号",
    "question_id":    "题目ID",
    "domain":         "领域",
    "question_type":  "题型",
    "question_text":  "题目",
    "code_block":     "代码",
    "image_url":      "图片",
    "answer":         "答案",
    "explanation":    "解析",
    "validity_score": "效度",
    "flagged":        "已标记",
}
for i in range(6):
    HEADER_LABELS[f"choice_{chr(65 + i)}"] = f"选项{chr(65 + i)}"

COL_WIDTHS = {
    "exam_title":    28,
    "question_text": 50,
    "code_block":    40,
    "explanation":   50,
    "domain":        20,
}
for i in range(6):
    COL_WIDTHS[f"choice_{chr(65 + i)}"] = 25

_HEADER_FILL  = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
_FLAGGED_FILL = PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid")


@register("xlsx")
class XlsxExporter(BaseExporter):

    def export(self, exams: list[Exam], output_path: Path, **kwargs) -> Path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fp = output_path.with_suffix(".xlsx")

        rows, columns = self.flatten(exams, with_answers=kwargs.get("with_answers", True))

        wb = Workbook()
        ws = wb.active
        ws.title = "试卷"

        header_font = Font(bold=True, color="FFFFFF")
        for col_idx, col_key in enumerate(columns, 1):
            cell = ws.cell(row=1, column=col_idx, value=HEADER_LABELS.get(col_key, col_key))
            cell.font = header_font
            cell.fill = _HEADER_FILL
            cell.alignment = Alignment(horizontal="center")

        for row_idx, row in enumerate(rows, 2):
            for col_idx, col_key in enumerate(columns, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=row.get(col_key, ""))
                cell.alignment = Alignment(wrap_text=True, vertical="top")
            # 已标记待复核的题 → 浅黄背景
            if row.get("flagged"):
                for col_idx in range(1, len(columns) + 1):
                    ws.cell(row=row_idx, column=col_idx).fill = _FLAGGED_FILL

        for col_idx, col_key in enumerate(columns, 1):
            ws.column_dimensions[get_column_letter(col_idx)].width = COL_WIDTHS.get(col_key, 14)

        ws.freeze_panes = "A2"
        ws.auto_filter.ref = f"A1:{get_column_letter(len(columns))}{len(rows) + 1}"

        wb.save(fp)
        logger.info("XLSX 导出完成: %s (%d 行, %d 列)", fp, len(rows), len(columns))
        return fp
