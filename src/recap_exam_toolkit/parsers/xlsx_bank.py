from __future__ import annotations
from pathlib import Path
from openpyxl import load_workbook
from recap_exam_toolkit.parsers import register
from recap_exam_toolkit.parsers.base import BaseParser


@register("xlsx")
class XlsxBankParser(BaseParser):
    """exam_bank.xlsx，读取第一个工作表"""
    suffixes = (".xlsx",)

    def read_rows(self, path: Path) -> list[list[str]]:
        wb = load_workbook(path, read_only=True, data_only=True)
        try:
            ws = wb.worksheets[0]
            rows = []
            for values in ws.iter_rows(values_only=True):
                row = self._clean(values)
                # 去掉尾部空单元格
                while row and row[-1] == "":
                    row.pop()
                rows.append(row)
        finally:
            wb.close()
        # 去掉尾部空行
        while rows and not any(rows[-1]):
            rows.pop()
        return rows
