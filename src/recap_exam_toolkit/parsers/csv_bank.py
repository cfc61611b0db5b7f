from __future__ import annotations
import csv
from pathlib import Path
from recap_exam_toolkit.parsers import register
from recap_exam_toolkit.parsers.base import BaseParser


@register("csv")
class CsvBankParser(BaseParser):
    """exam_bank.csv"""
    suffixes = (".csv",)

    def read_rows(self, path: Path) -> list[list[str]]:
        with open(path, newline="", encoding="utf-8-sig") as fh:
            return [self._clean(row) for row in csv.reader(fh)]
