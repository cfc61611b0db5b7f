from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path


class BaseParser(ABC):
    name: str = ""
    suffixes: tuple[str, ...] = ()

    @abstractmethod
    def read_rows(self, path: Path) -> list[list[str]]:
        """读取题库表格，返回去除首尾空白的字符串行"""
        ...

    @staticmethod
    def _clean(values) -> list[str]:
        return ["" if v is None else str(v).strip() for v in values]
