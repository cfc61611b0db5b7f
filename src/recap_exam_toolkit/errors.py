"""异常体系：所有错误都携带足以复现问题的上下文"""
from __future__ import annotations


class RecapError(Exception):

    def __init__(
        self,
        message: str,
        *,
        course: str = "",
        bank_version: str = "",
        file_path: str = "",
        line: int = 0,
        field: str = "",
        domain: str = "",
        suggested_fix: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.course = course
        self.bank_version = bank_version
        self.file_path = file_path
        self.line = line
        self.field = field
        self.domain = domain
        self.suggested_fix = suggested_fix

    @property
    def context(self) -> dict:
        """非空上下文字段"""
        ctx = {
            "course": self.course,
            "bank_version": self.bank_version,
            "file_path": self.file_path,
            "line": self.line,
            "field": self.field,
            "domain": self.domain,
        }
        return {k: v for k, v in ctx.items() if v}

    def __str__(self) -> str:
        ctx = self.context
        if not ctx:
            return self.message
        detail = ", ".join(f"{k}={v}" for k, v in ctx.items())
        return f"{self.message} ({detail})"


class BankValidationError(RecapError):
    """题库/元数据格式错误，整个题库拒收"""


class DomainWeightError(BankValidationError):
    pass


class InsufficientQuestionsError(RecapError):
    """任何 questions_per_exam 都无法满足各领域配额"""


class SelectionIntegrityError(RecapError):
    """抽题阶段无法兑现计划给出的配额"""


class SessionError(RecapError):
    pass
