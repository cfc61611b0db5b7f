from __future__ import annotations
import hashlib
import re
from recap_exam_toolkit.models import Question


def _normalize_text(text: str) -> str:
    """去除空白差异并转小写，统一用于指纹计算"""
    return re.sub(r"\s+", " ", text or "").strip().lower()


def compute_fingerprint(q: Question) -> str:
    """题干指纹：同一题库版本内题干不得重复"""
    return hashlib.sha256(_normalize_text(q.text).encode("utf-8")).hexdigest()[:16]


def find_duplicates(questions: list[Question]) -> list[tuple[Question, Question]]:
    """
    返回 (首次出现, 重复) 对，并为每道题填充 fingerprint。
    """
    seen: dict[str, Question] = {}
    duplicates = []
    for q in questions:
        q.fingerprint = compute_fingerprint(q)
        if q.fingerprint in seen:
            duplicates.append((seen[q.fingerprint], q))
        else:
            seen[q.fingerprint] = q
    return duplicates
