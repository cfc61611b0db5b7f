from __future__ import annotations
import math
from datetime import datetime, timezone


def round_half_up(x: float) -> int:
    """四舍五入（.5 进位），内置 round() 是银行家舍入"""
    return int(math.floor(x + 0.5))


def levenshtein(a: str, b: str) -> int:
    """编辑距离，用于填空题提示"""
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        cur = [i]
        for j, cb in enumerate(b, 1):
            cost = 0 if ca == cb else 1
            cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost))
        prev = cur
    return prev[-1]


def utcnow() -> datetime:
    """不带时区的 UTC 时间，与数据库中存储的时间一致"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
