"""题库与题目统计"""
from __future__ import annotations
import unicodedata
from collections import Counter
from recap_exam_toolkit.models import Question

VALIDITY_LABELS = {
    "good":     "区分度好 (≥0.3)",
    "fair":     "一般 (0.1-0.3)",
    "poor":     "较差 (0-0.1)",
    "negative": "待复核 (<0)",
    "unknown":  "未计算",
}

VALIDITY_ORDER = ["good", "fair", "poor", "negative", "unknown"]

REVIEW_THRESHOLD = 0.1


def _display_width(s: str) -> int:
    """计算字符串在终端的显示宽度"""
    return sum(2 if unicodedata.east_asian_width(c) in ("F", "W") else 1 for c in s)


def _pad_right(s: str, width: int) -> str:
    return s + " " * (width - _display_width(s))


def classify_validity(score: float | None) -> str:
    if score is None:
        return "unknown"
    if score >= 0.3:
        return "good"
    if score >= 0.1:
        return "fair"
    if score >= 0:
        return "poor"
    return "negative"


def summarize(questions: list[Question], weights: dict[str, float] | None = None) -> dict:
    by_domain = Counter(q.domain for q in questions)
    by_type = Counter(q.question_type for q in questions)
    by_validity = Counter(classify_validity(q.validity_score) for q in questions)

    review = sorted(
        (q for q in questions if q.validity_score is not None and q.validity_score < REVIEW_THRESHOLD),
        key=lambda q: q.validity_score,
    )
    return {
        "total": len(questions),
        "by_domain": dict(by_domain.most_common()),
        "by_type": dict(by_type.most_common()),
        "by_validity": {k: by_validity[k] for k in VALIDITY_ORDER if by_validity.get(k)},
        "weights": dict(weights or {}),
        "flagged": [q for q in questions if q.flagged],
        "review_top10": review[:10],
    }


def format_summary(questions: list[Question], weights: dict[str, float] | None = None) -> str:
    s = summarize(questions, weights)
    total = s["total"] or 1
    lines = ["", "=" * 50, "📊 题库统计", "=" * 50, f"总题数: {s['total']}"]

    def _section(title: str, data: dict, show_bar: bool = True):
        lines.append(f"\n{title}:")
        if not data:
            lines.append("  (无数据)")
            return
        col_width = max(_display_width(k) for k in data) + 2
        max_count = max(data.values())
        for key, count in data.items():
            bar = " " + "■" * round(count / max_count * 20) if show_bar else ""
            lines.append(f"  {_pad_right(key, col_width)} {count:>5d} ({count / total * 100:>5.1f}%){bar}")

    domain_data = s["by_domain"]
    if s["weights"]:
        domain_data = {
            f"{d} [权重 {s['weights'].get(d, 0):.2f}]": n for d, n in s["by_domain"].items()
        }
    _section("按领域", domain_data)
    _section("按题型", s["by_type"])
    _section("按效度", {VALIDITY_LABELS[k]: v for k, v in s["by_validity"].items()}, show_bar=False)

    if s["review_top10"]:
        lines.append(f"\n⚠️  效度 < {REVIEW_THRESHOLD} 的题目 (前 10):")
        for q in s["review_top10"]:
            lines.append(f"  [{q.validity_score:+.2f}] #{q.id} {q.text[:50]}")
    if s["flagged"]:
        lines.append(f"\n🚩 已标记题目: {len(s['flagged'])} 道")
    lines.append("=" * 50)
    return "\n".join(lines)


def format_question_stats(rows: list[dict]) -> str:
    """Store.question_stats 的表格输出"""
    if not rows:
        return "(无题目)"
    header = f"{'ID':>6}  {'作答':>5}  {'正确':>5}  {'效度':>6}  标记  题目"
    lines = [header, "-" * 60]
    for r in rows:
        validity = "" if r["validity_score"] is None else f"{r['validity_score']:+.2f}"
        text = (r["question_text"] or "").replace("\n", " ")
        lines.append(
            f"{r['question_id']:>6}  {r['times_attempted']:>5}  {r['correct_count']:>5}  "
            f"{validity:>6}  {'🚩' if r['flagged'] else '  '}  {text[:40]}"
        )
    return "\n".join(lines)
