"""领域权重解析"""
from __future__ import annotations
import math
from recap_exam_toolkit.errors import DomainWeightError

WEIGHT_TOLERANCE = 0.01
PAIR_SEPARATOR = "|"


def parse_domain_weights(raw: str) -> dict[str, float]:
    """
    解析 "Name:Weight|Name:Weight" 为 {name: weight}。

    每个权重须在 [0, 1] 内，总和与 1.0 的差不超过 0.01，否则整体拒收。
    领域名区分大小写，原样保留（仅去除首尾空白）。
    """
    if not raw or not raw.strip():
        raise DomainWeightError("领域权重为空", field="domains",
                                suggested_fix="格式: 'Name:Weight|Name:Weight'")

    weights: dict[str, float] = {}
    for pair in raw.split(PAIR_SEPARATOR):
        pair = pair.strip()
        if ":" not in pair:
            raise DomainWeightError(
                f"无效的领域格式: {pair!r}，应为 'Name:Weight'", field="domains",
            )
        name, weight_str = pair.rsplit(":", 1)
        name = name.strip()
        weight_str = weight_str.strip()
        if not name:
            raise DomainWeightError(f"领域名为空: {pair!r}", field="domains")
        if name in weights:
            raise DomainWeightError(f"领域重复: {name}", field="domains", domain=name)

        try:
            weight = float(weight_str)
        except ValueError:
            raise DomainWeightError(
                f"领域 '{name}' 的权重无效: {weight_str!r}", field="domains", domain=name,
            ) from None
        if math.isnan(weight) or weight < 0 or weight > 1:
            raise DomainWeightError(
                f"领域 '{name}' 的权重须在 0.0 到 1.0 之间，实际为 {weight_str}",
                field="domains", domain=name,
            )
        weights[name] = weight

    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise DomainWeightError(
            f"领域权重之和须为 1.0 (实际为 {total:.2f})", field="domains",
            suggested_fix="调整各领域权重使其总和为 1.0",
        )
    return weights


def format_domain_weights(weights: dict[str, float]) -> str:
    return PAIR_SEPARATOR.join(f"{name}:{w:g}" for name, w in weights.items())
