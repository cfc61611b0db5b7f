"""题目效度评分（批处理）

按总分把已完成的考试分为低分组（后 threshold 比例）与高分组（其余），
对每道题计算 正确率(高分组) - 正确率(低分组)。结果接近 0 或为负的题
区分度不足，交由管理员人工复核（标记不自动进行）。
"""
from __future__ import annotations
import logging
from collections import defaultdict
from typing import Iterable
from recap_exam_toolkit.grading import is_correct
from recap_exam_toolkit.models import Answer, Question

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.25
MIN_ATTEMPTS = 10
THRESHOLD_SETTING = "question_validity_threshold"


def split_groups(
    attempts: list[tuple[int, int]],
    threshold: float = DEFAULT_THRESHOLD,
) -> tuple[set[int], set[int]]:
    """attempts 为 (attempt_id, score_percent)，返回 (低分组, 高分组)"""
    ordered = sorted(attempts, key=lambda a: (a[1], a[0]))
    cut = int(len(ordered) * threshold)
    low = {aid for aid, _ in ordered[:cut]}
    high = {aid for aid, _ in ordered[cut:]}
    return low, high


def compute_validity_scores(
    attempts: list[tuple[int, int]],
    responses: Iterable[tuple[int, Question, Answer]],
    threshold: float = DEFAULT_THRESHOLD,
    min_attempts: int = MIN_ATTEMPTS,
) -> dict[int, float] | None:
    """
    返回 {question_id: validity}；样本不足时返回 None（不应修改任何题目）。

    responses 为 (attempt_id, 题目, 作答)，只统计已记录的非空作答（空作答按跳过处理）；
    某题在任一组没有作答记录时不出现在结果中。
    """
    if len(attempts) < min_attempts:
        logger.info("已完成考试 %d 次，少于 %d 次，跳过效度计算", len(attempts), min_attempts)
        return None

    low, high = split_groups(attempts, threshold)
    if not low or not high:
        logger.info("高/低分组为空 (low=%d, high=%d)，跳过效度计算", len(low), len(high))
        return None

    # question_id -> [high_correct, high_total, low_correct, low_total]
    tally: dict[int, list[int]] = defaultdict(lambda: [0, 0, 0, 0])
    for attempt_id, question, answer in responses:
        if attempt_id in high:
            offset = 0
        elif attempt_id in low:
            offset = 2
        else:
            continue
        if answer is None or answer.is_blank:
            continue
        row = tally[question.id]
        row[offset + 1] += 1
        if is_correct(question, answer):
            row[offset] += 1

    scores = {}
    for qid, (hc, ht, lc, lt) in tally.items():
        if ht == 0 or lt == 0:
            continue
        scores[qid] = hc / ht - lc / lt

    logger.info("效度计算完成: %d 次考试, %d 道题", len(attempts), len(scores))
    return scores


def parse_threshold(raw: str | None) -> float:
    """解析设置值，非法时回退到默认值"""
    if raw is None or not str(raw).strip():
        return DEFAULT_THRESHOLD
    try:
        value = float(raw)
    except ValueError:
        logger.warning("效度阈值设置无效 %r，使用默认值 %.2f", raw, DEFAULT_THRESHOLD)
        return DEFAULT_THRESHOLD
    if not 0 < value < 1:
        logger.warning("效度阈值 %r 不在 (0, 1) 内，使用默认值 %.2f", raw, DEFAULT_THRESHOLD)
        return DEFAULT_THRESHOLD
    return value


def update_validity_scores(store, threshold: float | None = None) -> dict[int, float] | None:
    """读取已完成考试与作答，计算并写回每道题的效度分"""
    if threshold is None:
        threshold = parse_threshold(store.get_setting(THRESHOLD_SETTING))

    attempts = store.completed_attempt_scores()
    if len(attempts) < MIN_ATTEMPTS:
        logger.info("已完成考试 %d 次，少于 %d 次，跳过效度计算", len(attempts), MIN_ATTEMPTS)
        return None

    scores = compute_validity_scores(attempts, store.iter_responses(), threshold)
    if scores:
        store.update_validity_scores(scores)
    return scores
