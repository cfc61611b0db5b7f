import pytest
from recap_exam_toolkit.errors import BankValidationError, InsufficientQuestionsError
from recap_exam_toolkit.exam.planner import domain_quota, plan_exams
from recap_exam_toolkit.exam.selector import SelectionScope
from recap_exam_toolkit.models import Question


def _pool(**counts) -> list[Question]:
    pool = []
    for domain, n in counts.items():
        for i in range(n):
            pool.append(Question(domain=domain, question_type="single", text=f"{domain} q{i}",
                                 id=len(pool) + 1))
    return pool


def test_ten_questions_two_domains():
    """10 题, A/B 各 0.5, 4-6 题: 每卷 4 题, 2 套"""
    plan = plan_exams(_pool(A=5, B=5), 4, 6, {"A": 0.5, "B": 0.5})
    assert plan.questions_per_exam == 4
    assert plan.num_exams == 2
    assert plan.remainder == 2
    assert plan.per_domain_quota == {"A": 2, "B": 2}
    assert sum(plan.per_domain_quota.values()) == plan.questions_per_exam


def test_quota_rounds_half_up():
    assert domain_quota(5, {"A": 0.5, "B": 0.5}) == {"A": 3, "B": 3}
    assert domain_quota(10, {"A": 0.25, "B": 0.75}) == {"A": 3, "B": 8}


def test_quota_minimum_one_for_weighted_domain():
    quota = domain_quota(10, {"A": 0.99, "B": 0.01, "C": 0.0})
    assert quota["B"] == 1
    assert quota["C"] == 0


def test_zero_weight_domain_needs_no_questions():
    plan = plan_exams(_pool(A=10), 5, 5, {"A": 1.0, "B": 0.0})
    assert plan.per_domain_quota == {"A": 5, "B": 0}
    assert plan.num_exams == 2


def test_prefers_smaller_remainder():
    # 12 题: 5 → 余 2, 6 → 余 0
    plan = plan_exams(_pool(A=12), 5, 6, {"A": 1.0})
    assert plan.questions_per_exam == 6
    assert plan.remainder == 0


def test_tie_prefers_more_exams():
    # 12 题: 3 → 4 套余 0, 4 → 3 套余 0, 6 → 2 套余 0
    plan = plan_exams(_pool(A=12), 3, 6, {"A": 1.0})
    assert plan.questions_per_exam == 3
    assert plan.num_exams == 4


def test_infeasible_candidates_skipped():
    # B 只有 1 题: 候选 4 需要 B=2，只有 q=2 可行
    plan = plan_exams(_pool(A=5, B=1), 2, 4, {"A": 0.5, "B": 0.5})
    assert plan.per_domain_quota == {"A": 1, "B": 1}


def test_no_feasible_plan_raises():
    with pytest.raises(InsufficientQuestionsError) as exc:
        plan_exams(_pool(A=2, B=2), 10, 12, {"A": 0.5, "B": 0.5})
    assert "A=2" in exc.value.message


def test_invalid_bounds():
    with pytest.raises(BankValidationError):
        plan_exams(_pool(A=5), 6, 5, {"A": 1.0})
    with pytest.raises(BankValidationError):
        plan_exams(_pool(A=5), 0, 5, {"A": 1.0})


def test_batch_scope_caps_exams_by_domain_capacity():
    pool = _pool(A=10, B=2)
    weights = {"A": 0.75, "B": 0.25}
    per_exam = plan_exams(pool, 4, 4, weights)
    assert per_exam.num_exams == 3
    assert per_exam.per_domain_quota == {"A": 3, "B": 1}

    batch = plan_exams(pool, 4, 4, weights, SelectionScope.BATCH)
    assert batch.num_exams == 2
    assert batch.remainder == 4
    for domain, need in batch.per_domain_quota.items():
        assert batch.num_exams * need <= sum(1 for q in pool if q.domain == domain)


def test_batch_scope_remainder_drives_candidate_choice():
    # A=9, B=3, 各 0.5: q=2 → 3 套余 6, q=4 → 1 套余 8, q=6 → 1 套余 6
    # 同余数取卷数多者
    plan = plan_exams(_pool(A=9, B=3), 2, 6, {"A": 0.5, "B": 0.5}, "batch")
    assert plan.questions_per_exam == 2
    assert plan.num_exams == 3
    assert plan.remainder == 6
