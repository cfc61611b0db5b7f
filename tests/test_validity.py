from recap_exam_toolkit.models import Answer, Choice, Question
from recap_exam_toolkit.validity import (
    compute_validity_scores, parse_threshold, split_groups, update_validity_scores,
)


def _question(qid: int) -> Question:
    return Question(
        id=qid, domain="Linux", question_type="single", text=f"q{qid}",
        choices=[Choice(id=qid * 10 + 1, text="right", is_correct=True),
                 Choice(id=qid * 10 + 2, text="wrong")],
    )


def _answer(q: Question, correct: bool) -> Answer:
    return Answer(choice_ids=[q.choices[0 if correct else 1].id])


class FakeStore:
    def __init__(self, attempts, responses, threshold="0.25"):
        self.attempts = attempts
        self.responses = responses
        self.threshold = threshold
        self.updated = None

    def get_setting(self, key):
        return self.threshold

    def completed_attempt_scores(self):
        return list(self.attempts)

    def iter_responses(self):
        return iter(self.responses)

    def update_validity_scores(self, scores):
        self.updated = scores


def test_split_groups():
    attempts = [(i, i * 10) for i in range(1, 13)]
    low, high = split_groups(list(reversed(attempts)), 0.25)
    assert low == {1, 2, 3}
    assert high == set(range(4, 13))


def test_fewer_than_ten_attempts_leaves_scores_untouched():
    q = _question(1)
    attempts = [(i, i * 10) for i in range(1, 10)]
    responses = [(i, q, _answer(q, True)) for i in range(1, 10)]
    store = FakeStore(attempts, responses)
    assert update_validity_scores(store) is None
    assert store.updated is None
    assert compute_validity_scores(attempts, responses) is None


def test_discriminating_question_scores_high():
    good, flat = _question(1), _question(2)
    attempts = [(i, i * 8) for i in range(1, 13)]      # 低分组: 1, 2, 3
    responses = []
    for aid, _ in attempts:
        responses.append((aid, good, _answer(good, aid > 3)))
        responses.append((aid, flat, _answer(flat, True)))
    scores = compute_validity_scores(attempts, responses, 0.25)
    assert scores[1] == 1.0
    assert scores[2] == 0.0


def test_question_missing_from_one_group_is_left_out():
    q, other = _question(1), _question(2)
    attempts = [(i, i * 8) for i in range(1, 13)]
    responses = [(aid, q, _answer(q, True)) for aid, _ in attempts]
    # other 只在高分组有作答
    responses += [(aid, other, _answer(other, True)) for aid in range(4, 13)]
    scores = compute_validity_scores(attempts, responses, 0.25)
    assert 1 in scores
    assert 2 not in scores


def test_blank_answers_count_as_skipped():
    q = _question(1)
    attempts = [(i, i * 8) for i in range(1, 13)]      # 低分组: 1, 2, 3
    responses = [(aid, q, _answer(q, True)) for aid in range(4, 13)]
    # 低分组: 1 答对，2 与 3 留空
    responses.append((1, q, _answer(q, True)))
    responses.append((2, q, Answer(choice_ids=[])))
    responses.append((3, q, Answer(text_answer="  ")))
    scores = compute_validity_scores(attempts, responses, 0.25)
    assert scores[1] == 0.0

    # 低分组全部留空时视同无作答
    only_blank = [r for r in responses if r[0] != 1]
    assert 1 not in compute_validity_scores(attempts, only_blank, 0.25)


def test_update_uses_threshold_setting():
    q = _question(1)
    attempts = [(i, i * 5) for i in range(1, 21)]
    # 阈值 0.5 → 低分组 1..10 全错，高分组全对
    responses = [(aid, q, _answer(q, aid > 10)) for aid, _ in attempts]
    store = FakeStore(attempts, responses, threshold="0.5")
    assert update_validity_scores(store) == {1: 1.0}
    assert store.updated == {1: 1.0}


def test_parse_threshold_fallback():
    assert parse_threshold(None) == 0.25
    assert parse_threshold("abc") == 0.25
    assert parse_threshold("1.5") == 0.25
    assert parse_threshold("0.3") == 0.3
