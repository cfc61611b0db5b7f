from recap_exam_toolkit.grading import (
    fill_blank_hint, grade_exam, is_correct, practice_feedback, score_percent,
)
from recap_exam_toolkit.models import Answer, Choice, Question, RESULT_CORRECT, RESULT_INCORRECT, RESULT_SKIPPED


def _single() -> Question:
    return Question(
        id=1, domain="Linux", question_type="single", text="Which command lists files?",
        explanation="ls lists directory contents.",
        choices=[
            Choice(id=11, text="ls", is_correct=True, explanation="Correct", order="A"),
            Choice(id=12, text="cd", explanation="Changes directory", order="B"),
            Choice(id=13, text="pwd", explanation="Prints directory", order="C"),
        ],
    )


def _multi() -> Question:
    return Question(
        id=2, domain="Cloud", question_type="multi", text="Which are AWS services?",
        explanation="EC2 and S3 are AWS services.",
        choices=[
            Choice(id=21, text="EC2", is_correct=True, order="A"),
            Choice(id=22, text="S3", is_correct=True, order="B"),
            Choice(id=23, text="GKE", order="C"),
        ],
    )


def _fillblank(method: str = "text", answers=("yaml", "yml")) -> Question:
    return Question(
        id=3, domain="DevOps", question_type="fillblank", text="Ansible playbooks are written in?",
        explanation="YAML.", acceptable_answers=list(answers), input_method=method,
    )


def test_single_exact_choice_correct():
    assert is_correct(_single(), Answer(choice_ids=[11]))


def test_single_extra_choice_incorrect():
    assert not is_correct(_single(), Answer(choice_ids=[11, 12]))
    assert not is_correct(_single(), Answer(choice_ids=[12]))


def test_multi_requires_exact_set():
    q = _multi()
    assert is_correct(q, Answer(choice_ids=[22, 21]))
    assert not is_correct(q, Answer(choice_ids=[21]))
    assert not is_correct(q, Answer(choice_ids=[21, 22, 23]))


def test_fillblank_case_and_whitespace():
    q = _fillblank()
    assert is_correct(q, Answer(text_answer="YML"))
    assert is_correct(q, Answer(text_answer="yml "))
    assert not is_correct(q, Answer(text_answer="json"))


def test_blank_answer_is_skipped_not_incorrect():
    q = _single()
    items = [(q, None), (_multi(), Answer(choice_ids=[])), (_fillblank(), Answer(text_answer="  "))]
    result = grade_exam(items, 50)
    assert [r.result for r in result.detailed_report] == [RESULT_SKIPPED] * 3
    assert result.score_percent == 0
    assert result.skipped_count == 3


def test_score_seven_of_ten():
    assert score_percent(7, 10) == 70
    q = _single()
    items = [(q, Answer(choice_ids=[11]))] * 7 + [(q, Answer(choice_ids=[12]))] * 3
    assert grade_exam(items, 70).passed
    assert not grade_exam(items, 71).passed
    assert grade_exam(items, 70).correct_count == 7


def test_score_rounds_half_up():
    assert score_percent(1, 8) == 13      # 12.5
    assert score_percent(0, 0) == 0


def test_domain_breakdown_includes_zero_domains():
    items = [
        (_single(), Answer(choice_ids=[11])),
        (_multi(), Answer(choice_ids=[21])),
    ]
    result = grade_exam(items, 50)
    assert result.domain_breakdown == {"Linux": 100, "Cloud": 0}
    assert result.score_percent == 50


def test_detailed_report_entries():
    result = grade_exam([(_multi(), Answer(choice_ids=[21, 23]))], 50)
    report = result.detailed_report[0]
    assert report.result == RESULT_INCORRECT
    assert report.your_answer == ["EC2", "GKE"]
    assert report.correct_answer == ["EC2", "S3"]
    assert report.explanation == "EC2 and S3 are AWS services."


def test_practice_feedback_choices():
    fb = practice_feedback(_single(), Answer(choice_ids=[12]))
    assert not fb.correct
    assert [(c.choice_id, c.is_correct) for c in fb.choice_feedback] == [(11, True), (12, False), (13, False)]
    assert fb.hint is None


def test_text_hint_for_near_miss():
    fb = practice_feedback(_fillblank(), Answer(text_answer="yamll"))
    assert not fb.correct
    assert fb.hint == "Did you mean `yaml`?"


def test_no_hint_for_far_answer_or_empty():
    assert fill_blank_hint(_fillblank(), "kubernetes") is None
    assert fill_blank_hint(_fillblank(), "   ") is None


def test_terminal_hints():
    ls_q = _fillblank("terminal", answers=("ls -l",))
    assert "ls -l" in fill_blank_hint(ls_q, "ls -a")
    cat_q = _fillblank("terminal", answers=("cat notes.txt",))
    assert "file extension" in fill_blank_hint(cat_q, "cat notes")
    assert fill_blank_hint(cat_q, "echo hi") is None


def test_correct_fillblank_has_no_hint():
    fb = practice_feedback(_fillblank(), Answer(text_answer="YAML"))
    assert fb.correct
    assert fb.hint is None
