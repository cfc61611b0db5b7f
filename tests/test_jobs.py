import threading
from recap_exam_toolkit.jobs import JobScheduler


def test_manual_trigger_runs_job():
    calls = []
    scheduler = JobScheduler()
    scheduler.add_job("ingest", lambda: calls.append("ingest"), interval=0)
    scheduler.start(run_immediately=False)
    scheduler.trigger("ingest")
    scheduler.wait_idle("ingest")
    scheduler.stop()
    assert calls == ["ingest"]


def test_failing_job_does_not_affect_others():
    errors = []
    ok_calls = []

    def broken():
        raise RuntimeError("boom")

    scheduler = JobScheduler(on_error=lambda name, e: errors.append((name, str(e))))
    broken_job = scheduler.add_job("validity", broken, interval=0)
    scheduler.add_job("ingest", lambda: ok_calls.append(1), interval=0)
    scheduler.start()
    scheduler.wait_idle("validity")
    scheduler.wait_idle("ingest")

    # 失败后仍可再次触发
    scheduler.trigger("validity")
    scheduler.trigger("ingest")
    scheduler.wait_idle("validity")
    scheduler.wait_idle("ingest")
    scheduler.stop()

    assert errors == [("validity", "boom"), ("validity", "boom")]
    assert broken_job.failures == 2
    assert broken_job.last_error == "boom"
    assert ok_calls == [1, 1]


def test_interval_ticks():
    ran = threading.Event()
    scheduler = JobScheduler()
    scheduler.add_job("tick", ran.set, interval=0.05)
    scheduler.start(run_immediately=False)
    try:
        assert ran.wait(5)
    finally:
        scheduler.stop()


def test_unknown_job_trigger():
    scheduler = JobScheduler()
    try:
        scheduler.trigger("missing")
    except ValueError as e:
        assert "missing" in str(e)
    else:
        raise AssertionError("expected ValueError")
