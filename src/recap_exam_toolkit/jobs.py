"""周期任务调度：每个任务一个受监管的工作线程 + 一个定时线程

任务函数抛出的异常只记录日志与错误表，工作线程继续等待下一次触发。
"""
from __future__ import annotations
import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass
class Job:
    name: str
    func: Callable[[], object]
    interval: float                          # 秒；<= 0 表示只接受手动触发
    runs: int = 0
    failures: int = 0
    last_error: str = ""
    inbox: queue.Queue = field(default_factory=queue.Queue)


class JobScheduler:

    def __init__(self, on_error: Callable[[str, Exception], None] | None = None):
        self._jobs: dict[str, Job] = {}
        self._threads: list[threading.Thread] = []
        self._shutdown = threading.Event()
        self._on_error = on_error
        self._started = False

    @property
    def jobs(self) -> dict[str, Job]:
        return dict(self._jobs)

    def add_job(self, name: str, func: Callable[[], object], interval: float) -> Job:
        if self._started:
            raise RuntimeError("调度器已启动，不能再添加任务")
        if name in self._jobs:
            raise ValueError(f"任务已存在: {name}")
        job = Job(name=name, func=func, interval=interval)
        self._jobs[name] = job
        return job

    def start(self, run_immediately: bool = True) -> None:
        if self._started:
            return
        self._started = True
        self._shutdown.clear()
        for job in self._jobs.values():
            worker = threading.Thread(target=self._work, args=(job,), name=f"job-{job.name}", daemon=True)
            worker.start()
            self._threads.append(worker)
            if job.interval > 0:
                ticker = threading.Thread(target=self._tick, args=(job,), name=f"tick-{job.name}", daemon=True)
                ticker.start()
                self._threads.append(ticker)
            if run_immediately:
                job.inbox.put("tick")
        logger.info("调度器已启动: %s", ", ".join(self._jobs) or "(无任务)")

    def trigger(self, name: str) -> None:
        """手动触发一次，与定时触发走同一队列"""
        try:
            job = self._jobs[name]
        except KeyError:
            raise ValueError(f"未知任务: {name}") from None
        job.inbox.put("manual")

    def stop(self, timeout: float | None = 10.0) -> None:
        """停止定时器，让工作线程处理完已排队的消息后退出"""
        self._shutdown.set()
        for job in self._jobs.values():
            job.inbox.put(_STOP)
        for t in self._threads:
            t.join(timeout)
        self._threads.clear()
        self._started = False
        logger.info("调度器已停止")

    def wait_idle(self, name: str) -> None:
        """阻塞到该任务队列中的消息全部处理完"""
        self._jobs[name].inbox.join()

    def _tick(self, job: Job) -> None:
        while not self._shutdown.wait(job.interval):
            job.inbox.put("tick")

    def _work(self, job: Job) -> None:
        while True:
            msg = job.inbox.get()
            try:
                if msg is _STOP:
                    return
                self._run_once(job, msg)
            finally:
                job.inbox.task_done()

    def _run_once(self, job: Job, reason: str) -> None:
        logger.debug("任务 %s 开始 (%s)", job.name, reason)
        try:
            job.func()
        except Exception as e:
            job.failures += 1
            job.last_error = str(e)
            logger.exception("任务 %s 执行失败，等待下次触发", job.name)
            if self._on_error is not None:
                try:
                    self._on_error(job.name, e)
                except Exception:
                    logger.exception("任务 %s 的错误记录失败", job.name)
        else:
            job.last_error = ""
        finally:
            job.runs += 1
