import logging
import queue
import threading
from collections.abc import Sequence
from typing import Any


class BaseWorker(threading.Thread):
    """
    Base class for all workers.

    A worker does one piece of work in its own thread and keeps either the
    result or the exception it died with. Workers never share mutable state;
    each writes only its own result slot.
    """

    log_name = "base-worker"

    def __init__(self):
        self.result: Any = None
        self.error: BaseException | None = None
        self.done: queue.Queue["BaseWorker"] | None = None
        self.logger = logging.getLogger(self.log_name)
        super().__init__(daemon=True)

    def run(self):
        try:
            self.result = self.work()
        except BaseException as e:
            self.logger.debug(f"{self.log_name}: {e}")
            self.error = e
        finally:
            if self.done is not None:
                self.done.put(self)

    def work(self) -> Any:
        """
        Does the actual work and returns its result.
        """
        raise NotImplementedError()


def run_all(workers: Sequence[BaseWorker]) -> list[Any]:
    """
    Runs all workers concurrently and waits for them to finish.

    Returns their results in the order the workers were passed. As soon as
    any worker fails its exception is re-raised; whatever the others produce
    is discarded.
    """
    done: queue.Queue[BaseWorker] = queue.Queue()
    for worker in workers:
        worker.done = done
        worker.start()
    for _ in workers:
        worker = done.get()
        if worker.error is not None:
            raise worker.error
    return [worker.result for worker in workers]
