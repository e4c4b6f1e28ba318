"""
Background generation worker.

The worker runs one generation request on its own thread and reports back
exclusively through a queue of messages: progress updates, then exactly one
terminal message (complete, error or cancelled).
"""

import copy
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional

from ..utils.logging_config import get_generator_logger
from .exceptions import GenerationCancelled
from .generator import DocumentGenerator
from .models import DataTable, GenerationOptions, Template


class MessageType(str, Enum):
    PROGRESS = 'progress'
    COMPLETE = 'complete'
    ERROR = 'error'
    CANCELLED = 'cancelled'


@dataclass
class WorkerMessage:
    type: MessageType
    current: int = 0
    total: int = 0
    message: str = ''
    payload: Any = None

    @property
    def terminal(self) -> bool:
        return self.type != MessageType.PROGRESS


class GenerationWorker:
    """Runs a generation request on a background thread."""

    def __init__(self, generator: Optional[DocumentGenerator] = None):
        self.generator = generator or DocumentGenerator()
        self.queue: 'queue.Queue[WorkerMessage]' = queue.Queue()
        self.logger = get_generator_logger()
        self._cancel_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, template: Template, data_table: DataTable,
              options: Optional[GenerationOptions] = None) -> None:
        """
        Submit a request. Inputs are deep-copied, so the caller may keep
        mutating its own objects while the worker runs.

        Raises:
            RuntimeError: If this worker was already started
        """
        if self._thread is not None:
            raise RuntimeError("Worker has already been started")

        args = copy.deepcopy((template, data_table, options or GenerationOptions()))
        self._thread = threading.Thread(target=self._run, args=args,
                                        name='template-generator-worker', daemon=True)
        self._thread.start()

    def cancel(self) -> None:
        """Request cancellation. It takes effect before the next row."""
        self._cancel_event.set()

    def messages(self, timeout: Optional[float] = None) -> Iterator[WorkerMessage]:
        """Yield messages until (and including) the terminal one."""
        while True:
            message = self.queue.get(timeout=timeout)
            yield message
            if message.terminal:
                return

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _report(self, current: int, total: int, message: str) -> None:
        self.queue.put(WorkerMessage(MessageType.PROGRESS, current, total, message))

    def _run(self, template: Template, data_table: DataTable, options: GenerationOptions) -> None:
        total = len(data_table.rows) if options.generate_all else 1
        try:
            result = self.generator.generate(template, data_table, options,
                                             progress=self._report,
                                             cancel_event=self._cancel_event)
        except GenerationCancelled as e:
            self.queue.put(WorkerMessage(MessageType.CANCELLED, e.completed, e.total, e.message))
        except Exception as e:
            self.logger.error("❌ Background generation failed: %s", e, exc_info=True)
            self.queue.put(WorkerMessage(MessageType.ERROR, 0, total, str(e), payload=e))
        else:
            self.queue.put(WorkerMessage(MessageType.COMPLETE, total, total,
                                         "Generation complete", payload=result))
