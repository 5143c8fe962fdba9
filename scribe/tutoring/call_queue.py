#!/usr/bin/env python3
"""
Serialized calls to the tutor service.

At most one call is in flight. Later calls wait in a FIFO queue and start
only after the previous one settles, whether it succeeded or failed. Each
turn is a stream of events from a closed set; the queue forwards them to the
display and resolves the caller's future with the final result.

The queue also owns interrupt teardown: Ctrl-C saves progress and session
state and restores the terminal before the process exits.
"""

import logging
import queue
import signal
import sys
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .state import AgentCallError


logger = logging.getLogger(__name__)


# =============================================================================
# Events
# =============================================================================

@dataclass(frozen=True)
class TextChunk:
    """A piece of streamed tutor text"""
    text: str


@dataclass(frozen=True)
class ToolStart:
    """The tutor invoked a tool"""
    name: str


@dataclass(frozen=True)
class ToolEnd:
    """A tool invocation finished"""
    name: str
    success: bool = True


@dataclass
class AgentResult:
    """Terminal result of one tutor turn"""
    history: List[Dict[str, Any]] = field(default_factory=list)
    text: str = ''
    segment_completed: bool = False
    summary: Optional[str] = None


@dataclass(frozen=True)
class Done:
    """The turn finished"""
    result: AgentResult


@dataclass(frozen=True)
class Failed:
    """The turn raised"""
    error: BaseException


AgentEvent = Union[TextChunk, ToolStart, ToolEnd, Done, Failed]

TurnRunner = Callable[[str, List[Dict[str, Any]], Any], Iterator[AgentEvent]]


class CallDisplay(ABC):
    """What the queue needs from the display while a call runs"""

    @abstractmethod
    def start_loading(self):
        pass

    @abstractmethod
    def stop_loading(self):
        pass

    @abstractmethod
    def show_text(self, text: str):
        pass

    @abstractmethod
    def tool_started(self, name: str):
        pass

    @abstractmethod
    def tool_finished(self, name: str, success: bool):
        pass

    @abstractmethod
    def show_error(self, message: str):
        pass

    def set_running(self, running: bool):
        """Optional hook for a 'call in flight' indicator"""


@dataclass
class ShutdownHooks:
    """Callables run on interrupt, in order: progress, session state, terminal"""
    save_progress: Optional[Callable[[], None]] = None
    save_state: Optional[Callable[[], None]] = None
    restore_terminal: Optional[Callable[[], None]] = None
    notify: Optional[Callable[[str], None]] = None


@dataclass
class _Job:
    message: str
    history: List[Dict[str, Any]]
    context: Any
    future: Future
    on_event: Optional[Callable[[AgentEvent], None]] = None


class CallQueue:
    """FIFO of tutor calls run one at a time on a worker thread"""

    def __init__(self, run_turn: TurnRunner, display: Optional[CallDisplay] = None):
        self.run_turn = run_turn
        self.display = display
        self.hooks: Optional[ShutdownHooks] = None
        self._jobs: 'queue.Queue[Optional[_Job]]' = queue.Queue()
        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._running = False
        self._flushed = False
        self._previous_sigint = None

    @property
    def running(self) -> bool:
        """True while a call is in flight"""
        return self._running

    @property
    def pending(self) -> int:
        """Calls waiting behind the one in flight"""
        return self._jobs.qsize()

    # =========================================================================
    # Calls
    # =========================================================================

    def submit(
        self,
        message: str,
        history: List[Dict[str, Any]],
        context: Any = None,
        on_event: Callable[[AgentEvent], None] = None,
    ) -> Future:
        """Queue a call and return a future for its AgentResult"""
        future: Future = Future()
        self._jobs.put(_Job(message, list(history), context, future, on_event))
        self._ensure_worker()
        return future

    def call(
        self,
        message: str,
        history: List[Dict[str, Any]],
        context: Any = None,
        on_event: Callable[[AgentEvent], None] = None,
    ) -> AgentResult:
        """Queue a call and block until it settles"""
        return self.submit(message, history, context, on_event).result()

    def close(self):
        """Stop the worker after queued calls finish"""
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                self._jobs.put(None)
                self._worker.join(timeout=5)
            self._worker = None

    def _ensure_worker(self):
        with self._lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(target=self._work, name='scribe-calls', daemon=True)
                self._worker.start()

    def _work(self):
        while True:
            job = self._jobs.get()
            if job is None:
                break
            if not job.future.set_running_or_notify_cancel():
                continue
            try:
                result = self._execute(job)
            except BaseException as e:
                job.future.set_exception(e)
            else:
                job.future.set_result(result)

    def _execute(self, job: _Job) -> AgentResult:
        display = self.display
        result: Optional[AgentResult] = None
        loading = False

        self._running = True
        if display:
            display.set_running(True)
            display.start_loading()
            loading = True

        try:
            for event in self.run_turn(job.message, job.history, job.context):
                if isinstance(event, TextChunk):
                    if loading:
                        display.stop_loading()
                        loading = False
                    if display:
                        display.show_text(event.text)
                elif isinstance(event, ToolStart):
                    if loading:
                        display.stop_loading()
                        loading = False
                    if display:
                        display.tool_started(event.name)
                elif isinstance(event, ToolEnd):
                    if display:
                        display.tool_finished(event.name, event.success)
                elif isinstance(event, Done):
                    result = event.result
                if job.on_event:
                    job.on_event(event)
        except Exception as e:
            logger.error('Tutor call failed: %s', e)
            if job.on_event:
                job.on_event(Failed(e))
            if loading:
                display.stop_loading()
                loading = False
            if display:
                display.show_error(str(e))
            raise AgentCallError(str(e)) from e
        finally:
            if loading:
                display.stop_loading()
            self._running = False
            if display:
                display.set_running(False)

        if result is None:
            raise AgentCallError('Tutor turn ended without a result')
        return result

    # =========================================================================
    # Interrupt teardown
    # =========================================================================

    def install_interrupt_handler(self, hooks: ShutdownHooks):
        """Route SIGINT to flush_and_exit; only callable from the main thread"""
        self.hooks = hooks
        self._previous_sigint = signal.signal(signal.SIGINT, self._on_sigint)

    def uninstall_interrupt_handler(self):
        if self._previous_sigint is not None:
            signal.signal(signal.SIGINT, self._previous_sigint)
            self._previous_sigint = None

    def _on_sigint(self, signum, frame):
        self.flush_and_exit()

    def flush(self):
        """Persist progress and session state, then restore the terminal. Runs once."""
        if self._flushed or self.hooks is None:
            return
        self._flushed = True
        hooks = self.hooks

        if hooks.notify:
            hooks.notify('Saving progress...')

        saved = True
        for name, fn in (('progress', hooks.save_progress), ('session state', hooks.save_state)):
            if fn is None:
                continue
            try:
                fn()
            except Exception as e:
                saved = False
                logger.error('Failed to save %s on interrupt: %s', name, e)

        if hooks.restore_terminal:
            try:
                hooks.restore_terminal()
            except Exception as e:
                logger.error('Failed to restore terminal: %s', e)

        if hooks.notify:
            hooks.notify('Progress saved.' if saved else 'Could not save all progress; see the log.')

    def flush_and_exit(self, code: int = 0):
        """Flush synchronously, then exit the process"""
        self.flush()
        sys.exit(code)
