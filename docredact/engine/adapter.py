# docredact/engine/adapter.py

"""Asynchronous front-end to the isolated recognizer worker.

The adapter tracks model state, correlates requests with worker events by
request id, applies per-call timeouts and turns a dead worker into errors
for every caller instead of hanging them.

Callers may come from different threads, each running its own event loop
(one per Streamlit session, for instance). Every waiting future therefore
belongs to its caller's loop and is completed on that loop; shared state
is guarded by a lock.
"""

import asyncio
import itertools
import logging
import queue
import threading
from typing import Any, Callable, Dict, List, Optional

from docredact.core.domain import Entity
from docredact.core.exceptions import (
    DetectionTimeoutError,
    InitializationError,
    ModelUnavailableError,
    RecognizerError,
    WorkerCrashedError,
)
from docredact.engine.worker import (
    EventKind,
    RequestKind,
    WorkerEvent,
    WorkerHandle,
    WorkerRequest,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[str, int], None]


class AdapterState:
    """Lifecycle states of the recognizer adapter."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    DETECTING = "detecting"
    ERROR = "error"


def _resolve(future: asyncio.Future, result: Any, error: Optional[Exception]) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)


def _settle(
    future: asyncio.Future,
    result: Any = None,
    error: Optional[Exception] = None,
) -> None:
    """Completes a future from any thread, on the loop that owns it."""
    try:
        future.get_loop().call_soon_threadsafe(_resolve, future, result, error)
    except RuntimeError:
        logger.debug("Event loop closed; dropping worker event")


class RecognizerAdapter:
    """Async request/response adapter over a recognizer worker.

    States move UNINITIALIZED -> LOADING -> READY, and between READY and
    DETECTING while calls are in flight. ERROR is terminal: a new adapter
    must be constructed to recover.
    """

    def __init__(
        self,
        handle: WorkerHandle,
        detection_timeout: float = 30.0,
        init_timeout: float = 300.0,
        poll_interval: float = 0.1,
    ) -> None:
        """Initialize the adapter. The worker is not started until initialize().

        Args:
            handle: Worker handle (process or thread)
            detection_timeout: Seconds before a detect call is abandoned
            init_timeout: Seconds allowed for model loading
            poll_interval: Seconds between worker liveness checks
        """
        self._handle = handle
        self.detection_timeout = detection_timeout
        self.init_timeout = init_timeout
        self._poll_interval = poll_interval

        self.state = AdapterState.UNINITIALIZED
        self.progress = 0
        self.last_error: Optional[str] = None

        self._lock = threading.RLock()
        self._listeners: List[StateListener] = []
        self._pending: Dict[str, asyncio.Future] = {}
        self._init_waiters: List[asyncio.Future] = []
        self._load_started = False
        self._active_calls = 0
        self._ids = itertools.count(1)

        self._dispatcher: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self.state in (AdapterState.READY, AdapterState.DETECTING)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def add_listener(self, listener: StateListener) -> None:
        """Registers a callback receiving (state, progress) on every change.

        Listeners may be called from the dispatcher thread.
        """
        self._listeners.append(listener)

    def _set_state(self, state: str, progress: Optional[int] = None) -> None:
        if progress is not None:
            self.progress = progress
        if state == self.state and progress is None:
            return
        self.state = state
        for listener in list(self._listeners):
            try:
                listener(state, self.progress)
            except Exception:
                logger.warning("State listener failed", exc_info=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Start the worker and load the model.

        Idempotent: returns immediately when ready, and concurrent callers,
        from any thread or event loop, await the same load.

        Raises:
            InitializationError: If the model fails to load or times out.
            ModelUnavailableError: If the adapter is already in ERROR.
        """
        if self.is_ready:
            return

        waiter = asyncio.get_running_loop().create_future()
        with self._lock:
            if self.is_ready:
                return
            if self.state == AdapterState.ERROR:
                raise ModelUnavailableError(
                    f"Recognizer is in error state: {self.last_error or 'unknown error'}"
                )
            self._init_waiters.append(waiter)
            first_caller = not self._load_started
            if first_caller:
                self._load_started = True
                self._set_state(AdapterState.LOADING, 0)

        if first_caller:
            logger.info("Loading recognizer model")
            self._handle.start()
            self._start_dispatcher()
            self._handle.send(WorkerRequest(RequestKind.INIT_MODEL, request_id="init"))

        try:
            await asyncio.wait_for(waiter, self.init_timeout)
        except asyncio.TimeoutError as e:
            self._fail("Model loading timed out")
            raise InitializationError("Recognizer model loading timed out") from e
        finally:
            with self._lock:
                if waiter in self._init_waiters:
                    self._init_waiters.remove(waiter)

    async def detect(self, text: str) -> List[Entity]:
        """Detect person, organization and location entities.

        Args:
            text: Full document text

        Returns:
            Recognizer entities with absolute offsets

        Raises:
            ModelUnavailableError: If the model is not ready.
            DetectionTimeoutError: If the worker does not answer in time.
            WorkerCrashedError: If the worker died while the call was pending.
            RecognizerError: If the worker reported a detection failure.
        """
        if not text or not text.strip():
            return []

        loop = asyncio.get_running_loop()
        with self._lock:
            if not self.is_ready:
                raise ModelUnavailableError(f"Recognizer not ready (state={self.state})")
            request_id = f"detect-{next(self._ids)}"
            future = loop.create_future()
            self._pending[request_id] = future
            self._active_calls += 1
            self._set_state(AdapterState.DETECTING)

        self._handle.send(WorkerRequest(RequestKind.DETECT_PII, request_id=request_id, text=text))

        try:
            return await asyncio.wait_for(future, self.detection_timeout)
        except asyncio.TimeoutError as e:
            logger.warning(
                "Detection timed out",
                extra={"request_id": request_id, "timeout": self.detection_timeout},
            )
            raise DetectionTimeoutError(
                f"Detection exceeded {self.detection_timeout}s"
            ) from e
        finally:
            with self._lock:
                self._pending.pop(request_id, None)
                self._active_calls -= 1
                if self._active_calls == 0 and self.state == AdapterState.DETECTING:
                    self._set_state(AdapterState.READY)

    async def shutdown(self) -> None:
        """Stop the worker and the dispatcher thread."""
        self._stopping.set()
        await asyncio.get_running_loop().run_in_executor(None, self._handle.stop)
        if self._dispatcher is not None:
            self._dispatcher.join(timeout=self._poll_interval * 5)
        logger.info("Recognizer adapter shut down")

    # ------------------------------------------------------------------
    # Event dispatch
    # ------------------------------------------------------------------

    def _start_dispatcher(self) -> None:
        if self._dispatcher is not None:
            return
        self._dispatcher = threading.Thread(
            target=self._dispatch,
            name="docredact-dispatcher",
            daemon=True,
        )
        self._dispatcher.start()

    def _dispatch(self) -> None:
        """Reads worker events and settles the futures waiting on them."""
        while not self._stopping.is_set():
            try:
                event = self._handle.events.get(timeout=self._poll_interval)
            except queue.Empty:
                if not self._handle.is_alive() and not self._stopping.is_set():
                    self._on_worker_crash()
                    return
                continue
            self._on_event(event)

    def _on_event(self, event: WorkerEvent) -> None:
        with self._lock:
            if event.kind == EventKind.MODEL_LOADING:
                if self.state == AdapterState.LOADING:
                    self._set_state(AdapterState.LOADING, event.progress)

            elif event.kind == EventKind.MODEL_LOADED:
                logger.info("Recognizer model loaded")
                self._set_state(AdapterState.READY, 100)
                for waiter in self._init_waiters:
                    _settle(waiter)
                self._init_waiters = []

            elif event.kind == EventKind.MODEL_ERROR:
                logger.error("Recognizer model failed to load", extra={"error": event.error})
                self._fail(event.error)

            elif event.kind == EventKind.DETECTION_COMPLETE:
                future = self._pending.get(event.request_id)
                if future is not None:
                    _settle(future, event.entities)

            elif event.kind == EventKind.DETECTION_ERROR:
                future = self._pending.get(event.request_id)
                if future is not None:
                    _settle(future, error=RecognizerError(event.error or "Detection failed"))

    def _on_worker_crash(self) -> None:
        if self._stopping.is_set():
            return
        logger.error(
            "Recognizer worker terminated unexpectedly",
            extra={"pending_count": len(self._pending)},
        )
        self._fail("Worker terminated", crashed=True)

    def _fail(self, message: str, crashed: bool = False) -> None:
        """Moves to ERROR and rejects the load and every pending call."""
        with self._lock:
            self.last_error = message
            self._set_state(AdapterState.ERROR)

            for waiter in self._init_waiters:
                _settle(waiter, error=InitializationError(message))
            self._init_waiters = []

            for future in self._pending.values():
                if crashed:
                    _settle(future, error=WorkerCrashedError(message))
                else:
                    _settle(future, error=ModelUnavailableError(message))
