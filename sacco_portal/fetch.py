"""Load lifecycle for a single resource rendered by a page.

A page creates one :class:`FetchController` per resource it shows. Mounting
the controller starts a load; the page then awaits :meth:`settled` and renders
``loading`` (spinner), ``error`` (retry banner) or ``data``. ``refetch`` starts
another full load. Leaving the ``async with`` block unmounts the controller and
any load that finishes afterwards is dropped.

Every load gets a sequence number and only the most recently started load may
settle the state, so an overlapping slow response never replaces a newer one.
"""
import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from .errors import ApiError, PortalError

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ERROR_MESSAGE = "An error occurred"


@dataclass(frozen=True)
class Loading:
    status = "loading"


@dataclass(frozen=True)
class Ready(Generic[T]):
    data: T
    status = "ready"


@dataclass(frozen=True)
class Failed:
    error: str
    status = "failed"


FetchState = Union[Loading, Ready, Failed]

LOADING = Loading()


def error_message(exc, fallback=DEFAULT_ERROR_MESSAGE):
    """Return the text shown to the user for ``exc``."""
    if isinstance(exc, PortalError):
        return exc.message or fallback
    text = str(exc)
    return text if text else fallback


def unwrap(envelope):
    """Return the payload of a ``{data: T}`` envelope."""
    if isinstance(envelope, Mapping):
        if "data" in envelope:
            return envelope["data"]
    elif hasattr(envelope, "data"):
        return envelope.data
    raise ApiError("Malformed response payload")


class FetchController:
    """Owns the :data:`FetchState` of one resource for one page render."""

    def __init__(self, operation: Callable[[], Awaitable[Any]], name: Optional[str] = None):
        self._operation = operation
        self.name = name or getattr(operation, "__name__", "fetch")
        self._state: FetchState = LOADING
        self._mounted = False
        self._sequence = 0
        self._tasks = set()

    @property
    def state(self) -> FetchState:
        return self._state

    @property
    def loading(self) -> bool:
        return isinstance(self._state, Loading)

    @property
    def data(self):
        return self._state.data if isinstance(self._state, Ready) else None

    @property
    def error(self) -> Optional[str]:
        return self._state.error if isinstance(self._state, Failed) else None

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def snapshot(self):
        return {"data": self.data, "loading": self.loading, "error": self.error}

    def mount(self):
        if self._mounted:
            return
        self._mounted = True
        self._start()

    def unmount(self):
        # In-flight loads keep running; _settle drops whatever they return.
        self._mounted = False

    def refetch(self):
        if not self._mounted:
            log.debug("refetch of %s ignored: not mounted", self.name)
            return
        self._start()

    async def settled(self, timeout: Optional[float] = None) -> bool:
        """Wait for every in-flight load. Returns False if ``timeout`` ran out."""
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while self._tasks:
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                return False
            await asyncio.wait(set(self._tasks), timeout=remaining)
        return True

    async def __aenter__(self):
        self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.unmount()
        return False

    def _start(self):
        self._sequence += 1
        sequence = self._sequence
        self._state = LOADING
        task = asyncio.get_running_loop().create_task(self._load(sequence))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _load(self, sequence):
        log.debug("loading %s (#%d)", self.name, sequence)
        try:
            data = unwrap(await self._operation())
        except Exception as exc:
            log.warning("loading %s failed: %s", self.name, exc)
            self._settle(sequence, Failed(error_message(exc)))
        else:
            self._settle(sequence, Ready(data))

    def _settle(self, sequence, state):
        if not self._mounted:
            log.debug("discarding %s result #%d after unmount", self.name, sequence)
            return
        if sequence != self._sequence:
            log.debug("discarding stale %s result #%d (latest #%d)", self.name, sequence, self._sequence)
            return
        self._state = state


async def fetch_all(**operations):
    """Run several operations concurrently and return one combined envelope.

    ``await fetch_all(periods=api.list_periods, members=api.list_members)``
    resolves to ``{"data": {"periods": [...], "members": [...]}}``. The first
    failure propagates, which fails the whole load.
    """
    names = list(operations)
    results = await asyncio.gather(*(operations[name]() for name in names))
    return {"data": {name: unwrap(result) for name, result in zip(names, results)}}
