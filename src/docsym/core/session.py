"""
docsym Incremental Search Session

Drives the query engine as the user types.  Every input change bumps a
monotonic generation counter; a query is issued only after a quiet
period (debounce), and a result is displayed only if its generation is
still current when it arrives.

Lifecycle::

    IDLE ──input──▶ PENDING ──result──▶ DISPLAYING
      ▲                │  ▲                 │
      └────clear───────┘  └─────input───────┘

Runs on a single asyncio event loop; the session is the only mutable
piece, the index and engine are shared read-only.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterable, Awaitable, Callable, Iterable, List, Optional, Sequence, Set, Tuple, Union

from docsym.core.search import QueryEngine, SearchHit
from docsym.exceptions import SessionClosedError

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    DISPLAYING = "displaying"


class EventType(str, Enum):
    INPUT = "input"
    CLEAR = "clear"
    CLOSE = "close"


@dataclass(frozen=True)
class SessionEvent:
    """One UI event: the current input text (with its sequence number), a clear, or a close."""
    type: EventType
    text: str = ""
    seq: int = 0

    @classmethod
    def input(cls, text: str, seq: int = 0) -> "SessionEvent":
        return cls(EventType.INPUT, text, seq)

    @classmethod
    def clear(cls, seq: int = 0) -> "SessionEvent":
        return cls(EventType.CLEAR, "", seq)

    @classmethod
    def close(cls, seq: int = 0) -> "SessionEvent":
        return cls(EventType.CLOSE, "", seq)


@dataclass(frozen=True)
class DisplayedResults:
    """The result list currently shown, tagged with the generation that produced it."""
    generation: int
    query: str
    hits: Tuple[SearchHit, ...] = field(default_factory=tuple)

    @property
    def no_matches(self) -> bool:
        """True when a query was answered with zero hits (shown as "no matches")."""
        return bool(self.query.strip()) and not self.hits


Runner = Callable[[str, int], Awaitable[Sequence[SearchHit]]]
DisplayCallback = Callable[[DisplayedResults], None]


class QuerySession:
    """
    Per-search-box state machine.

    Args:
        engine: Shared query engine.
        limit: Maximum hits per query (defaults to the engine's limit).
        debounce_seconds: Quiet period after the last input before a
            query is issued.
        on_display: Called with the new :class:`DisplayedResults` whenever
            the shown list changes (including being emptied by a clear).
        runner: Coroutine ``runner(text, limit)`` producing hits.  Defaults
            to a direct call of :meth:`QueryEngine.hits`.
    """

    def __init__(
        self,
        engine: QueryEngine,
        *,
        limit: Optional[int] = None,
        debounce_seconds: float = 0.15,
        on_display: Optional[DisplayCallback] = None,
        runner: Optional[Runner] = None,
    ):
        self.engine = engine
        self.limit = limit if limit is not None else engine.default_limit
        self.debounce_seconds = debounce_seconds
        self._on_display = on_display
        self._runner = runner or self._run_engine

        self.generation = 0
        self.state = SessionState.IDLE
        self.query = ""
        self.displayed = DisplayedResults(generation=0, query="")
        self._pending: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._closed = False
        self._last_seq: Optional[int] = None

    # ── Properties ────────────────────────────────────────────────

    @property
    def closed(self) -> bool:
        return self._closed

    # ── Input ─────────────────────────────────────────────────────

    def feed(self, text: str) -> int:
        """
        Register a new input value and schedule its query.

        Must be called from a running event loop.  Blank input acts as
        :meth:`clear`.  Returns the generation assigned to this input.
        """
        self._ensure_open()
        if not text or not text.strip():
            self.clear()
            return self.generation

        self.generation += 1
        self.query = text
        self._cancel_pending()
        self.state = SessionState.PENDING
        generation = self.generation
        self._pending = asyncio.get_running_loop().create_task(self._issue(generation, text))
        logger.debug(f"Input {text!r} -> generation {generation}")
        return generation

    def clear(self) -> None:
        """Empty the input: back to IDLE, every outstanding generation becomes stale."""
        self.generation += 1
        self._cancel_pending()
        self.query = ""
        self.state = SessionState.IDLE
        self.displayed = DisplayedResults(generation=self.generation, query="")
        if self._on_display and not self._closed:
            self._on_display(self.displayed)

    def close(self) -> None:
        """Clear and refuse further input.  In-flight results will be discarded."""
        if self._closed:
            return
        self.clear()
        self._closed = True
        logger.debug("Session closed")

    async def aclose(self) -> None:
        """Close, then cancel and await in-flight queries."""
        self.close()
        for task in list(self._in_flight):
            task.cancel()
        await self.drain()

    # ── Events ────────────────────────────────────────────────────

    def handle(self, event: SessionEvent) -> None:
        """Apply one UI event.  Events are processed strictly in arrival order."""
        if self._last_seq is not None and event.seq < self._last_seq:
            logger.debug(f"Event seq {event.seq} arrived after seq {self._last_seq}")
        self._last_seq = event.seq

        if event.type is EventType.INPUT:
            self.feed(event.text)
        elif event.type is EventType.CLEAR:
            self.clear()
        elif event.type is EventType.CLOSE:
            self.close()

    async def run(self, events: Union[Iterable[SessionEvent], AsyncIterable[SessionEvent]]) -> DisplayedResults:
        """Consume an event stream, then wait for outstanding queries to settle."""
        if hasattr(events, "__aiter__"):
            async for event in events:
                self.handle(event)
                if self._closed:
                    break
        else:
            for event in events:
                self.handle(event)
                if self._closed:
                    break
        await self.drain()
        return self.displayed

    async def drain(self) -> None:
        """Wait until no query is debouncing or in flight."""
        while True:
            tasks: List[asyncio.Task] = [t for t in (self._pending, *self._in_flight) if t and not t.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    # ── Results ───────────────────────────────────────────────────

    def apply_result(self, generation: int, hits: Sequence[SearchHit]) -> bool:
        """
        Display *hits* if *generation* is still current.

        Returns ``False`` (and changes nothing) for stale generations and
        after the session was closed.
        """
        if self._closed or generation != self.generation:
            logger.debug(f"Discarding stale result (generation {generation}, current {self.generation})")
            return False
        self.displayed = DisplayedResults(generation=generation, query=self.query, hits=tuple(hits))
        self.state = SessionState.DISPLAYING
        if self._on_display:
            self._on_display(self.displayed)
        return True

    # ── Internal helpers ──────────────────────────────────────────

    async def _run_engine(self, text: str, limit: int) -> List[SearchHit]:
        return self.engine.hits(text, limit)

    async def _issue(self, generation: int, text: str) -> None:
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
        if generation != self.generation:
            return

        # Past the quiet period the query is in flight: newer input no
        # longer cancels it, its result is discarded on arrival instead.
        task = asyncio.current_task()
        if self._pending is task:
            self._pending = None
        self._in_flight.add(task)
        try:
            hits = await self._runner(text, self.limit)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Query {text!r} (generation {generation}) failed: {e}", exc_info=True)
            if generation == self.generation and not self._closed:
                # The previous list (if any) stays on screen
                self.state = SessionState.DISPLAYING if self.displayed.query else SessionState.IDLE
            return
        finally:
            self._in_flight.discard(task)
        self.apply_result(generation, hits)

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Query session is closed")
