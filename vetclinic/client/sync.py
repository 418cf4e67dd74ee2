"""Keeps a rendered table in step with the server by polling and diffing."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Protocol

from .api import ApiError
from .search import ANY, parse_search_input

log = logging.getLogger(__name__)

POLL_INTERVAL = 3.0
DEBOUNCE_DELAY = 0.3


@dataclass(frozen=True)
class SnapshotDiff:
    removed: frozenset = frozenset()
    added: frozenset = frozenset()
    changed: frozenset = frozenset()

    @property
    def is_empty(self) -> bool:
        return not (self.removed or self.added or self.changed)


def index_by_key(rows: Iterable[dict], key: str = "id") -> dict:
    return {row[key]: row for row in rows if row.get(key) is not None}


def diff_snapshots(previous: Iterable[dict], current: Iterable[dict], key: str = "id") -> SnapshotDiff:
    """Compare two row lists by ``key``; a row is changed when any field differs."""
    before = index_by_key(previous, key)
    after = index_by_key(current, key)
    return SnapshotDiff(
        removed=frozenset(before.keys() - after.keys()),
        added=frozenset(after.keys() - before.keys()),
        changed=frozenset(k for k in before.keys() & after.keys() if before[k] != after[k]),
    )


class TableView(Protocol):
    def add_row(self, row: dict) -> None: ...

    def remove_row(self, key) -> None: ...

    def update_row(self, key, row: dict) -> None: ...


class RowTable:
    """In-memory table; rows keep their insertion order."""

    def __init__(self, key: str = "id") -> None:
        self.key = key
        self.rows: dict = {}

    def add_row(self, row: dict) -> None:
        self.rows[row[self.key]] = dict(row)

    def remove_row(self, key) -> None:
        self.rows.pop(key, None)

    def update_row(self, key, row: dict) -> None:
        if key in self.rows:
            self.rows[key] = dict(row)

    def get(self, key):
        return self.rows.get(key)

    def keys(self) -> list:
        return list(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows.values())


def apply_diff(view: TableView, diff: SnapshotDiff, current: list[dict], key: str = "id") -> None:
    for k in diff.removed:
        view.remove_row(k)
    for row in current:
        k = row.get(key)
        if k in diff.added:
            view.add_row(row)
        elif k in diff.changed:
            view.update_row(k, row)


class LatestOnly:
    """Generation gate: only the most recently started operation may publish."""

    def __init__(self) -> None:
        self.generation = 0

    def begin(self) -> int:
        self.generation += 1
        return self.generation

    def is_current(self, token: int) -> bool:
        return token == self.generation


class TableSync:
    def __init__(
        self,
        fetch: Callable[[], Awaitable[list[dict]]],
        view: TableView,
        *,
        interval: float = POLL_INTERVAL,
        key: str = "id",
    ) -> None:
        self.fetch = fetch
        self.view = view
        self.interval = interval
        self.key = key
        self.snapshot: list[dict] | None = None
        self._gate = LatestOnly()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh(self) -> SnapshotDiff | None:
        """Fetch once and apply the changes; ``None`` when superseded."""
        token = self._gate.begin()
        rows = await self.fetch()
        if not self._gate.is_current(token):
            log.debug("discarding superseded snapshot (generation %d)", token)
            return None
        rows = list(rows or [])
        diff = diff_snapshots(self.snapshot or [], rows, self.key)
        if not diff.is_empty:
            apply_diff(self.view, diff, rows, self.key)
        self.snapshot = rows
        return diff

    async def _poll(self) -> None:
        while True:
            try:
                await self.refresh()
            except ApiError as exc:
                log.warning("poll failed, retrying in %.1fs: %s", self.interval, exc)
            except Exception:
                log.exception("poll failed, retrying in %.1fs", self.interval)
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.create_task(self._poll())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


class Debouncer:
    """Runs ``fn`` once calls have been quiet for ``delay`` seconds.

    A new call cancels a pending timer but never a call already running.
    """

    def __init__(self, fn: Callable[..., Awaitable], delay: float = DEBOUNCE_DELAY) -> None:
        self.fn = fn
        self.delay = delay
        self._pending: asyncio.Task | None = None

    def __call__(self, *args, **kwargs) -> asyncio.Task:
        self.cancel()
        self._pending = asyncio.ensure_future(self._fire(args, kwargs))
        return self._pending

    async def _fire(self, args, kwargs):
        await asyncio.sleep(self.delay)
        self._pending = None
        return await self.fn(*args, **kwargs)

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None


class SearchBox:
    """Live search: debounced input, only the newest query reaches ``on_results``."""

    def __init__(
        self,
        engine,
        on_results: Callable[[list], None],
        *,
        domain: str = ANY,
        delay: float = DEBOUNCE_DELAY,
        on_error: Callable[[ApiError], None] | None = None,
    ) -> None:
        self.engine = engine
        self.on_results = on_results
        self.on_error = on_error
        self.domain = domain
        self._gate = LatestOnly()
        self._debounced = Debouncer(self._run, delay)

    def input(self, text: str) -> asyncio.Task:
        return self._debounced(text)

    async def _run(self, text: str):
        token = self._gate.begin()
        parsed = parse_search_input(text, domain=self.domain)
        try:
            pages = await self.engine.search(parsed)
        except ApiError as exc:
            if not self._gate.is_current(token):
                return None
            if self.on_error is None:
                raise
            self.on_error(exc)
            return None
        if not self._gate.is_current(token):
            log.debug("dropping stale results for %r", text)
            return None
        self.on_results(pages)
        return pages
