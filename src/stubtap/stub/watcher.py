"""
StubTap Fixture Watcher

Watches the fixture root with ``watchfiles`` and reports added, changed and
removed files to a callback. The callback runs on the event loop, between
request handlers.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Tuple

from watchfiles import Change, awatch


WatchChange = Tuple[Change, str]
EventCallback = Callable[[str, str], None]
AwatchFn = Callable[..., Any]

EVENT_NAMES = {
    Change.added: 'added',
    Change.modified: 'changed',
    Change.deleted: 'removed',
}


def is_hidden(path: str, root: Path) -> bool:
    """Check whether a path is a dotfile or lives inside a dot-directory."""
    try:
        parts = Path(path).relative_to(root).parts
    except ValueError:
        parts = Path(path).parts
    return any(part.startswith('.') for part in parts)


class FixtureWatcher:
    """
    Background task delivering filesystem events for a fixture root.

    Events are reported as ``callback(event, absolute_path)`` with ``event``
    one of ``added``, ``changed`` or ``removed``. Dotfiles are ignored.

    Example:
        watcher = FixtureWatcher('responses', on_event)
        await watcher.start()
        ...
        await watcher.stop()
    """

    def __init__(
        self,
        root_dir: str,
        callback: EventCallback,
        watch_fn: Optional[AwatchFn] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize watcher.

        Args:
            root_dir: Directory to watch recursively
            callback: Receives ``(event, absolute_path)`` for each change
            watch_fn: Async watch iterator factory (defaults to ``watchfiles.awatch``)
            logger: Logger for watcher lifecycle messages
        """
        self.root_dir = Path(root_dir).resolve()
        self.callback = callback
        self.watch_fn = watch_fn or awatch
        self.logger = logger or logging.getLogger("stubtap.stub.watcher")
        self._stop_event: Optional[asyncio.Event] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _filter(self, change: Change, path: str) -> bool:
        return not is_hidden(path, self.root_dir)

    async def start(self):
        """Start watching in a background task."""
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self.run())
        self.logger.info(f"File watching initialized for hot reload: {self.root_dir}")

    async def stop(self):
        """Stop watching and wait for the background task to finish."""
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
        self.logger.info("File watcher stopped")

    async def run(self):
        """Consume change batches until stopped."""
        try:
            async for changes in self.watch_fn(
                self.root_dir,
                recursive=True,
                watch_filter=self._filter,
                stop_event=self._stop_event,
            ):
                self.dispatch(changes)
        except Exception as e:
            # Hot reload stops, requests keep being served
            self.logger.error(f"File watcher failed: {e}")

    def dispatch(self, changes: Iterable[WatchChange]) -> int:
        """
        Deliver one batch of changes to the callback.

        Returns:
            Number of events delivered
        """
        delivered = 0
        for change, path in sorted(changes, key=lambda c: c[1]):
            event = EVENT_NAMES.get(change)
            if event is None or is_hidden(path, self.root_dir):
                continue
            self.logger.debug(f"Response file {event}: {path}", extra={'fs_event': event, 'fs_path': path})
            self.callback(event, path)
            delivered += 1
        return delivered
