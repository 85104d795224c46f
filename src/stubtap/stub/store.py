"""
StubTap Fixture Store

In-memory cache of parsed JSON fixtures, keyed by path relative to the
fixture root. Entries are populated lazily on first read and evicted by
``invalidate`` calls coming from the filesystem watcher.

Consistency: request handling and watcher callbacks run as separate turns of
one event loop, so the store needs no locking. A request that starts
resolving before an invalidating event and loads after it may see either the
old or the new content of that fixture. That window is accepted; the next
request after the event always sees the new content.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..common import is_within_root, is_existing_file, relative_key


class FixtureStore:
    """
    Cache-or-load access to JSON fixtures under a root directory.

    ``load`` never raises: missing files, malformed JSON and paths escaping
    the root are all reported to the logger and returned as None.

    Example:
        store = FixtureStore('responses')
        document = store.load('user/user_123.json')
        store.invalidate('user/user_123.json')
    """

    def __init__(self, root_dir: str, logger: Optional[logging.Logger] = None):
        """
        Initialize store.

        Args:
            root_dir: Fixture root directory
            logger: Logger for load failures (defaults to ``stubtap.stub.store``)
        """
        self.root_dir = Path(root_dir).resolve()
        self.logger = logger or logging.getLogger("stubtap.stub.store")
        self.cache: Dict[str, Any] = {}
        self.cache_hits = 0
        self.cache_misses = 0

    def load(self, relative_path: str) -> Optional[Any]:
        """
        Load a fixture, using the cached parse when present.

        Args:
            relative_path: Fixture path relative to the root

        Returns:
            Parsed JSON document, or None if the fixture is unavailable
        """
        if relative_path in self.cache:
            self.cache_hits += 1
            return self.cache[relative_path]
        self.cache_misses += 1

        file_path = self.root_dir / relative_path

        # Prevent directory traversal
        if not is_within_root(file_path, self.root_dir):
            self.logger.warning("Attempted directory traversal blocked")
            self.logger.debug(f"Blocked fixture path: {relative_path!r}")
            return None

        if not is_existing_file(file_path):
            self.logger.warning(f"Response file not found: {relative_path}", extra={'fixture_path': relative_path})
            return None

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            self.logger.error(
                f"Error loading response file {relative_path}: {e}",
                extra={'fixture_path': relative_path, 'error': str(e)}
            )
            return None

        self.cache[relative_path] = document
        return document

    def invalidate(self, relative_path: str) -> bool:
        """
        Evict a cached fixture.

        Safe to call for paths that were never cached.

        Returns:
            True if an entry was removed
        """
        if relative_path in self.cache:
            del self.cache[relative_path]
            self.logger.debug(f"Cache invalidated: {relative_path}", extra={'fixture_path': relative_path})
            return True
        return False

    def invalidate_absolute(self, path: str) -> bool:
        """
        Evict the entry for an absolute path reported by a watcher.

        Paths outside the root are ignored.
        """
        key = relative_key(Path(path), self.root_dir)
        if key is None:
            return False
        return self.invalidate(key)

    def clear(self) -> int:
        """
        Drop every cached fixture and reset counters.

        Returns:
            Number of entries removed
        """
        size_before = len(self.cache)
        self.cache.clear()
        self.cache_hits = 0
        self.cache_misses = 0
        return size_before

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        lookups = self.cache_hits + self.cache_misses
        return {
            'current_size': len(self.cache),
            'hits': self.cache_hits,
            'misses': self.cache_misses,
            'hit_rate': self.cache_hits / lookups if lookups > 0 else 0.0,
            'entries': sorted(self.cache.keys()),
        }
