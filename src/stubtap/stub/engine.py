"""
StubTap Response Engine

Resolves a request to a response body and a delay:

    resolver -> store (with fallback chain) -> templating
    delay resolver (independently)

The engine owns its fixture store; create one engine per server and discard
it on shutdown.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from .store import FixtureStore
from .resolver import FixtureResolver
from .delay import DelayResolver
from .templating import TemplateEngine


ERROR_BODY = {
    'status': 'error',
    'message': 'No response file available',
}


@dataclass
class ResolvedResponse:
    """Result of resolving a request."""

    body: Any
    delay_ms: int = 0
    source: Optional[str] = None  # Relative fixture path, None for the error body

    @property
    def is_error(self) -> bool:
        return self.source is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'body': self.body,
            'delayMs': self.delay_ms,
            'source': self.source
        }


class ResponseEngine:
    """
    Resolution engine turning request attributes into fixture responses.

    Example:
        engine = ResponseEngine('responses', lookup_field='user_id')
        result = engine.resolve('123', 'user', {'user_id': '123'})
        print(result.body, result.delay_ms)
    """

    def __init__(
        self,
        response_dir: str,
        default_response: str = "default.json",
        lookup_field: Optional[str] = "id",
        max_delay_ms: int = 5000,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize response engine.

        Args:
            response_dir: Fixture root directory
            default_response: Default fixture filename
            lookup_field: Configured lookup field name
            max_delay_ms: Exclusive upper bound for per-request delay overrides
            logger: Engine logger (defaults to ``stubtap.stub``)
        """
        self.root_dir = Path(response_dir).resolve()
        self.default_response = default_response
        self.logger = logger or logging.getLogger("stubtap.stub")

        self.store = FixtureStore(str(self.root_dir))
        self.resolver = FixtureResolver(str(self.root_dir), default_response, lookup_field)
        self.delays = DelayResolver(self.store, max_delay_ms=max_delay_ms)
        self.templates = TemplateEngine()

    def ensure_fixture_root(self) -> bool:
        """
        Create the fixture root and the global default fixture if missing.

        Returns:
            True if the default fixture was created
        """
        if not self.root_dir.exists():
            self.root_dir.mkdir(parents=True, exist_ok=True)
            self.logger.info(f"Created response directory: {self.root_dir}")

        default_path = self.root_dir / self.default_response
        if default_path.exists():
            return False

        default_body = {
            'status': 'success',
            'message': 'Default response - no matching file found',
            'timestamp': datetime.now().isoformat()
        }
        with open(default_path, 'w', encoding='utf-8') as f:
            json.dump(default_body, f, indent=2)
        self.logger.info(f"Created default response file: {default_path}")
        return True

    def resolve(
        self,
        lookup_value: Any = None,
        category: Any = None,
        request_data: Optional[Dict[str, Any]] = None,
        explicit_delay_ms: Any = None
    ) -> ResolvedResponse:
        """
        Resolve a request to a response body and delay.

        Args:
            lookup_value: Lookup value (None if absent)
            category: Request category (None if absent)
            request_data: Merged query/body data for templating
            explicit_delay_ms: Raw per-request delay override

        Returns:
            ResolvedResponse. Never raises; failures end in the synthetic
            error body with zero delay.
        """
        request_data = request_data or {}

        try:
            return self._resolve(lookup_value, category, request_data, explicit_delay_ms)
        except Exception as e:
            self.logger.error(f"Unexpected error resolving response: {e}", exc_info=True)
            return ResolvedResponse(body=dict(ERROR_BODY), delay_ms=0, source=None)

    def _resolve(
        self,
        lookup_value: Any,
        category: Any,
        request_data: Dict[str, Any],
        explicit_delay_ms: Any
    ) -> ResolvedResponse:
        relative_path = self.resolver.resolve_path(lookup_value, category)
        document, source = self._load_with_fallback(relative_path, category)

        if document is None:
            self.logger.warning("No response file available, returning error body")
            return ResolvedResponse(body=dict(ERROR_BODY), delay_ms=0, source=None)

        body = self.templates.apply(document, request_data)
        if self.templates.has_placeholders(document):
            self.logger.debug(f"Template rendering applied: {source} (keys: {list(request_data.keys())})")

        # A category's delay never applies to the global default
        if source == self.default_response:
            delay_ms = 0
        else:
            delay_ms = self.delays.resolve_delay(explicit_delay_ms, category)

        return ResolvedResponse(body=body, delay_ms=delay_ms, source=source)

    def _load_with_fallback(self, relative_path: str, category: Any):
        """
        Load the resolved fixture, falling back to category then global default.

        Returns:
            Tuple of (document or None, relative path served or None)
        """
        document = self.store.load(relative_path)
        if document is not None:
            return document, relative_path

        if relative_path == self.default_response:
            return None, None

        self.logger.debug(
            f"Falling back to default response (requested: {relative_path}, category: {category})",
            extra={'fixture_path': relative_path, 'category': category}
        )

        if category is not None and self.resolver.category_exists(category):
            category_default = self.resolver.category_default(category)
            if category_default != relative_path:
                document = self.store.load(category_default)
                if document is not None:
                    return document, category_default

        document = self.store.load(self.default_response)
        if document is not None:
            return document, self.default_response

        return None, None

    def handle_fs_event(self, event: str, path: str):
        """
        React to a filesystem event by evicting the affected cache entry.

        Args:
            event: ``added``, ``changed`` or ``removed``
            path: Absolute path reported by the watcher
        """
        if self.store.invalidate_absolute(path):
            self.logger.debug(f"Cache entry evicted after {event}: {path}", extra={'fs_event': event, 'fs_path': path})

    def shutdown(self):
        """Discard all cached fixtures."""
        self.store.clear()
