"""
StubTap Delay Resolver

Determines the artificial latency for a response. A per-request override
wins when it is in range; otherwise the category's ``config.json`` decides.
"""

import logging
import math
from typing import Any, Optional

from ..common import sanitize_segment, is_existing_file
from .store import FixtureStore


CATEGORY_CONFIG = "config.json"


def parse_delay_override(raw: Any, max_delay_ms: int = 5000) -> Optional[int]:
    """
    Validate a per-request delay override.

    Accepts ints, floats and numeric strings. Values outside
    ``[1, max_delay_ms)`` or that don't parse count as "no override".

    Returns:
        Override in milliseconds, or None
    """
    if raw is None or isinstance(raw, bool):
        return None

    try:
        value = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        return None

    if 0 < value < max_delay_ms:
        return value
    return None


class DelayResolver:
    """
    Resolves response delays from overrides and category configuration.

    Category configs are read through the fixture store, so edits to a
    ``config.json`` are picked up once the watcher invalidates it. Configs
    are never templated.
    """

    def __init__(
        self,
        store: FixtureStore,
        max_delay_ms: int = 5000,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize delay resolver.

        Args:
            store: Fixture store used to read category configs
            max_delay_ms: Exclusive upper bound for per-request overrides
            logger: Logger for malformed configs
        """
        self.store = store
        self.max_delay_ms = max_delay_ms
        self.logger = logger or logging.getLogger("stubtap.stub.delay")

    def resolve_delay(self, explicit_ms: Any = None, category: Any = None) -> int:
        """
        Resolve the delay for a response.

        Args:
            explicit_ms: Per-request override (``_delay``), raw value
            category: Request category (None if absent)

        Returns:
            Delay in milliseconds (>= 0)
        """
        override = parse_delay_override(explicit_ms, self.max_delay_ms)
        if override is not None:
            return override

        return self.category_delay(category)

    def category_delay(self, category: Any) -> int:
        """Read the configured delay for a category, or 0."""
        if category is None:
            return 0

        sanitized_category = sanitize_segment(category)
        if not sanitized_category:
            return 0

        config_path = f"{sanitized_category}/{CATEGORY_CONFIG}"
        if not is_existing_file(self.store.root_dir / config_path):
            return 0

        config = self.store.load(config_path)
        if not isinstance(config, dict):
            self.logger.warning(f"Ignoring malformed delay config: {config_path}", extra={'fixture_path': config_path})
            return 0

        delay = config.get('delay')
        if isinstance(delay, bool) or not isinstance(delay, (int, float)):
            if delay is not None:
                self.logger.warning(
                    f"Non-numeric delay in {config_path}: {delay!r}",
                    extra={'fixture_path': config_path}
                )
            return 0

        if not math.isfinite(delay) or delay <= 0:
            return 0

        self.logger.debug(
            f"Delay configuration loaded for {category}: {delay}ms",
            extra={'category': category, 'delay_ms': delay}
        )
        return int(delay)
