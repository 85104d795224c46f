"""
StubTap Stub Server Module

Stub HTTP server functionality for serving JSON fixtures from disk.

This module provides:
- FastAPI-based stub server
- Fixture path resolution with category and default fallbacks
- Hot-reloaded fixture cache
- Request-driven response templating
- Response delay simulation
"""

from .server import StubServer, StubMetrics, create_stub_server
from .config import StubConfig, configure_logging, normalize_log_level
from .engine import ResponseEngine, ResolvedResponse, ERROR_BODY
from .resolver import FixtureResolver, candidate_filenames, KNOWN_PREFIXES
from .store import FixtureStore
from .watcher import FixtureWatcher
from .delay import DelayResolver, parse_delay_override
from .templating import TemplateEngine

__all__ = [
    # Server
    'StubServer',
    'StubMetrics',
    'StubConfig',
    'configure_logging',
    'normalize_log_level',
    'create_stub_server',

    # Engine
    'ResponseEngine',
    'ResolvedResponse',
    'ERROR_BODY',
    'FixtureResolver',
    'candidate_filenames',
    'KNOWN_PREFIXES',
    'FixtureStore',
    'FixtureWatcher',
    'DelayResolver',
    'parse_delay_override',
    'TemplateEngine',
]

__version__ = '1.0.0'
