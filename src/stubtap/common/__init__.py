"""
StubTap Common Utilities

Shared utilities and helpers used across StubTap modules.
"""

from .utils import (
    sanitize_segment,
    safe_json_parse,
    is_within_root,
    is_existing_file,
    is_existing_dir,
    relative_key
)
from .url_utils import RequestExtractor, LOOKUP_FALLBACK_FIELDS, DELAY_PARAM

__all__ = [
    'sanitize_segment',
    'safe_json_parse',
    'is_within_root',
    'is_existing_file',
    'is_existing_dir',
    'relative_key',
    'RequestExtractor',
    'LOOKUP_FALLBACK_FIELDS',
    'DELAY_PARAM',
]
