"""
StubTap Template Engine

Rewrites ``{{request.<path>}}`` placeholders inside fixture documents with
values taken from the incoming request.

Only flat substitution is supported: no conditionals, loops or filters.
Placeholders that cannot be resolved are left in the output untouched.
"""

import json
import logging
import re
from typing import Any, Dict, Optional


PLACEHOLDER_PATTERN = re.compile(r'\{\{request\.([A-Za-z0-9_]+(?:\.[A-Za-z0-9_]+)*)\}\}')

_MISSING = object()


def get_nested_value(data: Any, path: str) -> Any:
    """
    Resolve a dot-separated path against nested request data.

    Each segment is a dict key; numeric segments also index into lists.

    Args:
        data: Request data
        path: Dot-separated path (e.g. ``"user.name"``)

    Returns:
        Value at the path, or the module-level ``_MISSING`` sentinel
    """
    current = data
    for segment in path.split('.'):
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and segment.isdigit() and int(segment) < len(current):
            current = current[int(segment)]
        else:
            return _MISSING
    return current


def stringify(value: Any) -> str:
    """Render a resolved value the way it would appear in a JSON body."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(',', ':'))
    return str(value)


class TemplateEngine:
    """
    Recursive placeholder substitution over JSON documents.

    The input document is never modified; a new structure is built on every
    call, so cached fixtures stay pristine.

    Example:
        engine = TemplateEngine()
        engine.apply(
            {'id': '{{request.transactionId}}'},
            {'transactionId': 'TXN1'}
        )
        # {'id': 'TXN1'}
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("stubtap.stub.templating")

    def apply(self, document: Any, request_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Apply substitution to every string leaf of a document.

        Args:
            document: Parsed fixture (dict, list or scalar)
            request_data: Merged query/body data from the request

        Returns:
            New document with placeholders substituted
        """
        request_data = request_data or {}

        if isinstance(document, str):
            return self.replace_placeholders(document, request_data)
        elif isinstance(document, dict):
            return {k: self.apply(v, request_data) for k, v in document.items()}
        elif isinstance(document, list):
            return [self.apply(item, request_data) for item in document]
        return document

    def replace_placeholders(self, template: str, request_data: Dict[str, Any]) -> str:
        """
        Substitute all placeholders in a single string.

        Substituted text is not scanned again.
        """
        def substitute(match: 're.Match') -> str:
            value = get_nested_value(request_data, match.group(1))
            if value is _MISSING or value is None:
                self.logger.debug(f"Template placeholder not found in request data: {match.group(0)}")
                return match.group(0)
            return stringify(value)

        return PLACEHOLDER_PATTERN.sub(substitute, template)

    @staticmethod
    def has_placeholders(document: Any) -> bool:
        """Check whether any string leaf contains a placeholder."""
        if isinstance(document, str):
            return PLACEHOLDER_PATTERN.search(document) is not None
        elif isinstance(document, dict):
            return any(TemplateEngine.has_placeholders(v) for v in document.values())
        elif isinstance(document, list):
            return any(TemplateEngine.has_placeholders(item) for item in document)
        return False
