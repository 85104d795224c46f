"""
StubTap URL Utilities

Shared helpers for pulling the category, lookup value, request data and
delay override out of an incoming request.
"""

import json
from urllib.parse import urlparse, parse_qs
from typing import Dict, Any, List, Optional


# Fields tried, in order, after the configured lookup field
LOOKUP_FALLBACK_FIELDS = [
    'user_id',
    'order_id',
    'payment_id',
    'resource_id',
    'transaction_id',
    'transactionId',
    'id',
]

DELAY_PARAM = '_delay'

READ_METHODS = {'GET', 'HEAD'}


class RequestExtractor:
    """Extracts resolution inputs from raw request attributes."""

    def __init__(self, lookup_field: str = 'id'):
        """
        Initialize extractor.

        Args:
            lookup_field: Configured primary lookup field name
        """
        self.lookup_field = lookup_field
        self.lookup_fields = self.lookup_precedence(lookup_field)

    @staticmethod
    def lookup_precedence(lookup_field: Optional[str]) -> List[str]:
        """
        Build the ordered list of field names used to find the lookup value.

        The configured field always comes first; duplicates keep their
        earliest position.
        """
        fields: List[str] = []
        for name in [lookup_field] + LOOKUP_FALLBACK_FIELDS:
            if name and name not in fields:
                fields.append(name)
        return fields

    @staticmethod
    def extract_category(path: str) -> Optional[str]:
        """
        Derive the category from a request path.

        The first non-empty segment is the category, except that a leading
        literal ``api`` segment is skipped.

        Args:
            path: URL path or full URL

        Returns:
            Raw (unsanitized) category, or None if the path has no
            meaningful segment

        Example:
            extract_category('/api/user')     # 'user'
            extract_category('/order/list')   # 'order'
            extract_category('/api')          # None
        """
        parsed_path = urlparse(path).path if '://' in path else path.split('?', 1)[0]
        segments = [s for s in parsed_path.split('/') if s]

        if segments and segments[0] == 'api':
            segments = segments[1:]

        return segments[0] if segments else None

    @staticmethod
    def flatten_query(query_string: str) -> Dict[str, Any]:
        """
        Parse a query string, collapsing single-valued parameters.

        Args:
            query_string: Raw query string (without ``?``)

        Returns:
            Dict of param -> str for single values, param -> list otherwise
        """
        params = {}
        for key, values in parse_qs(query_string, keep_blank_values=True).items():
            # Use first value if single, otherwise use list
            params[key] = values[0] if len(values) == 1 else values
        return params

    @staticmethod
    def parse_body(body: bytes, content_type: str = '') -> Any:
        """
        Parse a request body as JSON or URL-encoded form data.

        Args:
            body: Raw body bytes
            content_type: Request Content-Type header

        Returns:
            Parsed body, or None if the body is empty or cannot be decoded
        """
        if not body:
            return None

        try:
            text = body.decode('utf-8')
        except UnicodeDecodeError:
            return None

        if 'application/x-www-form-urlencoded' in content_type:
            return RequestExtractor.flatten_query(text)

        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return None

    def extract_lookup_value(
        self,
        method: str,
        query: Dict[str, Any],
        body: Any = None
    ) -> Optional[Any]:
        """
        Find the lookup value for a request.

        Reads check only the query string. Mutating requests check the body
        first (when it is an object) and then the query string. A field
        counts as found when it is present with a non-None value, so empty
        strings and ``0`` are returned rather than skipped.

        Args:
            method: HTTP method
            query: Flattened query params
            body: Parsed request body

        Returns:
            Lookup value, or None if no precedence field is present
        """
        sources = [query]
        if method.upper() not in READ_METHODS and isinstance(body, dict):
            sources = [body, query]

        for source in sources:
            for name in self.lookup_fields:
                value = source.get(name)
                # Repeated query params arrive as lists; the first one counts
                if isinstance(value, list):
                    value = value[0] if value else None
                if value is not None:
                    return value

        return None

    @staticmethod
    def merge_request_data(query: Dict[str, Any], body: Any = None) -> Dict[str, Any]:
        """
        Merge query params and body fields into the template context.

        Body keys win over query keys. Non-object bodies contribute nothing.
        """
        data = dict(query)
        if isinstance(body, dict):
            data.update(body)
        return data

    @staticmethod
    def extract_delay(method: str, query: Dict[str, Any], body: Any = None) -> Optional[Any]:
        """
        Find the per-request delay override.

        The ``_delay`` query parameter is used when present; mutating
        requests may also carry it as a body field.

        Returns:
            Raw override value (validated later by the delay resolver)
        """
        if DELAY_PARAM in query:
            return query[DELAY_PARAM]
        if method.upper() not in READ_METHODS and isinstance(body, dict):
            return body.get(DELAY_PARAM)
        return None
