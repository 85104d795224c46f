"""
StubTap Fixture Resolver

Maps a (category, lookup value) pair onto a fixture path relative to the
fixture root.

Lookup order:
- Hierarchical: ``<category>/<prefix><value>.json`` inside an existing
  category directory, then the category's own default file
- Flat: ``<prefix><value>.json`` at the root when no category is given
- Global default file when nothing else applies
"""

from pathlib import Path
from typing import List, Optional, Any

from ..common import sanitize_segment, is_existing_file, is_existing_dir


# Tried in this order after the lookup-field-derived prefix
KNOWN_PREFIXES = ['user_', 'order_', 'resource_', 'payment_', 'transaction_']


def derive_field_prefix(lookup_field: Optional[str]) -> Optional[str]:
    """
    Derive a filename prefix from the lookup field name.

    Example:
        derive_field_prefix('user_id')  # 'user_'
        derive_field_prefix('id')       # None
    """
    if lookup_field and '_' in lookup_field:
        return lookup_field.split('_', 1)[0] + '_'
    return None


def candidate_filenames(sanitized_value: str, lookup_field: Optional[str] = None) -> List[str]:
    """
    Build the ordered list of candidate fixture filenames for a lookup value.

    Order: field-derived prefix, the known prefixes, then the bare value.
    The same list drives both hierarchical and flat searches, and the first
    existing candidate wins.

    Args:
        sanitized_value: Lookup value already passed through sanitize_segment
        lookup_field: Configured lookup field name

    Returns:
        Candidate filenames, each ending in ``.json``
    """
    prefixes: List[str] = []
    derived = derive_field_prefix(lookup_field)
    if derived:
        prefixes.append(derived)
    for prefix in KNOWN_PREFIXES:
        if prefix not in prefixes:
            prefixes.append(prefix)
    prefixes.append('')

    return [f"{prefix}{sanitized_value}.json" for prefix in prefixes]


class FixtureResolver:
    """
    Resolves requests to fixture paths under a fixture root.

    Example:
        resolver = FixtureResolver('responses', lookup_field='user_id')
        resolver.resolve_path('123', 'user')   # 'user/user_123.json'
        resolver.resolve_path('777', 'user')   # 'user/default.json'
        resolver.resolve_path('1', 'missing')  # 'default.json'
    """

    def __init__(
        self,
        root_dir: str,
        default_response: str = "default.json",
        lookup_field: Optional[str] = "id"
    ):
        """
        Initialize resolver.

        Args:
            root_dir: Fixture root directory
            default_response: Default fixture filename (global and per category)
            lookup_field: Configured lookup field name
        """
        self.root_dir = Path(root_dir).resolve()
        self.default_response = default_response
        self.lookup_field = lookup_field

    def category_default(self, category: Any) -> str:
        """Relative path of a category's default fixture."""
        return f"{sanitize_segment(category)}/{self.default_response}"

    def category_exists(self, category: Any) -> bool:
        """Check whether a category directory exists under the root."""
        sanitized_category = sanitize_segment(category)
        return bool(sanitized_category) and is_existing_dir(self.root_dir / sanitized_category)

    def resolve_path(self, lookup_value: Any = None, category: Any = None) -> str:
        """
        Resolve a fixture path for a request.

        Args:
            lookup_value: Lookup value from the request (None if absent)
            category: Category from the request path (None if absent)

        Returns:
            Fixture path relative to the root. The returned file is not
            guaranteed to exist; loading handles the fallback.
        """
        # An empty category would resolve to the root itself
        if category is not None and not sanitize_segment(category):
            category = None

        if lookup_value is None:
            if category is not None and self.category_exists(category):
                category_default = self.category_default(category)
                if is_existing_file(self.root_dir / category_default):
                    return category_default
            return self.default_response

        sanitized_value = sanitize_segment(lookup_value)

        if category is not None:
            if not self.category_exists(category):
                return self.default_response

            sanitized_category = sanitize_segment(category)
            match = self._find_in_directory(self.root_dir / sanitized_category, sanitized_value)
            if match:
                return f"{sanitized_category}/{match}"

            return self.category_default(category)

        match = self._find_in_directory(self.root_dir, sanitized_value)
        return match or self.default_response

    def _find_in_directory(self, directory: Path, sanitized_value: str) -> Optional[str]:
        """Return the first candidate filename that exists in ``directory``."""
        for filename in candidate_filenames(sanitized_value, self.lookup_field):
            if is_existing_file(directory / filename):
                return filename
        return None
