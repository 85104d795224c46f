"""
Tests for StubTap Fixture Resolver

Tests fixture path resolution including:
- Candidate filename ordering
- Hierarchical (category) lookup
- Category and global default fallbacks
- Flat lookup at the fixture root
- Traversal-safe path construction
"""

import pytest

from src.stubtap.stub.resolver import (
    FixtureResolver,
    candidate_filenames,
    derive_field_prefix,
    KNOWN_PREFIXES
)

from src.stubtap.common.utils import is_within_root

from conftest import write_fixture


class TestCandidateFilenames:
    """Test candidate generation."""

    def test_default_order(self):
        """Test known prefixes come before the bare value."""
        candidates = candidate_filenames('123', 'id')

        assert candidates == [
            'user_123.json',
            'order_123.json',
            'resource_123.json',
            'payment_123.json',
            'transaction_123.json',
            '123.json',
        ]

    def test_derived_prefix_first(self):
        """Test lookup-field-derived prefix is tried first."""
        candidates = candidate_filenames('7', 'customer_ref')

        assert candidates[0] == 'customer_7.json'
        assert candidates[-1] == '7.json'
        assert len(candidates) == len(KNOWN_PREFIXES) + 2

    def test_derived_prefix_deduplicated(self):
        """Test a derived prefix equal to a known prefix appears once."""
        candidates = candidate_filenames('5', 'order_id')

        assert candidates[0] == 'order_5.json'
        assert candidates.count('order_5.json') == 1

    def test_ordering_is_stable(self):
        assert candidate_filenames('x', 'user_id') == candidate_filenames('x', 'user_id')

    @pytest.mark.parametrize('field,expected', [
        ('user_id', 'user_'),
        ('order_ref_id', 'order_'),
        ('id', None),
        ('', None),
        (None, None),
    ])
    def test_derive_field_prefix(self, field, expected):
        assert derive_field_prefix(field) == expected


class TestHierarchicalLookup:
    """Test lookups inside category directories."""

    def test_category_specific_fixture(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('123', 'user') == 'user/user_123.json'

    def test_category_default_when_no_match(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('777', 'user') == 'user/default.json'

    def test_category_default_returned_even_if_missing(self, fixture_root):
        """Test order/ has no default.json but its default path is still returned."""
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('111', 'order') == 'order/default.json'

    def test_missing_category_returns_global_default(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('42', 'unknown') == 'default.json'

    def test_missing_category_never_tries_flat_lookup(self, fixture_root):
        """Test user_42.json at the root is not used for a missing category."""
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('42', 'customers') == 'default.json'

    def test_first_match_wins(self, fixture_root):
        """Test prefixed fixture beats the bare-value fixture."""
        write_fixture(fixture_root, 'user/123.json', {'bare': True})
        resolver = FixtureResolver(str(fixture_root))

        assert resolver.resolve_path('123', 'user') == 'user/user_123.json'

    def test_prefix_order_within_category(self, fixture_root):
        """Test resource_ is tried before payment_."""
        write_fixture(fixture_root, 'misc/payment_9.json', {})
        write_fixture(fixture_root, 'misc/resource_9.json', {})
        resolver = FixtureResolver(str(fixture_root))

        assert resolver.resolve_path('9', 'misc') == 'misc/resource_9.json'

    def test_derived_prefix_in_category(self, fixture_root):
        write_fixture(fixture_root, 'user/customer_5.json', {})
        write_fixture(fixture_root, 'user/user_5.json', {})
        resolver = FixtureResolver(str(fixture_root), lookup_field='customer_id')

        assert resolver.resolve_path('5', 'user') == 'user/customer_5.json'

    def test_bare_value_match(self, fixture_root):
        write_fixture(fixture_root, 'order/ABC.json', {})
        resolver = FixtureResolver(str(fixture_root))

        assert resolver.resolve_path('ABC', 'order') == 'order/ABC.json'

    def test_directories_are_not_fixtures(self, fixture_root):
        (fixture_root / 'user' / 'user_888.json').mkdir()
        resolver = FixtureResolver(str(fixture_root))

        assert resolver.resolve_path('888', 'user') == 'user/default.json'


class TestAbsentLookupValue:
    """Test resolution without a lookup value."""

    def test_category_with_default(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path(None, 'user') == 'user/default.json'

    def test_category_without_default(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path(None, 'order') == 'default.json'

    def test_missing_category(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path(None, 'nothing') == 'default.json'

    def test_no_category(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path(None, None) == 'default.json'

    def test_empty_string_is_a_lookup_value(self, fixture_root):
        """Test '' is looked up rather than treated as absent."""
        write_fixture(fixture_root, 'user/user_.json', {'empty': True})
        resolver = FixtureResolver(str(fixture_root))

        assert resolver.resolve_path('', 'user') == 'user/user_.json'


class TestFlatLookup:
    """Test lookups at the fixture root."""

    def test_flat_prefixed_match(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('42', None) == 'user_42.json'

    def test_flat_bare_match(self, fixture_root):
        write_fixture(fixture_root, 'special.json', {})
        resolver = FixtureResolver(str(fixture_root))

        assert resolver.resolve_path('special', None) == 'special.json'

    def test_flat_no_match(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('nope', None) == 'default.json'

    def test_empty_category_treated_as_absent(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('42', '') == 'user_42.json'


class TestTraversalSafety:
    """Test that resolved paths stay under the root."""

    @pytest.mark.parametrize('lookup', [
        '../../etc/passwd',
        '%2e%2e%2f%2e%2e%2fetc',
        'abc\x00.json',
        '..',
        '/absolute/path',
    ])
    def test_lookup_value_cannot_escape(self, fixture_root, lookup):
        resolver = FixtureResolver(str(fixture_root))

        for category in (None, 'user', 'missing'):
            relative = resolver.resolve_path(lookup, category)
            assert is_within_root(fixture_root / relative, fixture_root)
            assert '..' not in relative.split('/')

    @pytest.mark.parametrize('category', ['..', '../..', '%2e%2e', 'user/../..', 'a\x00b'])
    def test_category_cannot_escape(self, fixture_root, category):
        resolver = FixtureResolver(str(fixture_root))

        relative = resolver.resolve_path('123', category)
        assert relative == 'default.json'
        assert is_within_root(fixture_root / relative, fixture_root)


class TestOverlongNames:
    """Test names longer than the filesystem allows."""

    def test_overlong_lookup_in_category(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('x' * 300, 'user') == 'user/default.json'

    def test_overlong_category(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('1', 'c' * 300) == 'default.json'
        assert resolver.resolve_path(None, 'c' * 300) == 'default.json'

    def test_overlong_flat_lookup(self, fixture_root):
        resolver = FixtureResolver(str(fixture_root))
        assert resolver.resolve_path('x' * 300, None) == 'default.json'
