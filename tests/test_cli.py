"""
Tests for StubTap CLI

Tests the command-line interface including:
- Argument parsing
- The resolve command
- Fixture validation with the check command
"""

import json
from unittest.mock import patch

import pytest

from src.stubtap.cli import build_parser, check_fixtures, main

from conftest import write_fixture


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep a developer's .env and RESPONSE_DIR out of the CLI tests."""
    monkeypatch.chdir(tmp_path)
    for name in ('RESPONSE_DIR', 'LOOKUP_FIELD', 'DEFAULT_RESPONSE', 'PORT', 'HOST'):
        monkeypatch.delenv(name, raising=False)


class TestBuildParser:
    """Test argument parsing."""

    def test_serve_arguments(self):
        args = build_parser().parse_args([
            'serve', '--dir', 'fixtures', '-p', '8080', '--no-watch', '--lookup-field', 'user_id'
        ])

        assert args.command == 'serve'
        assert args.dir == 'fixtures'
        assert args.port == 8080
        assert args.no_watch is True
        assert args.no_admin is False
        assert args.lookup_field == 'user_id'
        assert args.env_file == '.env'

    def test_resolve_arguments(self):
        args = build_parser().parse_args(['resolve', '-c', 'user', '-l', '123', '--delay', '500'])

        assert args.category == 'user'
        assert args.lookup == '123'
        assert args.delay == '500'

    def test_invalid_log_level(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(['check', '--log-level', 'loud'])

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])

        assert exc.value.code == 1
        assert 'serve' in capsys.readouterr().out


class TestResolveCommand:
    """Test the resolve command."""

    def test_resolve_category_fixture(self, fixture_root, capsys):
        main(['resolve', '--dir', str(fixture_root), '-c', 'user', '-l', '123'])

        result = json.loads(capsys.readouterr().out)
        assert result['body']['user']['name'] == 'Alice'
        assert result['source'] == 'user/user_123.json'
        assert result['delayMs'] == 0

    def test_resolve_with_template_data(self, fixture_root, capsys):
        main([
            'resolve', '--dir', str(fixture_root),
            '-c', 'transaction', '-l', 'TXN1',
            '--data', '{"transactionId": "TXN1"}',
            '--delay', '500'
        ])

        result = json.loads(capsys.readouterr().out)
        assert result['body'] == {'id': 'TXN1'}
        assert result['delayMs'] == 500

    def test_resolve_rejects_non_object_data(self, fixture_root, capsys):
        with pytest.raises(SystemExit) as exc:
            main(['resolve', '--dir', str(fixture_root), '--data', '[1, 2]'])

        assert exc.value.code == 1
        assert 'JSON object' in capsys.readouterr().out


class TestCheckCommand:
    """Test fixture validation."""

    def test_check_fixtures_valid(self, fixture_root):
        assert check_fixtures(fixture_root) == []

    def test_check_fixtures_reports_problems(self, fixture_root):
        write_fixture(fixture_root, 'user/user_1.json', '{broken')
        write_fixture(fixture_root, 'order/config.json', {'delay': 'slow'})
        write_fixture(fixture_root, 'payment/config.json', [100])
        write_fixture(fixture_root, '.hidden/bad.json', '{broken')

        problems = check_fixtures(fixture_root)

        assert len(problems) == 3
        assert any(p.startswith('user/user_1.json') for p in problems)
        assert any('delay must be a number' in p for p in problems)
        assert any('must be a JSON object' in p for p in problems)

    def test_check_command_success(self, fixture_root, capsys):
        main(['check', '--dir', str(fixture_root)])

        out = capsys.readouterr().out
        assert 'All fixtures valid' in out
        assert '[transaction] default: yes, delay: 1500ms' in out
        assert '[order] default: no, delay: 0ms' in out

    def test_check_command_failure(self, fixture_root, capsys):
        write_fixture(fixture_root, 'broken.json', '{')

        with pytest.raises(SystemExit) as exc:
            main(['check', '--dir', str(fixture_root)])

        assert exc.value.code == 1
        assert 'broken.json' in capsys.readouterr().out

    def test_check_missing_directory(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(['check', '--dir', str(tmp_path / 'nope')])

        assert exc.value.code == 1


class TestServeCommand:
    """Test the serve command wiring."""

    @patch('src.stubtap.cli.StubServer')
    def test_serve_applies_flags(self, mock_server, fixture_root):
        main(['serve', '--dir', str(fixture_root), '--port', '9090', '--no-watch', '--no-admin'])

        config = mock_server.call_args.kwargs['config']
        assert config.response_dir == str(fixture_root)
        assert config.port == 9090
        assert config.watch_enabled is False
        assert config.admin_enabled is False
        mock_server.return_value.start.assert_called_once()
