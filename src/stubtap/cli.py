"""
StubTap CLI

Command-line interface for the StubTap stub server.

Commands:
    serve       - Start the stub HTTP server
    resolve     - Resolve a single request against the fixture root
    check       - Validate every fixture under the fixture root

Examples:
    # Serve ./responses on port 3000
    stubtap serve

    # Serve another directory with a custom lookup field
    stubtap serve --dir fixtures --lookup-field user_id --port 8080

    # See what a request would get
    stubtap resolve --category user --lookup 123

    # Validate fixtures
    stubtap check --dir fixtures
"""

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from .common import safe_json_parse
from .stub import StubConfig, StubServer, ResponseEngine, configure_logging
from .stub.delay import CATEGORY_CONFIG


def _build_config(args) -> StubConfig:
    """Environment config with command-line flags layered on top."""
    config = StubConfig.from_env(env_file=args.env_file)

    overrides = {}
    if args.dir:
        overrides['response_dir'] = args.dir
    if args.lookup_field:
        overrides['lookup_field'] = args.lookup_field
    if args.default:
        overrides['default_response'] = args.default
    if args.log_level:
        overrides['log_level'] = args.log_level
    if getattr(args, 'host', None):
        overrides['host'] = args.host
    if getattr(args, 'port', None):
        overrides['port'] = args.port
    if getattr(args, 'no_watch', False):
        overrides['watch_enabled'] = False
    if getattr(args, 'no_admin', False):
        overrides['admin_enabled'] = False

    return replace(config, **overrides)


def _create_engine(config: StubConfig) -> ResponseEngine:
    return ResponseEngine(
        response_dir=config.response_dir,
        default_response=config.default_response,
        lookup_field=config.lookup_field,
        max_delay_ms=config.max_delay_ms
    )


def cmd_serve(args):
    """
    Start the stub HTTP server.

    Args:
        args: Parsed command-line arguments
    """
    config = _build_config(args)
    configure_logging(config.log_level)

    print(f"🎭 StubTap Stub Server")

    try:
        server = StubServer(config=config)
    except OSError as e:
        print(f"❌ Failed to prepare response directory: {e}")
        sys.exit(1)

    # Start server (blocking)
    try:
        server.start()
    except KeyboardInterrupt:
        print("\n\n👋 Stub server stopped")


def cmd_resolve(args):
    """
    Resolve one request and print the result as JSON.

    Args:
        args: Parsed command-line arguments
    """
    config = _build_config(args)
    configure_logging(config.log_level)

    request_data = {}
    if args.data:
        request_data = safe_json_parse(args.data)
        if not isinstance(request_data, dict):
            print("❌ --data must be a JSON object")
            sys.exit(1)

    engine = _create_engine(config)
    result = engine.resolve(args.lookup, args.category, request_data, args.delay)
    print(json.dumps(result.to_dict(), indent=2))


def check_fixtures(root_dir: Path) -> List[str]:
    """
    Parse every JSON file under a fixture root.

    Args:
        root_dir: Fixture root directory

    Returns:
        List of problems, one line per invalid file
    """
    problems = []
    for path in sorted(root_dir.rglob('*.json')):
        relative = path.relative_to(root_dir)
        if any(part.startswith('.') for part in relative.parts):
            continue
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            problems.append(f"{relative.as_posix()}: {e}")
            continue

        if path.name == CATEGORY_CONFIG and path.parent != root_dir:
            delay = data.get('delay') if isinstance(data, dict) else None
            if not isinstance(data, dict):
                problems.append(f"{relative.as_posix()}: category config must be a JSON object")
            elif delay is not None and (isinstance(delay, bool) or not isinstance(delay, (int, float))):
                problems.append(f"{relative.as_posix()}: delay must be a number")
    return problems


def cmd_check(args):
    """
    Validate fixtures and print a summary.

    Args:
        args: Parsed command-line arguments
    """
    config = _build_config(args)
    root_dir = Path(config.response_dir).resolve()

    print(f"🔍 StubTap Fixture Check")
    print(f"   Response dir: {root_dir}")

    if not root_dir.is_dir():
        print(f"❌ Response directory not found: {root_dir}")
        sys.exit(1)

    fixture_count = sum(1 for _ in root_dir.rglob('*.json'))
    default_path = root_dir / config.default_response
    print(f"   Fixtures: {fixture_count}")
    print(f"   Global default: {'present' if default_path.is_file() else 'MISSING'}")

    engine = _create_engine(config)
    for category_dir in sorted(p for p in root_dir.iterdir() if p.is_dir() and not p.name.startswith('.')):
        delay = engine.delays.category_delay(category_dir.name)
        has_default = (category_dir / config.default_response).is_file()
        print(f"   [{category_dir.name}] default: {'yes' if has_default else 'no'}, delay: {delay}ms")

    problems = check_fixtures(root_dir)
    if problems:
        print()
        for problem in problems:
            print(f"❌ {problem}")
        sys.exit(1)

    print()
    print("✓ All fixtures valid")


def _add_common_arguments(parser: argparse.ArgumentParser):
    parser.add_argument('-d', '--dir', help='Response directory (default: $RESPONSE_DIR or ./responses)')
    parser.add_argument('--lookup-field', help='Primary lookup field (default: $LOOKUP_FIELD or id)')
    parser.add_argument('--default', help='Default response filename (default: default.json)')
    parser.add_argument('--log-level', choices=['debug', 'info', 'warning', 'error'],
                        help='Log level (default: $LOG_LEVEL or info)')
    parser.add_argument('--env-file', default='.env', help='dotenv file to load (default: .env)')


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog='stubtap',
        description="StubTap - Hot-reloading JSON stub server for API testing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the stub server
  %(prog)s serve --dir responses --port 3000

  # Resolve a request without starting the server
  %(prog)s resolve --category transaction --lookup TXN1 --data '{"transactionId": "TXN1"}'

  # Validate fixtures
  %(prog)s check --dir responses
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Start stub HTTP server')
    _add_common_arguments(serve_parser)
    serve_parser.add_argument('--host', help='Host to bind (default: $HOST or 127.0.0.1)')
    serve_parser.add_argument('-p', '--port', type=int, help='Port to bind (default: $PORT or 3000)')
    serve_parser.add_argument('--no-watch', action='store_true', help='Disable hot reload')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')

    # --- RESOLVE command ---
    resolve_parser = subparsers.add_parser('resolve', help='Resolve one request')
    _add_common_arguments(resolve_parser)
    resolve_parser.add_argument('-c', '--category', help='Request category (e.g. user)')
    resolve_parser.add_argument('-l', '--lookup', help='Lookup value (e.g. 123)')
    resolve_parser.add_argument('--data', help='Request data as a JSON object')
    resolve_parser.add_argument('--delay', help='Per-request delay override in ms')

    # --- CHECK command ---
    check_parser = subparsers.add_parser('check', help='Validate fixtures')
    _add_common_arguments(check_parser)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Dispatch to command handler
    if args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'resolve':
        cmd_resolve(args)
    elif args.command == 'check':
        cmd_check(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
