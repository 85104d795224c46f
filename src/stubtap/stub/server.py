"""
StubTap Stub Server

FastAPI-based HTTP stub server that serves JSON fixtures from disk.

Features:
- Category-aware fixture lookup with default fallbacks
- Request-driven placeholder templating
- Per-category and per-request response delays
- Hot reload of fixtures through filesystem watching
- Admin API for metrics and cache control
"""

from __future__ import annotations  # Enable forward references for type hints

import asyncio
import json
import time
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
import uvicorn

from .config import StubConfig, configure_logging, normalize_log_level
from .engine import ResponseEngine, ResolvedResponse
from .watcher import FixtureWatcher
from ..common import RequestExtractor


STUB_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@dataclass
class StubMetrics:
    """Track stub server metrics."""

    total_requests: int = 0
    fixture_responses: int = 0
    default_responses: int = 0
    error_responses: int = 0
    delayed_responses: int = 0
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())

    def record(self, result: ResolvedResponse, default_response: str):
        """Count a resolved response."""
        self.total_requests += 1
        if result.is_error:
            self.error_responses += 1
        elif result.source == default_response:
            self.default_responses += 1
        else:
            self.fixture_responses += 1
        if result.delay_ms > 0:
            self.delayed_responses += 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        return {
            'total_requests': self.total_requests,
            'fixture_responses': self.fixture_responses,
            'default_responses': self.default_responses,
            'error_responses': self.error_responses,
            'delayed_responses': self.delayed_responses,
            'uptime_seconds': round(uptime_seconds, 2),
            'start_time': self.start_time
        }


class StubServer:
    """
    FastAPI-based stub server for serving JSON fixtures.

    Example:
        # Serve ./responses on port 3000
        server = StubServer()
        server.start()

        # With custom config
        config = StubConfig(
            response_dir='fixtures',
            lookup_field='user_id',
            port=8080
        )
        server = StubServer(config=config)
        server.start()
    """

    def __init__(
        self,
        config: Optional[StubConfig] = None,
        engine: Optional[ResponseEngine] = None
    ):
        """
        Initialize stub server.

        Args:
            config: Optional StubConfig for server behavior
            engine: Optional ResponseEngine instance (will create if None)
        """
        self.config = config or StubConfig()
        self.metrics = StubMetrics()

        # Setup logging first (before touching the fixture root)
        self.logger = logging.getLogger("stubtap.stub.server")
        self.logger.setLevel(normalize_log_level(self.config.log_level).upper())

        self.engine = engine or ResponseEngine(
            response_dir=self.config.response_dir,
            default_response=self.config.default_response,
            lookup_field=self.config.lookup_field,
            max_delay_ms=self.config.max_delay_ms
        )
        self.engine.ensure_fixture_root()

        self.extractor = RequestExtractor(self.config.lookup_field)
        self.watcher = FixtureWatcher(str(self.engine.root_dir), self.engine.handle_fs_event)

        # Setup FastAPI app
        self.app = self._create_app()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Start the watcher with the app, stop it before the store goes away."""
        if self.config.watch_enabled:
            await self.watcher.start()
        try:
            yield
        finally:
            await self.watcher.stop()
            self.engine.shutdown()
            self.logger.info("Stub server shut down")

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="StubTap Stub Server",
            description="HTTP stub server serving JSON fixtures from disk",
            version="1.0.0",
            lifespan=self._lifespan
        )

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            start_time = time.time()
            response = await call_next(request)
            elapsed_ms = (time.time() - start_time) * 1000
            self.logger.info(
                f"Request processed: {request.method} {request.url.path} "
                f"{response.status_code} ({elapsed_ms:.1f}ms)",
                extra={
                    'method': request.method,
                    'url': str(request.url),
                    'status_code': response.status_code,
                    'duration_ms': round(elapsed_ms, 1)
                }
            )
            return response

        @app.get("/health")
        async def health():
            """Health check."""
            return JSONResponse(content={
                'status': 'healthy',
                'timestamp': datetime.now().isoformat(),
                'config': self.config.to_dict()
            })

        # Admin API routes
        if self.config.admin_enabled:
            @app.get(f"{self.config.admin_prefix}/metrics")
            async def get_metrics():
                """Get server metrics."""
                return JSONResponse(content=self.metrics.to_dict())

            @app.post(f"{self.config.admin_prefix}/reset")
            async def reset_metrics():
                """Reset metrics."""
                self.metrics = StubMetrics()
                return JSONResponse(content={'status': 'reset'})

            @app.get(f"{self.config.admin_prefix}/cache")
            async def get_cache_stats():
                """Get fixture cache statistics."""
                stats = self.engine.store.stats()
                stats['watching'] = self.watcher.running
                return JSONResponse(content=stats)

            @app.delete(f"{self.config.admin_prefix}/cache")
            async def clear_cache():
                """Clear the fixture cache."""
                cleared = self.engine.store.clear()
                return JSONResponse(content={
                    'status': 'cleared',
                    'entries_cleared': cleared
                })

        # Main catch-all route for stubbing
        @app.api_route("/{path:path}", methods=STUB_METHODS)
        async def stub_request(request: Request, path: str):
            """Handle incoming requests and serve fixture responses."""
            return await self._handle_request(request, path)

        return app

    async def _handle_request(self, request: Request, path: str) -> Response:
        """
        Handle incoming request and serve a fixture response.

        Args:
            request: FastAPI Request object
            path: Request path

        Returns:
            JSON response with the resolved fixture
        """
        method = request.method
        try:
            body = await request.body()
            parsed_body = self.extractor.parse_body(body, request.headers.get('content-type', ''))
            if body and parsed_body is None:
                self.logger.debug(f"Ignoring undecodable request body for {method} /{path}")

            query = self.extractor.flatten_query(request.url.query)
            category = self.extractor.extract_category(path)
            lookup_value = self.extractor.extract_lookup_value(method, query, parsed_body)
            request_data = self.extractor.merge_request_data(query, parsed_body)
            explicit_delay = self.extractor.extract_delay(method, query, parsed_body)

            self.logger.debug(
                f"Processing request: {method} /{path} "
                f"(category: {category}, lookup {self.config.lookup_field}: {lookup_value})"
            )

            result = self.engine.resolve(lookup_value, category, request_data, explicit_delay)
        except Exception as e:
            self.logger.error(
                f"Error processing request {method} /{path}: {e}",
                exc_info=True,
                extra={'method': method, 'request_path': f"/{path}"}
            )
            return JSONResponse(
                content={'status': 'error', 'message': 'Internal server error'},
                status_code=500
            )

        self.metrics.record(result, self.config.default_response)
        self.logger.info(
            f"Response determined: {method} /{path} -> {result.source} (delay: {result.delay_ms}ms)",
            extra={
                'method': method,
                'request_path': f"/{path}",
                'source': result.source,
                'delay_ms': result.delay_ms
            }
        )

        # Apply delay if configured
        if result.delay_ms > 0:
            await asyncio.sleep(result.delay_ms / 1000)

        return Response(
            content=json.dumps(result.body),
            status_code=200,
            media_type="application/json",
            headers={
                'X-StubTap-Source': result.source or 'none',
                'X-StubTap-Delay-Ms': str(result.delay_ms)
            }
        )

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = False
    ):
        """
        Start the stub server.

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable uvicorn access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port

        print(f"🚀 StubTap Stub Server starting...")
        print(f"   Host: {actual_host}:{actual_port}")
        print(f"   Response dir: {self.engine.root_dir}")
        print(f"   Lookup field: {self.config.lookup_field}")
        print(f"   Default file: {self.config.default_response}")
        print(f"   Hot reload: {'enabled' if self.config.watch_enabled else 'disabled'}")
        print(f"   Health check: http://{actual_host}:{actual_port}/health")

        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/metrics")

        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=normalize_log_level(self.config.log_level),
            access_log=access_log
        )

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_stub_server(
    response_dir: str = "./responses",
    host: str = "127.0.0.1",
    port: int = 3000,
    lookup_field: str = "id",
    default_response: str = "default.json",
    watch_enabled: bool = True,
    admin_enabled: bool = True,
    log_level: str = "info"
) -> StubServer:
    """
    Convenience function to create and configure a stub server.

    Args:
        response_dir: Fixture root directory
        host: Host to bind to
        port: Port to bind to
        lookup_field: Primary request field used to pick fixtures
        default_response: Default fixture filename
        watch_enabled: Watch fixtures for hot reload
        admin_enabled: Expose the admin API
        log_level: Log level name

    Returns:
        Configured StubServer instance

    Example:
        server = create_stub_server('responses', port=8080, lookup_field='user_id')
        server.start()
    """
    configure_logging(log_level)

    config = StubConfig(
        host=host,
        port=port,
        response_dir=response_dir,
        lookup_field=lookup_field,
        default_response=default_response,
        watch_enabled=watch_enabled,
        admin_enabled=admin_enabled,
        log_level=log_level
    )

    return StubServer(config=config)
