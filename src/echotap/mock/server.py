"""
echotap Mock Server

FastAPI-based HTTP mock server that serves stub responses and runs them
through the echotap response transformers.

Features:
- Stub matching (exact URL, URL regex, URL path)
- ``body-transformer`` and ``template-body-transformer`` per stub
- Process-wide session, counter and webhook client shared by all requests
- Admin API for mappings, metrics and session inspection
"""

from __future__ import annotations  # Enable forward references for type hints

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Any, Optional, Union

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
import uvicorn

from .stubs import StubLoader, StubMapping, StubMatcher
from ..common import URLParts
from ..transform import (
    BodyTransformer,
    Counter,
    IncomingRequest,
    OutboundClient,
    ResponseDefinition,
    ResponseTransformer,
    SessionStore,
    TemplateBodyTransformer,
    TemplateUtils,
    TransformError,
    WebhookConfig
)


@dataclass
class MockConfig:
    """Configuration for mock server behavior."""

    # Fallback behavior
    fallback_status: int = 404
    fallback_body: str = '{"error": "No stub mapping matches the request"}'

    # Server options
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "info"
    verbose_mode: bool = False  # Print each request and its stub to the console

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"

    # Outbound webhooks triggered from templates
    webhook: WebhookConfig = field(default_factory=WebhookConfig)


@dataclass
class MockMetrics:
    """Track mock server metrics."""

    total_requests: int = 0
    matched_requests: int = 0
    unmatched_requests: int = 0
    transform_failures: int = 0
    start_time: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        uptime_seconds = (datetime.now() - datetime.fromisoformat(self.start_time)).total_seconds()
        return {
            'total_requests': self.total_requests,
            'matched_requests': self.matched_requests,
            'unmatched_requests': self.unmatched_requests,
            'transform_failures': self.transform_failures,
            'match_rate': round((self.matched_requests / self.total_requests * 100) if self.total_requests > 0 else 0, 2),
            'uptime_seconds': round(uptime_seconds, 2),
            'start_time': self.start_time
        }


class MockServer:
    """
    FastAPI-based mock server for stub mappings with dynamic bodies.

    Session, counter, template utils and the webhook client are created once
    here (or injected) and shared by every request for the server's lifetime.

    Example:
        server = MockServer('mappings.json')
        server.start(host='0.0.0.0', port=8080)

        # With custom config
        config = MockConfig(port=9090, verbose_mode=True)
        server = MockServer('mappings.yaml', config=config)
        server.start()
    """

    def __init__(
        self,
        stubs: Union[str, List[StubMapping]],
        config: Optional[MockConfig] = None,
        session: Optional[SessionStore] = None,
        counter: Optional[Counter] = None,
        utils: Optional[TemplateUtils] = None,
        webhook_client: Optional[OutboundClient] = None,
        extra_transformers: Optional[List[ResponseTransformer]] = None
    ):
        """
        Initialize mock server.

        Args:
            stubs: Path to a JSON/YAML stub file, or already-built mappings
            config: Optional MockConfig for server behavior
            session: Process-wide session store (created if None)
            counter: Process-wide counter (created if None)
            utils: Template helper namespace (created if None)
            webhook_client: Outbound webhook client (created if None)
            extra_transformers: Additional transformers to register by name
        """
        self.config = config or MockConfig()
        self.metrics = MockMetrics()

        # Setup logging first (before loading stubs)
        self.logger = logging.getLogger("echotap.mock")
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        self.stubs = self._load_stubs(stubs)
        self.matcher = StubMatcher(self.stubs)

        self.session = session if session is not None else SessionStore()
        self.counter = counter if counter is not None else Counter()
        self.utils = utils if utils is not None else TemplateUtils()
        self.webhook_client = webhook_client if webhook_client is not None else OutboundClient(self.config.webhook)

        self.transformers: Dict[str, ResponseTransformer] = {}
        for transformer in [
            BodyTransformer(),
            TemplateBodyTransformer(
                session=self.session,
                counter=self.counter,
                utils=self.utils,
                http=self.webhook_client
            ),
            *(extra_transformers or [])
        ]:
            self.transformers[transformer.name] = transformer

        # Setup FastAPI app
        self.app = self._create_app()

    def _load_stubs(self, stubs: Union[str, List[StubMapping]]) -> List[StubMapping]:
        if isinstance(stubs, (list, tuple)):
            return list(stubs)
        mappings = StubLoader(str(stubs)).load()
        self.logger.info(f"Loaded {len(mappings)} stub mappings from {stubs}")
        return mappings

    def _create_app(self) -> FastAPI:
        """Create FastAPI application with routes."""
        app = FastAPI(
            title="echotap Mock Server",
            description="Mock HTTP server with request-derived response bodies",
            version="1.0.0"
        )

        # Admin API routes
        if self.config.admin_enabled:
            @app.get(f"{self.config.admin_prefix}/metrics")
            async def get_metrics():
                """Get server metrics."""
                return JSONResponse(content=self.metrics.to_dict())

            @app.get(f"{self.config.admin_prefix}/mappings")
            async def list_mappings():
                """List all stub mappings."""
                return JSONResponse(content={
                    'total': len(self.stubs),
                    'mappings': [stub.to_dict() for stub in self.stubs]
                })

            @app.post(f"{self.config.admin_prefix}/reset")
            async def reset_metrics():
                """Reset metrics. Session and counter live as long as the process."""
                self.metrics = MockMetrics()
                return JSONResponse(content={'status': 'reset'})

            @app.get(f"{self.config.admin_prefix}/session")
            async def get_session():
                """Get the current session contents and counter value."""
                snapshot = self.session.snapshot()
                return JSONResponse(content={
                    'total': len(snapshot),
                    'counter': self.counter.get(),
                    'session': json.loads(json.dumps(snapshot, default=str))
                })

        # Main catch-all route for mocking
        @app.api_route("/{path:path}", methods=["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"])
        async def mock_request(request: Request, path: str):
            """Handle incoming requests and serve stub responses."""
            return await self._handle_request(request)

        return app

    async def _handle_request(self, request: Request) -> Response:
        """
        Handle incoming request and serve the matching stub.

        Args:
            request: FastAPI Request object

        Returns:
            FastAPI Response with the (transformed) stub body
        """
        start_time = time.time()
        self.metrics.total_requests += 1

        absolute_url = str(request.url)
        incoming = IncomingRequest(
            method=request.method,
            url=URLParts.relative_url(absolute_url),
            absolute_url=absolute_url,
            headers=list(request.headers.items()),
            body=await request.body()
        )

        self.logger.debug(f"Incoming: {incoming.method} {incoming.absolute_url}")

        if self.config.verbose_mode:
            timestamp = datetime.now().strftime("%H:%M:%S")
            print(f"[{timestamp}] {incoming.method} {incoming.url}")

        stub = self.matcher.find(incoming.method, incoming.url)
        if stub is None:
            self.metrics.unmatched_requests += 1
            self.logger.warning(f"No stub mapping for {incoming.method} {incoming.url}")
            return Response(
                content=self.config.fallback_body,
                status_code=self.config.fallback_status,
                media_type="application/json",
                headers={'X-Echotap-Matched': 'false'}
            )

        self.metrics.matched_requests += 1

        try:
            definition = self.apply_transformers(incoming, stub.response)
        except TransformError as e:
            self.metrics.transform_failures += 1
            self.logger.exception(f"Transform failed for {incoming.method} {incoming.url}: {e}")
            return JSONResponse(
                content={'error': str(e), 'type': type(e).__name__},
                status_code=500,
                headers={'X-Echotap-Matched': 'true'}
            )

        if self.config.verbose_mode:
            elapsed_ms = (time.time() - start_time) * 1000
            print(f"[{datetime.now().strftime('%H:%M:%S')}]   Response: {definition.status} ({elapsed_ms:.1f}ms)")

        return self._create_response(definition)

    def apply_transformers(self, request: IncomingRequest, definition: ResponseDefinition) -> ResponseDefinition:
        """
        Run the stub's transformers, in the order the stub lists them.

        Raises:
            TransformError: Propagated from any transformer
        """
        names = list(definition.transformers)
        for name, transformer in self.transformers.items():
            if transformer.apply_globally and name not in names:
                names.append(name)

        for name in names:
            transformer = self.transformers.get(name)
            if transformer is None:
                self.logger.warning(f"Stub references unknown transformer '{name}'")
                continue
            definition = transformer.transform(request, definition, definition.transformer_parameters)
        return definition

    def _create_response(self, definition: ResponseDefinition) -> Response:
        """Create FastAPI Response from a response definition."""
        # Filter headers that FastAPI shouldn't set manually
        headers_to_skip = {'content-length', 'transfer-encoding', 'connection'}
        filtered_headers = {
            k: v for k, v in definition.headers.items()
            if k.lower() not in headers_to_skip
        }
        filtered_headers['X-Echotap-Matched'] = 'true'

        content_type = next(
            (v for k, v in definition.headers.items() if k.lower() == 'content-type'),
            None
        )

        return Response(
            content=definition.body or '',
            status_code=definition.status,
            headers=filtered_headers,
            media_type=content_type
        )

    def start(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        access_log: bool = True
    ):
        """
        Start the mock server (blocking).

        Args:
            host: Host to bind to (overrides config)
            port: Port to bind to (overrides config)
            access_log: Enable access logging
        """
        actual_host = host or self.config.host
        actual_port = port or self.config.port

        print(f"echotap Mock Server starting...")
        print(f"   Host: {actual_host}:{actual_port}")
        print(f"   Stub mappings loaded: {len(self.stubs)}")
        print(f"   Transformers: {', '.join(self.transformers)}")

        if self.config.admin_enabled:
            print(f"   Admin API: http://{actual_host}:{actual_port}{self.config.admin_prefix}/metrics")

        if self.config.webhook.trust_all_certificates:
            print(f"   WARNING: webhook certificate validation disabled (mock use only)")

        print()

        uvicorn.run(
            self.app,
            host=actual_host,
            port=actual_port,
            log_level=self.config.log_level,
            access_log=access_log
        )

    def close(self):
        """Release the webhook worker pool."""
        self.webhook_client.shutdown(wait=False)

    def get_app(self) -> FastAPI:
        """
        Get the FastAPI app instance for testing or custom deployment.

        Returns:
            FastAPI application instance
        """
        return self.app


def create_mock_server(
    stubs_file: str,
    host: str = "127.0.0.1",
    port: int = 8080,
    log_level: str = "info",
    verbose_mode: bool = False,
    admin_enabled: bool = True,
    webhook_workers: int = 10,
    webhook_delay_seconds: float = 0.2,
    verify_webhook_certificates: bool = False
) -> MockServer:
    """
    Convenience function to create and configure a mock server.

    Args:
        stubs_file: Path to JSON/YAML stub mapping file
        host: Host to bind to
        port: Port to bind to
        log_level: Logging level name
        verbose_mode: Print each request to the console
        admin_enabled: Serve the admin API
        webhook_workers: Size of the webhook worker pool
        webhook_delay_seconds: Delay before each webhook is sent
        verify_webhook_certificates: Validate TLS certificates of webhook targets

    Returns:
        Configured MockServer instance

    Example:
        server = create_mock_server('mappings.json', port=8080, verbose_mode=True)
        server.start()
    """
    config = MockConfig(
        host=host,
        port=port,
        log_level=log_level,
        verbose_mode=verbose_mode,
        admin_enabled=admin_enabled,
        webhook=WebhookConfig(
            max_workers=webhook_workers,
            dispatch_delay_seconds=webhook_delay_seconds,
            trust_all_certificates=not verify_webhook_certificates
        )
    )

    return MockServer(stubs_file, config=config)
