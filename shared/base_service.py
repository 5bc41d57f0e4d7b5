"""
Base service class for the API façade.
"""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, Optional
import asyncio
import time

from shared.config import ServiceConfig, get_config
from shared.logging import configure_logging, get_logger, set_request_id, set_client_ip, clear_context
from shared.metrics import get_metrics_collector
from shared.errors import AccessLayerException, BadRequest

REQUEST_ID_HEADER = "X-Request-ID"

CORS_ALLOWED_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"]
CORS_ALLOWED_HEADERS = ["Accept", "Authorization", "Content-Type", "X-CSRF-Token"]


class BaseService:
    """Base service class with common functionality."""

    def __init__(self, service_name: str, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config(service_name)
        self.port = self.config.port

        configure_logging(service_name, self.config.log_level)
        self.logger = get_logger(f"{service_name}.service")
        self.metrics = get_metrics_collector(service_name)
        self._start_time = time.time()

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_exception_handlers()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        """Create FastAPI application."""
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"{self.service_name.title()} Service - DynamoDB, S3 and Redis façade",
            version="1.0.0",
            docs_url="/docs" if self.config.environment == "local" else None,
            redoc_url="/redoc" if self.config.environment == "local" else None,
            lifespan=self._lifespan,
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        """Tie backend client lifecycle to the server process."""
        await self.start()
        try:
            yield
        finally:
            await self.stop()

    def _setup_middleware(self):
        """Set up middleware."""

        # Permissive policy, meant to sit behind a trusted edge
        self.app.add_middleware(
            CORSMiddleware,
            allow_origin_regex=r"https?://.*",
            allow_credentials=True,
            allow_methods=CORS_ALLOWED_METHODS,
            allow_headers=CORS_ALLOWED_HEADERS,
            expose_headers=["Link"],
            max_age=300,
        )

        @self.app.middleware("http")
        async def request_context(request: Request, call_next):
            request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
            set_client_ip(self._get_client_ip(request))
            start_time = time.time()

            try:
                response = await asyncio.wait_for(
                    call_next(request),
                    timeout=self.config.request_timeout_seconds,
                )
            except asyncio.TimeoutError:
                self.logger.error(
                    "Request timed out",
                    method=request.method,
                    path=request.url.path,
                    timeout_seconds=self.config.request_timeout_seconds,
                )
                self.metrics.record_error("timeout")
                response = JSONResponse(status_code=504, content={"error": "Request timed out"})
            except Exception as e:
                self.logger.error(
                    "Request failed",
                    method=request.method,
                    path=request.url.path,
                    error=str(e),
                    exc_info=True,
                )
                self.metrics.record_error("unhandled")
                response = JSONResponse(status_code=500, content={"error": "Internal server error"})

            duration = time.time() - start_time
            self.metrics.record_http_request(
                method=request.method,
                endpoint=self._route_template(request),
                status_code=response.status_code,
                duration=duration
            )
            self.logger.info(
                "HTTP request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2)
            )

            response.headers[REQUEST_ID_HEADER] = request_id
            clear_context()
            return response

    def _setup_exception_handlers(self):
        """Render every error as {"error": <message>}."""

        @self.app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": str(exc.detail)},
                headers=getattr(exc, "headers", None),
            )

        @self.app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            self.logger.info("Rejected request body", path=request.url.path, errors=str(exc.errors()))
            return JSONResponse(
                status_code=400,
                content=BadRequest().to_response().model_dump()
            )

        @self.app.exception_handler(AccessLayerException)
        async def access_layer_exception_handler(request: Request, exc: AccessLayerException):
            self.logger.error(
                "Access layer error",
                code=exc.code,
                message=exc.message,
                details=exc.details
            )
            self.metrics.record_error(exc.code)
            return JSONResponse(
                status_code=exc.status_code,
                content=exc.to_response().model_dump()
            )

        @self.app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), exc_info=True)
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error"}
            )

    def _setup_routes(self):
        """Set up common routes."""

        @self.app.get("/health")
        async def health_check():
            """Health check endpoint. Informational only, always 200."""
            services = await self._check_dependencies()
            return {
                "status": "healthy",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "services": services,
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(
                content=self.metrics.render(),
                media_type=CONTENT_TYPE_LATEST
            )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies. Override in subclasses."""
        return {}

    async def start(self):
        """Start backend clients. Override in subclasses."""

    async def stop(self):
        """Stop backend clients. Override in subclasses."""

    def _get_uptime(self) -> float:
        return time.time() - self._start_time

    @staticmethod
    def _get_client_ip(request: Request) -> str:
        """Extract the caller IP from standard headers."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip
        if request.client:
            return request.client.host
        return "unknown"

    @staticmethod
    def _route_template(request: Request) -> str:
        """Matched route path, so metrics labels stay bounded."""
        route = request.scope.get("route")
        return getattr(route, "path", request.url.path)

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower()
        )
