"""
Monitoring middleware and gateway metrics.
"""
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import FastAPI, Request, Response
from loguru import logger
from prometheus_client import Counter, Gauge, Histogram, generate_latest, CONTENT_TYPE_LATEST


# Request metrics
http_requests_total = Counter(
    'explainer_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'explainer_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

active_requests = Gauge(
    'explainer_active_requests',
    'Number of active requests'
)

# Gateway metrics
llm_requests_total = Counter(
    'explainer_llm_requests_total',
    'Total requests to AI providers',
    ['provider', 'model', 'status']
)

llm_request_duration_seconds = Histogram(
    'explainer_llm_request_duration_seconds',
    'AI provider request duration in seconds',
    ['provider', 'model']
)

llm_tokens_total = Counter(
    'explainer_llm_tokens_total',
    'Tokens consumed by AI provider calls',
    ['provider', 'model']
)

explain_results_total = Counter(
    'explainer_explain_results_total',
    'Explain outcomes by status',
    ['status']
)

cache_lookups_total = Counter(
    'explainer_cache_lookups_total',
    'Explanation cache lookups',
    ['result']
)

breaker_trips_total = Counter(
    'explainer_breaker_trips_total',
    'Circuit breaker trips on quota exhaustion',
    ['provider']
)


def add_monitoring_middleware(app: FastAPI, expose_metrics: bool = True):
    """
    Add monitoring middleware to the FastAPI app.
    Tracks metrics, logs requests, and adds request IDs for tracing.
    The scrape endpoints are only mounted when ``expose_metrics`` is set.
    """

    @app.middleware("http")
    async def monitoring_middleware(request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        active_requests.inc()

        log_context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
        }

        with logger.contextualize(**log_context):
            logger.info(f"Request started: {request.method} {request.url.path}")

            try:
                response = await call_next(request)
                duration = time.time() - start_time
                endpoint = route_template(request)

                http_requests_total.labels(
                    method=request.method,
                    endpoint=endpoint,
                    status=response.status_code
                ).inc()
                http_request_duration_seconds.labels(
                    method=request.method,
                    endpoint=endpoint
                ).observe(duration)

                response.headers["X-Request-ID"] = request_id
                response.headers["X-Response-Time"] = f"{duration:.3f}"

                logger.info(
                    f"Request completed: {request.method} {request.url.path} "
                    f"{response.status_code} in {duration:.4f}s"
                )
                return response

            except Exception as e:
                http_requests_total.labels(
                    method=request.method,
                    endpoint=route_template(request),
                    status=500
                ).inc()
                logger.exception(f"Request failed: {request.method} {request.url.path}: {type(e).__name__}")
                raise

            finally:
                active_requests.dec()

    if not expose_metrics:
        return

    @app.get("/metrics", include_in_schema=False, tags=["monitoring"])
    async def metrics():
        """
        Prometheus metrics endpoint.
        """
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST,
            headers={
                "Cache-Control": "no-cache, no-store, must-revalidate",
                "Pragma": "no-cache",
                "Expires": "0"
            }
        )

    @app.get("/health/metrics", include_in_schema=False, tags=["monitoring"])
    async def health_metrics():
        """Current metric values as JSON for dashboards."""
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "status": "healthy",
            "metrics": {
                "active_requests": active_requests._value.get(),
            }
        }


def route_template(request: Request) -> str:
    """
    Matched route template (e.g. /api/admin/credentials/{provider}) for metric labels.
    Unmatched paths collapse to one label to keep cardinality bounded.
    """
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "unmatched"


def record_llm_request(provider: str, model: str, duration: float, success: bool, tokens: int = 0):
    """Record metrics for a provider request."""
    status = "success" if success else "error"
    llm_requests_total.labels(provider=provider, model=model, status=status).inc()

    if duration > 0:
        llm_request_duration_seconds.labels(provider=provider, model=model).observe(duration)

    if tokens > 0:
        llm_tokens_total.labels(provider=provider, model=model).inc(tokens)


def record_explain_result(status: str):
    explain_results_total.labels(status=status).inc()


def record_cache_lookup(hit: bool):
    cache_lookups_total.labels(result="hit" if hit else "miss").inc()


def record_breaker_trip(provider: str):
    breaker_trips_total.labels(provider=provider or "unknown").inc()
