"""
Route planner FastAPI service — multi-stop trip routing over OSRM + bus stops.

Entrypoint: uvicorn services.routeplanner.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

import httpx
import redis.asyncio as aioredis
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from services.routeplanner.config import Settings, settings
from services.routeplanner.middleware.cors import setup_cors
from services.routeplanner.middleware.rate_limit import RateLimitMiddleware
from services.routeplanner.middleware.sentry import setup_sentry
from services.routeplanner.routers import health, route_planning, stops
from services.routeplanner.routing.assembler import RouteAssembler
from services.routeplanner.routing.directions import DirectionsClient
from services.routeplanner.routing.models import RoutingProfile
from services.routeplanner.routing.osrm_client import OSRMClient
from services.routeplanner.routing.segment_router import SegmentRouter
from services.routeplanner.routing.stops import GeoJsonStopSource, StopIndex
from services.routeplanner.routing.transit import TransitSegmentComposer

logger = logging.getLogger(__name__)


# Shared redis reference: set during lifespan, read by rate limiter
_redis_holder: dict = {"client": None}


def build_assembler(
    http: httpx.AsyncClient,
    stop_index: StopIndex,
    cfg: Settings,
) -> RouteAssembler:
    """Wire OSRM, the optional directions client, and the stop index into an assembler."""
    osrm = OSRMClient(
        http,
        base_url=cfg.osrm_base_url,
        timeout_s=cfg.routing_timeout_s,
        walking_profile=cfg.osrm_walking_profile,
    )
    router = SegmentRouter(
        osrm,
        fallback_min_per_km={
            RoutingProfile.DRIVING: cfg.driving_fallback_min_per_km,
            RoutingProfile.WALKING: cfg.walking_fallback_min_per_km,
        },
    )

    directions = None
    if cfg.google_maps_api_key:
        directions = DirectionsClient(
            http,
            api_key=cfg.google_maps_api_key,
            timeout_s=cfg.directions_timeout_s,
        )

    composer = TransitSegmentComposer(
        stop_index,
        router,
        transit_fallback_min_per_km=cfg.transit_fallback_min_per_km,
        timetable_base_url=cfg.idos_base_url,
        timetable_region_code=cfg.idos_region_code,
        directions=directions,
    )
    return RouteAssembler(
        router,
        composer,
        concurrency=cfg.segment_concurrency,
        max_destinations=cfg.max_destinations,
        emergency_min_per_km=cfg.transit_fallback_min_per_km,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    setup_sentry()

    # Redis for rate limiting
    redis_client = None
    if settings.redis_url:
        try:
            redis_client = aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
            )
            await redis_client.ping()
        except Exception:
            # Rate limiting degrades gracefully, requests pass through
            logger.warning("Redis unavailable at startup; rate limiting disabled")
            redis_client = None

    _redis_holder["client"] = redis_client
    app.state.redis = redis_client
    app.state.settings = settings

    # Stop dataset: loaded once, read-only afterwards
    stop_index = StopIndex(GeoJsonStopSource(settings.stops_dataset_path).get_all_stops())
    app.state.stop_index = stop_index

    http = httpx.AsyncClient(headers={"User-Agent": f"{settings.app_name}/{settings.app_version}"})
    app.state.http = http
    app.state.assembler = build_assembler(http, stop_index, settings)

    logger.info(
        "Route planner ready: %d stops, directions %s",
        len(stop_index),
        "enabled" if settings.google_maps_api_key else "disabled",
    )

    yield

    await http.aclose()
    if redis_client:
        await redis_client.aclose()


app = FastAPI(
    title="Route Planner API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

# -- Middleware (order matters: last added = outermost in Starlette) --

# Routers first (innermost)
app.include_router(health.router)
app.include_router(route_planning.router)
app.include_router(stops.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


# Request ID injection
@app.middleware("http")
async def request_envelope_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# Rate limiting: uses lazy redis reference from lifespan
class _LazyRateLimitMiddleware(RateLimitMiddleware):
    """Rate limiter that picks up Redis client after lifespan init."""

    def __init__(self, app):
        super().__init__(app, redis_client=None)

    async def dispatch(self, request, call_next):
        self.redis = _redis_holder.get("client")
        return await super().dispatch(request, call_next)


app.add_middleware(_LazyRateLimitMiddleware)


# -- Exception Handlers --

@app.exception_handler(404)
async def not_found_handler(request: Request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "success": False,
            "error": {"code": "NOT_FOUND", "message": "Resource not found."},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": {
                "code": "VALIDATION_ERROR",
                "message": f"{location}: {first.get('msg', 'Validation error.')}",
            },
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": {"code": "INTERNAL_ERROR", "message": "An unexpected error occurred."},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )
