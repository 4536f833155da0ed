"""
Shared test fixtures for the route planner test suite.

Provides:
- httpx clients backed by a fake OSRM (healthy and always-failing)
- a small bus-stop dataset around Hradec Králové
- async FastAPI test client with the planning stack wired to the fake OSRM

No test touches the network.
"""

import os

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# Ensure test env vars before any app imports
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("SENTRY_DSN", "")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "")

from services.routeplanner.routing.models import RoutingProfile, Stop  # noqa: E402
from services.routeplanner.routing.osrm_client import OSRMClient  # noqa: E402
from services.routeplanner.routing.segment_router import SegmentRouter  # noqa: E402
from services.routeplanner.routing.stops import StopIndex  # noqa: E402
from services.routeplanner.tests.helpers.factories import (  # noqa: E402
    OSRM_TEST_URL,
    failing_osrm_handler,
    fake_osrm_handler,
    make_stop,
)

FALLBACK_MIN_PER_KM = {RoutingProfile.DRIVING: 1.5, RoutingProfile.WALKING: 12.0}


# ---------------------------------------------------------------------------
# Upstream fakes
# ---------------------------------------------------------------------------

@pytest.fixture
async def osrm_http():
    """httpx client backed by the fake OSRM."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_osrm_handler)) as http:
        yield http


@pytest.fixture
async def failing_http():
    """httpx client whose every request fails with a connection error."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(failing_osrm_handler)) as http:
        yield http


@pytest.fixture
def segment_router(osrm_http) -> SegmentRouter:
    return SegmentRouter(OSRMClient(osrm_http, OSRM_TEST_URL), FALLBACK_MIN_PER_KM)


@pytest.fixture
def offline_router(failing_http) -> SegmentRouter:
    return SegmentRouter(OSRMClient(failing_http, OSRM_TEST_URL), FALLBACK_MIN_PER_KM)


# ---------------------------------------------------------------------------
# Stop dataset
# ---------------------------------------------------------------------------

@pytest.fixture
def hk_stops() -> list[Stop]:
    """A handful of stops in and around Hradec Králové."""
    return [
        make_stop("s1", "Hradec Králové, Hlavní nádraží", 50.2130, 15.8170),
        make_stop("s2", "Hradec Králové, Náměstí 28. října", 50.2094, 15.8330),
        make_stop("s3", "Hradec Králové, Zimní stadion", 50.2105, 15.8420),
        make_stop("s4", "Třebechovice pod Orebem, nám.", 50.2010, 15.9920),
        make_stop("s5", "Opočno, nám.", 50.2670, 16.1140),
        make_stop("s6", "Nové Město nad Metují, nám.", 50.3440, 16.1510),
        make_stop("s7", "Pardubice, hl. nádraží", 50.0320, 15.7560),
        make_stop("s8", "Chrudim, aut. nádraží", 49.9510, 15.7950),
    ]


@pytest.fixture
def stop_index(hk_stops) -> StopIndex:
    return StopIndex(hk_stops)


# ---------------------------------------------------------------------------
# FastAPI test client wired to the fake OSRM
# ---------------------------------------------------------------------------

@pytest.fixture
def planner_settings():
    from services.routeplanner.config import Settings

    return Settings(osrm_base_url=OSRM_TEST_URL, google_maps_api_key="", redis_url="")


@pytest.fixture
async def app(osrm_http, stop_index, planner_settings):
    """Test FastAPI app with the planning stack injected into app.state."""
    from services.routeplanner.main import app as _app, build_assembler

    _app.state.settings = planner_settings
    _app.state.redis = None
    _app.state.stop_index = stop_index
    _app.state.assembler = build_assembler(osrm_http, stop_index, planner_settings)
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
