"""
Sentry instrumentation for the route planner.

Coordinates are location data, so request bodies and query strings are
dropped before events leave the process.
"""

from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from services.routeplanner.config import settings

LOCATION_QUERY_KEYS = ("lat", "lon", "origin", "destination")


def _strip_location_data(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    """before_send hook: remove request bodies and coordinate query params."""
    request = event.get("request", {})
    if isinstance(request, dict):
        request.pop("data", None)
        query = request.get("query_string")
        if isinstance(query, str) and any(f"{k}=" in query for k in LOCATION_QUERY_KEYS):
            request["query_string"] = "[FILTERED]"
    return event


def setup_sentry() -> None:
    if not settings.sentry_dsn:
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        release=f"{settings.app_name}@{settings.app_version}",
        traces_sample_rate=settings.sentry_traces_sample_rate,
        before_send=_strip_location_data,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        send_default_pii=False,
    )
