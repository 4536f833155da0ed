"""
CORS middleware configuration.
Origins come from CORS_ORIGINS (the map frontend); read-only API, so only
GET/POST are allowed.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.routeplanner.config import settings


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        max_age=600,
    )
