# src/doctorfinder/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and its middleware. Request handling lives in
`doctorfinder.api.routes`; the proximity logic lives in `doctorfinder.search`.

Run locally with `uvicorn doctorfinder.api.app:app --reload`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from doctorfinder.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="DoctorFinder API", version="0.1.0")

# CORS for a separately served frontend. Configure via env:
# - DOCTORFINDER_CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
# - DOCTORFINDER_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("DOCTORFINDER_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("DOCTORFINDER_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = (
    r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
)
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

app.include_router(router)


def main() -> None:
    """Console entrypoint: serve the API with uvicorn."""
    import uvicorn

    uvicorn.run(
        "doctorfinder.api.app:app",
        host=os.getenv("DOCTORFINDER_HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "3001")),
    )
