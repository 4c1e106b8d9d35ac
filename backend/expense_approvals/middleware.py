from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI

    from expense_approvals.config import Settings

# Caller identity travels in these headers; browsers must be allowed to send them.
IDENTITY_HEADERS = ["X-User-Id", "X-Role"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure CORS for the configured front-end origins."""
    app.add_middleware(
        CORSMiddleware,  # ty: ignore[invalid-argument-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", *IDENTITY_HEADERS],
        expose_headers=["Content-Disposition"],
    )
