"""HTTP trigger for the fetcher, meant to be called by an external scheduler."""

from __future__ import annotations

import os

import requests
import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from fx_fetcher.config import Settings
from fx_fetcher.db.base_backend import BackendStrategy
from fx_fetcher.handler import handle_invocation
from fx_fetcher.utils.logger import get_logger

LOGGER = get_logger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    backend: BackendStrategy | None = None,
    session: requests.Session | None = None,
) -> FastAPI:
    """Build the app; without ``settings`` the environment is read per request."""

    app = FastAPI(title="fx-fetcher")

    def _invoke() -> JSONResponse:
        status, body = handle_invocation(settings, backend=backend, session=session)
        return JSONResponse(content=body, status_code=status)

    @app.api_route("/", methods=["GET", "POST"])
    def fetch_rates() -> JSONResponse:
        return _invoke()

    @app.post("/fx_fetcher")
    def fetch_rates_legacy_path() -> JSONResponse:
        return _invoke()

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()


def main() -> None:
    """Start the HTTP trigger with uvicorn."""

    host = os.getenv("FX_FETCHER_HOST", "0.0.0.0")
    port = int(os.getenv("FX_FETCHER_PORT", "8000"))
    LOGGER.info("Starting fx-fetcher on %s:%s", host, port)
    uvicorn.run("fx_fetcher.web:app", host=host, port=port, log_level="info")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    main()
