"""FastAPI service exposing the search scraper."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from scraper.errors import SearchFailedError
from scraper.models import SearchRequest
from scraper.pipeline import SearchPipeline
from scraper.settings import ScraperConfig

BASE_DIR = Path(__file__).resolve().parents[1]
load_dotenv(BASE_DIR / ".env")

LOGGER = logging.getLogger(__name__)

GENERIC_ERROR = "An internal server error occurred during scraping."
MISSING_QUERY = "Query parameter 'q' is required and must not be blank."


def create_app(
    config: Optional[ScraperConfig] = None,
    pipeline: Optional[SearchPipeline] = None,
) -> FastAPI:
    """Build the application around an explicit configuration."""
    config = config or ScraperConfig.from_env()
    app = FastAPI(title="Search Scraper API")
    app.state.config = config
    app.state.pipeline = pipeline or SearchPipeline.from_config(config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/search")
    async def search(request: Request, q: Optional[str] = Query(None)) -> JSONResponse:
        try:
            search_request = SearchRequest(query=q or "")
        except ValidationError:
            raise HTTPException(status_code=400, detail=MISSING_QUERY)

        try:
            batch = await request.app.state.pipeline.run(search_request)
        except SearchFailedError as exc:
            message = GENERIC_ERROR if config.is_production else f"{GENERIC_ERROR} {exc.cause}"
            return JSONResponse(status_code=500, content={"error": message})

        return JSONResponse(
            content=batch.to_payload(),
            headers={"X-Skipped-Items": str(batch.skipped)},
        )

    return app


app = create_app()


def main() -> None:  # pragma: no cover - manual entry point
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    config = app.state.config
    LOGGER.info("Starting search scraper API on %s:%s (backend=%s)", config.host, config.port, config.backend)
    uvicorn.run(app, host=config.host, port=config.port)


if __name__ == "__main__":
    main()
