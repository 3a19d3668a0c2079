"""FastAPI application for the Stats Service."""

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from libs.common.logging import configure_logging
from services.stats_service.router import router as stats_router


def create_app() -> FastAPI:
    """Create and configure the Stats Service FastAPI app."""
    configure_logging()

    app = FastAPI(
        title="Year in Review Stats Service",
        version="0.1.0",
        description="Member, peer, global and coach year-in-review statistics.",
    )

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "stats"}

    app.include_router(stats_router, prefix="/stats")

    return app


app = create_app()
