"""
FastAPI Backend for the HEXROUTE water route planner.

Provides REST API endpoints for:
- Water-only route computation through ordered waypoints
- Health and land mask status
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from api.config import settings
from api.middleware import setup_middleware
from api.routers import route, system
from api.state import get_app_state
from hexroute import __version__

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(message)s',  # JSON logs are self-contained
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    """Load the land mask once before serving requests."""
    state = get_app_state()
    if settings.preload_land_mask and state.land_mask is None:
        try:
            state.load_land_mask()
        except (OSError, ValueError):
            # Served as 503 on /api/route and reported by /api/health
            logger.error("Starting without a land mask")
    yield


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Application factory for the HEXROUTE API.

    Creates and configures the FastAPI application with middleware and
    routers.

    Returns:
        FastAPI: Configured application instance
    """
    application = FastAPI(
        title="HEXROUTE API",
        description="""
## Water-only Route Planning API

Plans routes through ordered waypoints that never cross land, searching
over an H3 hexagonal grid.

### Tiers
1. Direct great-circle chord
2. Fine A* within a corridor
3. Coarse beam-search skeleton, refined at fine resolution
4. Recursive detour around obstacles
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    setup_middleware(application, debug=settings.is_development or settings.debug)

    # CORS middleware - use configured origins only (NO WILDCARDS)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=settings.cors_credentials,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Malformed input is a 400; 422 is reserved for "no water route exists"
        logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=400, content={"detail": jsonable_errors(exc)})

    application.include_router(system.router)
    application.include_router(route.router)

    return application


def jsonable_errors(exc: RequestValidationError):
    """Validation errors without the non-serializable ``ctx`` payloads."""
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]


# Create the application
app = create_app()


# ============================================================================
# Run Server
# ============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
