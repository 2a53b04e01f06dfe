"""Main FastAPI application."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fpl_chat import __version__
from fpl_chat.api.endpoints import router
from fpl_chat.clients.fpl import get_fpl_client
from fpl_chat.utils.logging import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"FPL chat service {__version__} starting")
    yield
    await get_fpl_client().aclose()


# Create FastAPI application
app = FastAPI(
    title="FPL Chat Assistant",
    description=(
        "A streaming chat service for Fantasy Premier League advice, backed by Claude "
        "and a set of FPL data tools."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Chat",
            "description": "Streamed, tool-augmented chat and the tool catalogue.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("fpl_chat.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
