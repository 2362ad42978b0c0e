"""MCP Insights FastAPI backend: main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mcp_insights import config
from mcp_insights.routers.api import (
    app_names_router,
    prompts_router,
    sessions_router,
    tool_runs_router,
)
from mcp_insights.sources import get_row_source
from mcp_insights.observability import initialize as initialize_observability, shutdown as shutdown_observability

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("mcp_insights")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("MCP Insights backend starting up")
    initialize_observability(app)
    app.state.row_source = get_row_source()

    yield

    logger.info("MCP Insights backend shutting down")
    shutdown_observability(app)


app = FastAPI(
    title="MCP Insights API",
    description="Tool-run parsing and prompt analytics over MCP server logs",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow the dashboard dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        config.FRONTEND_ORIGIN,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(tool_runs_router)
app.include_router(sessions_router)
app.include_router(prompts_router)
app.include_router(app_names_router)


@app.get("/api/health")
async def health():
    """Health check endpoint."""
    try:
        available = await get_row_source().ping()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Row source health check failed: %s", exc)
        available = False
    return {
        "status": "ok" if available else "degraded",
        "rowSource": "available" if available else "unavailable",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

