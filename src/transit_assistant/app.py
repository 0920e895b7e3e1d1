"""MCP application instance.

This module exists to avoid circular import issues when running with `python -m`.
All tool modules should import `mcp` from here, not from server.py.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from mcp.server.fastmcp import FastMCP

from transit_assistant.data.backend import TransitBackend
from transit_assistant.data.config import get_config
from transit_assistant.tools.executor import ToolExecutor

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Resources owned by the server for its whole lifetime."""

    backend: TransitBackend
    executor: ToolExecutor


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """Open the transit backend on startup and close it on shutdown."""
    config = get_config()
    backend = TransitBackend(config.db_path)
    await backend.open(config.feed_url)
    try:
        yield AppContext(backend=backend, executor=ToolExecutor(backend, timezone=config.timezone))
    finally:
        await backend.close()


# Initialize the MCP server
mcp = FastMCP(
    "Transit Assistant",
    instructions=(
        "Public transit schedules from a GTFS feed - stops, routes, trips, "
        "stop times and itineraries between named places"
    ),
    lifespan=app_lifespan,
)
