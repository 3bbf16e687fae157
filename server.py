"""
FastAPI web server for the maintainer dashboard.
"""
import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api_client import ProjectsClient
from board import Board
from models import DashboardData, Project
from orchestrator import ProjectFetchOrchestrator
from scheduler import REFRESH_INTERVAL, RefreshScheduler

log = logging.getLogger(__name__)

DEFAULT_PROJECT_LIMIT = 15

# Global state
orchestrator: ProjectFetchOrchestrator | None = None
scheduler: RefreshScheduler | None = None
last_refresh: datetime | None = None


def record_refresh(applied: bool) -> None:
    """Refresh callback: remember when the timer last updated the data."""
    global last_refresh
    if applied:
        last_refresh = datetime.now(timezone.utc)


async def load_initial_projects(client: ProjectsClient) -> list[Project]:
    """Select the maintainer's active projects, or nothing if the backend is unreachable."""
    limit = int(os.getenv("DASHBOARD_PROJECT_LIMIT", DEFAULT_PROJECT_LIMIT))
    try:
        projects = await client.get_projects(limit=limit)
    except Exception as e:
        log.warning(f"Could not load projects, starting with an empty selection: {e}")
        return []
    return [Project.model_validate(p) for p in projects]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize on startup."""
    global orchestrator, scheduler

    client = ProjectsClient()
    orchestrator = ProjectFetchOrchestrator(client)
    scheduler = RefreshScheduler(
        orchestrator,
        interval=float(os.getenv("REFRESH_INTERVAL", REFRESH_INTERVAL)),
        on_refresh=record_refresh,
    )
    await scheduler.set_selected_projects(await load_initial_projects(client))
    await scheduler.start()

    log.info(f"Dashboard server initialized with {len(scheduler.projects)} projects")
    yield

    # Cancel background work on shutdown
    await scheduler.close()
    log.info("Dashboard server shutting down")


app = FastAPI(title="Maintainer Dashboard", lifespan=lifespan)


def current_dashboard() -> DashboardData:
    """Derive the dashboard from whatever collections the orchestrator holds now."""
    board = Board(orchestrator.issues, orchestrator.prs)
    return board.get_dashboard(is_loading=orchestrator.is_loading)


def dashboard_response() -> JSONResponse:
    return JSONResponse(current_dashboard().model_dump(mode="json", by_alias=True))


@app.get("/api/dashboard")
async def get_dashboard():
    """Get current dashboard data (read-only, doesn't trigger refresh)."""
    return dashboard_response()


@app.get("/api/projects")
async def get_projects() -> list[Project]:
    """Get the selected projects."""
    return scheduler.projects


@app.put("/api/projects")
async def select_projects(projects: list[Project]) -> list[Project]:
    """Replace the selected projects; a refresh starts in the background."""
    await scheduler.set_selected_projects(projects)
    return scheduler.projects


@app.post("/api/refresh")
async def refresh():
    """Refresh dashboard data now and return it."""
    global last_refresh

    if await scheduler.refresh_now():
        last_refresh = datetime.now(timezone.utc)
    return dashboard_response()


@app.get("/api/status")
async def status():
    """Get server status."""
    return {
        "status": "ok",
        "last_refresh": last_refresh.isoformat() if last_refresh else None,
        "has_data": orchestrator.last_loaded is not None,
        "project_count": len(scheduler.projects),
        "is_loading": orchestrator.is_loading,
    }


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
