"""
Async client for the maintainer backend's project endpoints.
"""
import os
from typing import Any

import httpx

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_TIMEOUT = 10.0


class ProjectsClient:
    """Lightweight wrapper around the maintainer REST API."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the client.

        Args:
            token: API token (or set API_TOKEN env var)
            base_url: Backend root URL (or set API_BASE_URL env var)
            timeout: Request timeout in seconds (or set API_TIMEOUT env var)
            transport: Optional httpx transport, used by tests to stub the backend
        """
        self.token = token or os.getenv("API_TOKEN")
        self.base_url = (base_url or os.getenv("API_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout or float(os.getenv("API_TIMEOUT", DEFAULT_TIMEOUT))
        self.transport = transport
        self.headers = {"Accept": "application/json"}
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"

    async def get(self, endpoint: str, params: dict | None = None) -> Any:
        """Make GET request to the backend."""
        url = f"{self.base_url}{endpoint}"
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            response = await client.get(url, headers=self.headers, params=params or {})
            response.raise_for_status()
            return response.json()

    async def get_project_issues(self, project_id: str | int) -> dict:
        """Fetch a project's tracked issues: {"issues": [...]}."""
        return await self.get(f"/projects/{project_id}/issues")

    async def get_project_prs(self, project_id: str | int) -> dict:
        """Fetch a project's tracked pull requests: {"prs": [...]}."""
        return await self.get(f"/projects/{project_id}/prs")

    async def get_projects(self, status: str | None = "active", limit: int | None = None) -> list[dict]:
        """
        Fetch the authenticated maintainer's projects.

        Args:
            status: Only keep projects with this status (None keeps all)
            limit: Maximum number of projects to return

        Returns:
            List of project dicts with id, github_full_name, status
        """
        data = await self.get("/projects/mine")
        projects = data.get("projects", []) if isinstance(data, dict) else data

        # Normalize to our schema
        result = []
        for project in projects:
            if status and project.get("status") != status:
                continue
            result.append({
                "id": project["id"],
                "github_full_name": project["github_full_name"],
                "status": project.get("status", ""),
            })
        return result[:limit] if limit else result
