"""
ProjectFetchOrchestrator - Fetches and merges issues/PRs across selected projects.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Protocol, Sequence, TypeVar

from models import Issue, Project, PullRequest, Record

log = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

# Sort key for records with no timestamp at all
_UNKNOWN = datetime.min.replace(tzinfo=timezone.utc)

# Set by the pipeline, never taken from the payload
_OWNED_FIELDS = ("kind", "projectName", "project_name")


class ProjectDataSource(Protocol):
    """What the orchestrator needs from a data-fetching client."""

    async def get_project_issues(self, project_id: str | int) -> dict: ...

    async def get_project_prs(self, project_id: str | int) -> dict: ...


def tag_record(model: type[R], raw: dict, project: Project) -> R:
    """Validate one payload record and tag it with its source project, replacing any upstream tag."""
    fields = {k: v for k, v in raw.items() if k not in _OWNED_FIELDS}
    return model.model_validate({**fields, "projectName": project.github_full_name})


def sort_by_recency(records: list[R]) -> list[R]:
    """Most recent effective timestamp first; ties keep their order, unknown timestamps go last."""
    return sorted(
        records,
        key=lambda r: (r.effective_at is not None, r.effective_at or _UNKNOWN),
        reverse=True,
    )


class ProjectFetchOrchestrator:
    """Holds the unified issue/PR collections and refreshes them from the data source."""

    def __init__(self, client: ProjectDataSource):
        """
        Initialize the orchestrator.

        Args:
            client: Data source with get_project_issues/get_project_prs coroutines
        """
        self.client = client
        self.issues: list[Issue] = []
        self.prs: list[PullRequest] = []
        self.is_loading = False
        self.cycle = 0
        self.last_loaded: datetime | None = None

    async def load_data(self, projects: Sequence[Project]) -> bool:
        """
        Run one fetch cycle for the given projects.

        Results are only applied if no newer cycle was started while this one
        was in flight. Never raises (except on cancellation).

        Returns:
            True if this cycle's results replaced the collections
        """
        self.cycle += 1
        cycle = self.cycle
        self.is_loading = True
        try:
            if not projects:
                self.issues, self.prs = [], []
                self.last_loaded = datetime.now(timezone.utc)
                return True

            issues, prs = await self._fetch_all(projects)

            if cycle != self.cycle:
                log.debug(f"Discarding results of cycle {cycle} (latest is {self.cycle})")
                return False

            self.issues, self.prs = issues, prs
            self.last_loaded = datetime.now(timezone.utc)
            log.info(f"Loaded {len(issues)} issues and {len(prs)} PRs from {len(projects)} projects")
            return True
        except Exception:
            log.exception("Failed to load dashboard data")
            return False
        finally:
            if cycle == self.cycle:
                self.is_loading = False

    async def _fetch_all(self, projects: Sequence[Project]) -> tuple[list[Issue], list[PullRequest]]:
        """Fan out issue and PR requests for every project, then flatten and sort."""
        issue_lists, pr_lists = await asyncio.gather(
            asyncio.gather(*(self._fetch_issues(p) for p in projects)),
            asyncio.gather(*(self._fetch_prs(p) for p in projects)),
        )
        issues = [issue for batch in issue_lists for issue in batch]
        prs = [pr for batch in pr_lists for pr in batch]
        return sort_by_recency(issues), sort_by_recency(prs)

    async def _fetch_issues(self, project: Project) -> list[Issue]:
        try:
            response = await self.client.get_project_issues(project.id)
            return [
                tag_record(Issue, raw, project)
                for raw in (response.get("issues") or [])
            ]
        except Exception as e:
            log.error(f"Failed to fetch issues for {project.github_full_name}: {e}")
            return []

    async def _fetch_prs(self, project: Project) -> list[PullRequest]:
        try:
            response = await self.client.get_project_prs(project.id)
            return [
                tag_record(PullRequest, raw, project)
                for raw in (response.get("prs") or [])
            ]
        except Exception as e:
            log.error(f"Failed to fetch PRs for {project.github_full_name}: {e}")
            return []
