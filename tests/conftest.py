"""Shared fixtures and record builders."""

from datetime import datetime, timedelta, timezone

import pytest

from models import Issue, Project, PullRequest

NOW = datetime(2025, 10, 15, 12, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def raw_issue(number=1, updated=None, last_seen=None, comments=0, **extra) -> dict:
    """Issue payload as the backend returns it."""
    return {
        "github_issue_id": 1000 + number,
        "number": number,
        "title": f"Issue {number}",
        "comments_count": comments,
        "state": "open",
        "updated_at": iso(updated) if updated else None,
        "last_seen_at": iso(last_seen) if last_seen else None,
        **extra,
    }


def raw_pr(number=1, updated=None, last_seen=None, merged=False, state="open", **extra) -> dict:
    """Pull request payload as the backend returns it."""
    return {
        "github_pr_id": 2000 + number,
        "number": number,
        "title": f"PR {number}",
        "comments_count": 0,
        "state": state,
        "merged": merged,
        "updated_at": iso(updated) if updated else None,
        "last_seen_at": iso(last_seen) if last_seen else None,
        **extra,
    }


def make_issue(**kwargs) -> Issue:
    return Issue.model_validate(raw_issue(**kwargs))


def make_pr(**kwargs) -> PullRequest:
    return PullRequest.model_validate(raw_pr(**kwargs))


def ago(**kwargs) -> datetime:
    return NOW - timedelta(**kwargs)


class FakeClient:
    """In-memory data source keyed by project id; Exception values are raised."""

    def __init__(self, issues=None, prs=None):
        self.issues = issues or {}
        self.prs = prs or {}
        self.calls = []

    async def get_project_issues(self, project_id):
        self.calls.append(("issues", project_id))
        value = self.issues.get(project_id, [])
        if isinstance(value, Exception):
            raise value
        return {"issues": value}

    async def get_project_prs(self, project_id):
        self.calls.append(("prs", project_id))
        value = self.prs.get(project_id, [])
        if isinstance(value, Exception):
            raise value
        return {"prs": value}


@pytest.fixture
def projects():
    return [
        Project(id="a", github_full_name="acme/alpha", status="active"),
        Project(id="b", github_full_name="acme/beta", status="active"),
    ]
