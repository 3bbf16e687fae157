"""Tests for fetching and merging project data."""

import asyncio
import logging
from unittest.mock import patch

import httpx

from board import Board
from conftest import FakeClient, NOW, ago, raw_issue, raw_pr
from models import Project
from orchestrator import ProjectFetchOrchestrator


def run(orchestrator, projects):
    return asyncio.run(orchestrator.load_data(projects))


class TestLoadData:
    """Test one fetch cycle."""

    def test_empty_selection(self):
        """No projects: empty collections, no requests, not loading."""
        client = FakeClient()
        orchestrator = ProjectFetchOrchestrator(client)
        orchestrator.issues = ["stale"]

        assert run(orchestrator, []) is True
        assert orchestrator.issues == []
        assert orchestrator.prs == []
        assert orchestrator.is_loading is False
        assert client.calls == []

    def test_empty_selection_dashboard(self):
        orchestrator = ProjectFetchOrchestrator(FakeClient())
        run(orchestrator, [])
        dashboard = Board(orchestrator.issues, orchestrator.prs, as_of=NOW).get_dashboard(
            is_loading=orchestrator.is_loading
        )
        assert [s.value for s in dashboard.stats] == [0, 0, 0, 0, 0]
        assert dashboard.activities == []
        assert len(dashboard.chart_data) == 6
        assert all(p.applications == 0 and p.merged == 0 for p in dashboard.chart_data)
        assert dashboard.is_loading is False

    def test_requests_issues_and_prs_per_project(self, projects):
        client = FakeClient()
        run(ProjectFetchOrchestrator(client), projects)
        assert sorted(client.calls) == [("issues", "a"), ("issues", "b"), ("prs", "a"), ("prs", "b")]

    def test_tags_project_name(self, projects):
        client = FakeClient(
            issues={"a": [raw_issue(1, updated=ago(hours=1))], "b": [raw_issue(2, updated=ago(hours=2))]},
            prs={"b": [raw_pr(3, updated=ago(hours=3))]},
        )
        orchestrator = ProjectFetchOrchestrator(client)
        run(orchestrator, projects)

        assert [(i.number, i.project_name) for i in orchestrator.issues] == [(1, "acme/alpha"), (2, "acme/beta")]
        assert [(p.number, p.project_name) for p in orchestrator.prs] == [(3, "acme/beta")]

    def test_source_project_overrides_payload_tag(self, projects):
        """A project name already present in the payload never replaces the source project."""
        client = FakeClient(
            issues={"a": [raw_issue(1, updated=ago(hours=1), projectName="upstream/other")]},
            prs={"b": [raw_pr(2, updated=ago(hours=2), project_name="upstream/other")]},
        )
        orchestrator = ProjectFetchOrchestrator(client)
        run(orchestrator, projects)

        assert [i.project_name for i in orchestrator.issues] == ["acme/alpha"]
        assert [p.project_name for p in orchestrator.prs] == ["acme/beta"]
        activities = Board(orchestrator.issues, orchestrator.prs, as_of=NOW).get_activities()
        assert {a.project_name for a in activities} == {"acme/alpha", "acme/beta"}

    def test_payload_kind_ignored(self, projects):
        """A `kind` field from the backend does not drop the project's records."""
        client = FakeClient(
            issues={"a": [raw_issue(1, updated=ago(hours=1), kind="bug")]},
            prs={"a": [raw_pr(2, updated=ago(hours=2), kind="pull_request")]},
        )
        orchestrator = ProjectFetchOrchestrator(client)
        run(orchestrator, projects)

        assert [(i.number, i.kind, i.project_name) for i in orchestrator.issues] == [(1, "issue", "acme/alpha")]
        assert [(p.number, p.kind, p.project_name) for p in orchestrator.prs] == [(2, "pr", "acme/alpha")]

    def test_sorted_by_recency_and_stable(self, projects):
        """Most recent first; equal timestamps keep project then list order."""
        tie = ago(days=1)
        client = FakeClient(issues={
            "a": [raw_issue(1, updated=ago(days=5)), raw_issue(2, updated=tie), raw_issue(3, last_seen=tie)],
            "b": [raw_issue(4, updated=tie), raw_issue(5, last_seen=ago(hours=1)), raw_issue(6)],
        })
        orchestrator = ProjectFetchOrchestrator(client)
        run(orchestrator, projects)

        assert [i.number for i in orchestrator.issues] == [5, 2, 3, 4, 1, 6]
        stamps = [i.effective_at for i in orchestrator.issues if i.effective_at]
        assert stamps == sorted(stamps, reverse=True)

    def test_per_project_failure_isolated(self, projects, caplog):
        client = FakeClient(
            issues={"a": RuntimeError("boom"), "b": [raw_issue(2, updated=ago(hours=1))]},
            prs={"a": [raw_pr(1, updated=ago(hours=1))], "b": httpx.ConnectError("down")},
        )
        orchestrator = ProjectFetchOrchestrator(client)
        with caplog.at_level(logging.ERROR):
            assert run(orchestrator, projects) is True

        assert [i.number for i in orchestrator.issues] == [2]
        assert [p.number for p in orchestrator.prs] == [1]
        assert "Failed to fetch issues for acme/alpha" in caplog.text
        assert "Failed to fetch PRs for acme/beta" in caplog.text

    def test_all_fetches_fail(self, projects):
        """Every request failing degrades to empty data, never an exception."""
        error = RuntimeError("API Error")
        client = FakeClient(issues={"a": error, "b": error}, prs={"a": error, "b": error})
        orchestrator = ProjectFetchOrchestrator(client)
        run(orchestrator, projects)

        dashboard = Board(orchestrator.issues, orchestrator.prs, as_of=NOW).get_dashboard(
            is_loading=orchestrator.is_loading
        )
        assert [s.value for s in dashboard.stats[1:]] == [0, 0, 0, 0]
        assert dashboard.activities == []
        assert len(dashboard.chart_data) == 6
        assert orchestrator.is_loading is False

    def test_malformed_payload_degrades_project(self, projects):
        client = FakeClient(
            issues={"a": [{"comments_count": -3}], "b": [raw_issue(2, updated=ago(hours=1))]},
        )
        orchestrator = ProjectFetchOrchestrator(client)
        run(orchestrator, projects)
        assert [i.number for i in orchestrator.issues] == [2]

    def test_missing_list_key(self, projects):
        class EmptyResponses(FakeClient):
            async def get_project_issues(self, project_id):
                return {}

        orchestrator = ProjectFetchOrchestrator(EmptyResponses())
        assert run(orchestrator, projects) is True
        assert orchestrator.issues == []

    def test_unexpected_failure_keeps_previous_data(self, projects, caplog):
        client = FakeClient(issues={"a": [raw_issue(1, updated=ago(hours=1))]})
        orchestrator = ProjectFetchOrchestrator(client)
        run(orchestrator, projects)
        previous = orchestrator.issues

        with patch("orchestrator.sort_by_recency", side_effect=TypeError("bad data")):
            assert run(orchestrator, projects) is False

        assert orchestrator.issues is previous
        assert orchestrator.is_loading is False
        assert "Failed to load dashboard data" in caplog.text

    def test_loading_flag_during_cycle(self, projects):
        seen = []

        class Probe(FakeClient):
            async def get_project_issues(self, project_id):
                seen.append(orchestrator.is_loading)
                return {"issues": []}

        orchestrator = ProjectFetchOrchestrator(Probe())
        run(orchestrator, projects)
        assert seen == [True, True]
        assert orchestrator.is_loading is False


class TestStaleCycles:
    """Test that only the latest cycle's results are kept."""

    def test_older_cycle_resolving_last_is_discarded(self):
        slow_project = Project(id="slow", github_full_name="acme/slow")
        fast_project = Project(id="fast", github_full_name="acme/fast")

        class Delayed(FakeClient):
            async def get_project_issues(self, project_id):
                await asyncio.sleep(0.05 if project_id == "slow" else 0)
                return {"issues": [raw_issue(1, updated=ago(hours=1))]}

        async def scenario():
            orchestrator = ProjectFetchOrchestrator(Delayed())
            first = asyncio.create_task(orchestrator.load_data([slow_project]))
            await asyncio.sleep(0)
            second = asyncio.create_task(orchestrator.load_data([fast_project]))
            applied_second = await second
            loading_after_second = orchestrator.is_loading
            applied_first = await first
            return orchestrator, applied_first, applied_second, loading_after_second

        orchestrator, applied_first, applied_second, loading_after_second = asyncio.run(scenario())

        assert applied_second is True
        assert applied_first is False
        assert loading_after_second is False
        assert [i.project_name for i in orchestrator.issues] == ["acme/fast"]
        assert orchestrator.cycle == 2

    def test_newer_cycle_in_flight_keeps_loading(self):
        class Gate(FakeClient):
            def __init__(self):
                super().__init__()
                self.release = asyncio.Event()

            async def get_project_issues(self, project_id):
                if project_id == "held":
                    await self.release.wait()
                return {"issues": []}

        async def scenario():
            client = Gate()
            orchestrator = ProjectFetchOrchestrator(client)
            quick = asyncio.create_task(orchestrator.load_data([Project(id="q", github_full_name="acme/q")]))
            await asyncio.sleep(0)
            held = asyncio.create_task(orchestrator.load_data([Project(id="held", github_full_name="acme/held")]))
            assert await quick is False
            still_loading = orchestrator.is_loading
            client.release.set()
            await held
            return still_loading, orchestrator.is_loading

        still_loading, final = asyncio.run(scenario())
        assert still_loading is True
        assert final is False
