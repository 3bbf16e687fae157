"""
Board - Dashboard computation logic.
"""
import calendar
from datetime import datetime, timedelta, timezone

from models import ActivityEntry, ChartPoint, DashboardData, Issue, PullRequest, Record, StatMetric
from time_format import UNKNOWN, format_time_ago, parse_time_ago

STATS_WINDOW_DAYS = 7
FEED_SOURCE_LIMIT = 10  # Most recent records taken from each type
FEED_LIMIT = 5
CHART_MONTHS = 6

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


class Board:
    """Computes dashboard metrics from the unified issue and PR collections."""

    def __init__(self, issues: list[Issue], prs: list[PullRequest], as_of: datetime | None = None):
        """
        Initialize Board.

        Args:
            issues: Unified issues, sorted most recent first
            prs: Unified pull requests, sorted most recent first
            as_of: Timestamp to compute metrics relative to (for time-travel debugging)
        """
        self.issues = issues
        self.prs = prs
        self.as_of = as_of or datetime.now(timezone.utc)
        if self.as_of.tzinfo is None:
            self.as_of = self.as_of.replace(tzinfo=timezone.utc)

    def get_dashboard(self, is_loading: bool = False) -> DashboardData:
        """Compute stats, activity feed and chart series in one go."""
        return DashboardData(
            stats=self.get_stats(),
            activities=self.get_activities(),
            chart_data=self.get_chart_data(),
            is_loading=is_loading,
            generated_at=self.as_of,
        )

    def get_stats(self) -> list[StatMetric]:
        """
        Compute the five summary cards over the trailing 7 days.

        `change` only signals whether a metric is non-zero; it is not a
        period-over-period delta.

        Returns:
            StatMetric list in display order
        """
        recent_issues = self._in_window(self.issues, days=STATS_WINDOW_DAYS)
        recent_prs = self._in_window(self.prs, days=STATS_WINDOW_DAYS)

        opened = sum(1 for pr in recent_prs if pr.state == "open")
        merged = sum(1 for pr in recent_prs if pr.merged)
        applications = sum(issue.comments_count for issue in recent_issues)

        subtitle = f"Last {STATS_WINDOW_DAYS} days"
        return [
            # Views are not tracked by the backend yet
            StatMetric(id=1, title="Repository Views", subtitle=subtitle, value=0, change=-100, icon="eye"),
            StatMetric(id=2, title="Issue Views", subtitle=subtitle, value=len(recent_issues), change=0, icon="file-text"),
            StatMetric(id=3, title="Issue Applications", subtitle=subtitle, value=applications, change=0, icon="file-text"),
            StatMetric(
                id=4, title="Pull Requests Opened", subtitle=subtitle,
                value=opened, change=100 if opened > 0 else 0, icon="git-pull-request",
            ),
            StatMetric(
                id=5, title="Pull Requests Merged", subtitle=subtitle,
                value=merged, change=100 if merged > 0 else 0, icon="git-merge",
            ),
        ]

    def get_activities(self) -> list[ActivityEntry]:
        """
        Build the "last activity" feed from the newest PRs and issues.

        Entries are ordered by the timestamp recovered from their relative-time
        label, so ordering within one bucket (e.g. "2 days ago") keeps PRs
        ahead of issues.

        Returns:
            Up to 5 ActivityEntry, most recent first
        """
        combined: list[tuple[ActivityEntry, datetime | None]] = []

        for pr in self.prs[:FEED_SOURCE_LIMIT]:
            if pr.merged:
                label = "Merged"
            elif pr.state == "open":
                label = "Open"
            else:
                label = "Closed"
            combined.append(self._entry(pr, "pr", label))

        for issue in self.issues[:FEED_SOURCE_LIMIT]:
            count = issue.comments_count
            label = f"{count} comment{'' if count == 1 else 's'}" if count > 0 else None
            combined.append(self._entry(issue, "issue", label))

        # Records without any timestamp go last
        combined.sort(key=lambda item: (item[1] is not None, item[1] or _NEVER), reverse=True)

        return [entry for entry, _ in combined[:FEED_LIMIT]]

    def get_chart_data(self) -> list[ChartPoint]:
        """
        Sum comment counts and merged PRs per calendar month.

        Returns:
            Exactly 6 ChartPoint, oldest month first, ending with as_of's month
        """
        points = []
        for start, end in self._month_ranges(CHART_MONTHS):
            month_issues = [i for i in self.issues if i.effective_at and start <= i.effective_at < end]
            month_prs = [p for p in self.prs if p.effective_at and start <= p.effective_at < end]

            points.append(ChartPoint(
                month=calendar.month_abbr[start.month],
                applications=sum(issue.comments_count for issue in month_issues),
                merged=sum(1 for pr in month_prs if pr.merged),
            ))
        return points

    def _entry(self, record: Record, kind: str, label: str | None) -> tuple[ActivityEntry, datetime | None]:
        """Map a record to an activity entry plus its approximate sort timestamp."""
        effective = record.effective_at
        time_ago = format_time_ago(effective, self.as_of) if effective else UNKNOWN
        entry = ActivityEntry(
            id=record.record_id,
            type=kind,
            number=record.number,
            title=record.title,
            label=label,
            relative_time_label=time_ago,
            project_name=record.project_name,
        )
        return entry, parse_time_ago(time_ago, self.as_of) if effective else None

    def _in_window(self, records: list[Record], days: int) -> list[Record]:
        """
        Select records whose effective timestamp falls in [as_of - days, as_of).

        Args:
            records: Issues or PRs
            days: Number of days to look back from as_of

        Returns:
            Records in the window, original order kept
        """
        cutoff = self.as_of - timedelta(days=days)
        return [r for r in records if r.effective_at and cutoff <= r.effective_at < self.as_of]

    def _month_ranges(self, count: int) -> list[tuple[datetime, datetime]]:
        """[month_start, next_month_start) for the trailing `count` calendar months, oldest first."""
        ranges = []
        for back in range(count - 1, -1, -1):
            year, month = self._shift_month(self.as_of.year, self.as_of.month, -back)
            next_year, next_month = self._shift_month(year, month, 1)
            start = self.as_of.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)
            end = start.replace(year=next_year, month=next_month)
            ranges.append((start, end))
        return ranges

    @staticmethod
    def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
        index = year * 12 + (month - 1) + delta
        return index // 12, index % 12 + 1
