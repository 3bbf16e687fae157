"""
Models - Issue/PR records and the derived dashboard values.
"""
from datetime import datetime, timezone
from typing import ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Project(BaseModel):
    """A project selected on the dashboard."""
    model_config = ConfigDict(frozen=True)

    id: str | int
    github_full_name: str
    status: str = ""


class Record(BaseModel):
    """Fields shared by issues and pull requests."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    number: int | None = None
    title: str = ""
    comments_count: int = Field(default=0, ge=0)
    state: str = ""
    updated_at: datetime | None = None
    last_seen_at: datetime | None = None
    project_name: str | None = Field(default=None, alias="projectName")

    @field_validator("comments_count", mode="before")
    @classmethod
    def _default_comments(cls, value):
        return 0 if value is None else value

    @field_validator("updated_at", "last_seen_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Naive timestamps from the backend are UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def effective_at(self) -> datetime | None:
        """`updated_at` if present, else `last_seen_at` (None when neither is set)."""
        return self.updated_at or self.last_seen_at


class Issue(Record):
    kind: ClassVar[str] = "issue"
    github_issue_id: int | str | None = None

    @property
    def record_id(self) -> int | str | None:
        return self.github_issue_id


class PullRequest(Record):
    kind: ClassVar[str] = "pr"
    github_pr_id: int | str | None = None
    merged: bool = False

    @field_validator("merged", mode="before")
    @classmethod
    def _default_merged(cls, value):
        return False if value is None else value

    @property
    def record_id(self) -> int | str | None:
        return self.github_pr_id


class OutputModel(BaseModel):
    """Base for values handed to the presentation layer (camelCase JSON)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class StatMetric(OutputModel):
    """One summary card."""
    id: int
    title: str
    subtitle: str
    value: int
    change: int  # Directional indicator: 0 or +/-100
    icon: str


class ActivityEntry(OutputModel):
    """One row of the "last activity" feed."""
    id: int | str | None
    type: Literal["issue", "pr"]
    number: int | None
    title: str
    label: str | None = None
    relative_time_label: str
    project_name: str | None = None


class ChartPoint(OutputModel):
    """Per-month totals for the applications history chart."""
    month: str
    applications: int
    merged: int


class DashboardData(OutputModel):
    """Everything the dashboard view renders for one cycle."""
    stats: list[StatMetric]
    activities: list[ActivityEntry]
    chart_data: list[ChartPoint]
    is_loading: bool = False
    generated_at: datetime
