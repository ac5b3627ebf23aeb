"""
Data models for plan sync.

Defines Pydantic models for per-plan and batch sync outcomes.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PlanSyncStatus(str, Enum):
    """Outcome of syncing one plan."""

    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"


class PlanSyncResult(BaseModel):
    """
    Result of syncing a single plan to its tracker issue.

    A skipped result means the content hash matched the last synced hash
    and no remote call was made.
    """

    plan_id: str = Field(description="ID of the plan")

    issue_id: str = Field(default="", description="Linked tracker issue")

    status: PlanSyncStatus = Field(description="What happened")

    content_hash: str = Field(
        default="",
        description="Content hash computed for this sync attempt",
    )

    error: str = Field(
        default="",
        description="Failure message (failed results only)",
    )

    marker_error: str = Field(
        default="",
        description="Set when the remote sync succeeded but recording it locally failed",
    )

    synced_at: datetime | None = Field(default=None)

    @property
    def succeeded(self) -> bool:
        """True for synced and skipped results."""
        return self.status != PlanSyncStatus.FAILED

    def summary(self) -> str:
        """Generate a human-readable summary of the result."""
        if self.status == PlanSyncStatus.FAILED:
            return f"{self.plan_id}: sync failed: {self.error}"
        if self.status == PlanSyncStatus.SKIPPED:
            return f"{self.plan_id}: content unchanged, skipped"
        message = f"{self.plan_id}: synced to {self.issue_id}"
        if self.marker_error:
            message += f" (sync not recorded: {self.marker_error})"
        return message


class BatchSyncResult(BaseModel):
    """Aggregate result of syncing several plans."""

    results: list[PlanSyncResult] = Field(default_factory=list)

    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    def _count(self, status: PlanSyncStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def synced(self) -> int:
        """Number of plans pushed to the tracker."""
        return self._count(PlanSyncStatus.SYNCED)

    @property
    def skipped(self) -> int:
        """Number of plans skipped because their content was unchanged."""
        return self._count(PlanSyncStatus.SKIPPED)

    @property
    def failed(self) -> int:
        """Number of plans that failed."""
        return self._count(PlanSyncStatus.FAILED)

    @property
    def failures(self) -> list[PlanSyncResult]:
        """Failed results in batch order."""
        return [r for r in self.results if r.status == PlanSyncStatus.FAILED]

    @property
    def duration_seconds(self) -> float | None:
        """Calculate operation duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def summary(self) -> str:
        """Generate a human-readable summary of the batch."""
        return f"{self.synced} synced, {self.skipped} unchanged, {self.failed} failed"
