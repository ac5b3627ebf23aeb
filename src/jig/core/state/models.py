"""
Data models for the plan cache.

Defines Pydantic models for cached plans, their sync bookkeeping, and
issue metadata records.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field
from typing_extensions import Self

from jig.core.plan.models import Plan


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class SyncRecord(BaseModel):
    """
    Sync bookkeeping stored next to each plan in `plans/{id}.json`.

    Only the sync engine writes `synced_at` and `synced_content_hash`;
    ordinary saves advance `updated_at` and leave the rest alone so the
    plan reads as out of date until it is synced again.

    Example:
        >>> record = SyncRecord(updated_at=utcnow())
        >>> record.model_dump_json(indent=2)
    """

    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last local mutation of the plan",
    )

    synced_at: datetime | None = Field(
        default=None,
        description="Last successful sync to the tracker",
    )

    synced_content_hash: str = Field(
        default="",
        description="Content hash of the plan as of the last successful sync",
    )


class CachedPlan(BaseModel):
    """
    A plan together with its sync bookkeeping.

    Example:
        >>> cached = CachedPlan(plan=plan, updated_at=utcnow())
        >>> cached.needs_sync
        True
    """

    plan: Plan
    updated_at: datetime = Field(default_factory=utcnow)
    synced_at: datetime | None = Field(default=None)
    synced_content_hash: str = Field(default="")

    @classmethod
    def from_record(cls, plan: Plan, record: SyncRecord) -> Self:
        """Combine a plan with its sidecar record."""
        return cls(
            plan=plan,
            updated_at=record.updated_at,
            synced_at=record.synced_at,
            synced_content_hash=record.synced_content_hash,
        )

    def to_record(self) -> SyncRecord:
        """Extract the sidecar record."""
        return SyncRecord(
            updated_at=self.updated_at,
            synced_at=self.synced_at,
            synced_content_hash=self.synced_content_hash,
        )

    @property
    def needs_sync(self) -> bool:
        """
        Whether the plan has local changes the tracker has not seen.

        True only for linked plans that were never synced or were updated
        strictly after the last sync.
        """
        if not self.plan.issue_id:
            return False
        if self.synced_at is None:
            return True
        return self.updated_at > self.synced_at


class IssueMetadata(BaseModel):
    """
    Bookkeeping for a tracker issue: its branch, worktree and pull request.

    Stored in `issues/{issue_id}.json`. Not part of sync itself, but kept
    in the same cache as plans.
    """

    issue_id: str = Field(..., min_length=1, description="Tracker issue identifier")
    plan_id: str = Field(default="", description="Plan linked to this issue")
    worktree_path: str = Field(default="", description="Worktree checked out for the issue")
    branch_name: str = Field(default="", description="Branch created for the issue")
    pr_number: int = Field(default=0, ge=0, description="Pull request number (0 if none)")
    pr_url: str = Field(default="", description="Pull request URL")
    last_active: datetime = Field(default_factory=utcnow, description="Last time touched")
