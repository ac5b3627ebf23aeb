"""
File-backed plan cache.

Layout under the cache root:

    plans/{id}.md           serialized plan document
    plans/{id}.json         sync bookkeeping (SyncRecord)
    issues/{issue_id}.json  IssueMetadata

The markdown document is the source of truth for plan content; the JSON
sidecar only carries timestamps and the last synced content hash.

The store assumes a single process owns the cache directory. Writes are
atomic per file (temp file + replace) but nothing coordinates two jig
processes writing the same plan.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from jig.core.errors import MalformedCacheError, PlanStoreError, PlanValidationError
from jig.core.plan.models import Plan
from jig.core.plan.parser import parse_plan, serialize_plan, validate_structure
from jig.core.state.models import CachedPlan, IssueMetadata, SyncRecord, utcnow

logger = logging.getLogger(__name__)


def is_valid_key(key: str) -> bool:
    """True if `key` can name a file in the cache without escaping it."""
    if not key or not key.strip():
        return False
    return "/" not in key and "\\" not in key and key not in (".", "..")


def _check_key(kind: str, key: str) -> str:
    """Reject keys that are empty or would escape the cache directory."""
    if not key or not key.strip():
        raise PlanStoreError(f"{kind} ID is required")
    if not is_valid_key(key):
        raise PlanStoreError(f"invalid {kind} ID: {key!r}")
    return key


def _write_atomic(path: Path, content: str) -> None:
    """Write a file atomically via a temp file in the same directory."""
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        temp_path.write_text(content, encoding="utf-8")
        temp_path.replace(path)
    except OSError:
        if temp_path.exists():
            temp_path.unlink()
        raise


class PlanStore:
    """
    Local cache of plans and issue metadata.

    Construct one store per process and pass it to the lookup, status
    manager and sync service.

    Example:
        >>> store = PlanStore(Path("~/.jig/cache").expanduser())
        >>> cached = store.save(plan)
        >>> store.get(plan.id).needs_sync
        True
    """

    PLANS_DIR = "plans"
    ISSUES_DIR = "issues"

    def __init__(self, cache_dir: Path) -> None:
        """
        Initialize the store.

        Args:
            cache_dir: Root of the cache. Subdirectories are created on demand.
        """
        self.cache_dir = Path(cache_dir)

    @property
    def plans_dir(self) -> Path:
        """Directory holding plan documents and sidecars."""
        return self.cache_dir / self.PLANS_DIR

    @property
    def issues_dir(self) -> Path:
        """Directory holding issue metadata records."""
        return self.cache_dir / self.ISSUES_DIR

    def _plan_path(self, plan_id: str) -> Path:
        return self.plans_dir / f"{_check_key('plan', plan_id)}.md"

    def _record_path(self, plan_id: str) -> Path:
        return self.plans_dir / f"{_check_key('plan', plan_id)}.json"

    def _issue_path(self, issue_id: str) -> Path:
        return self.issues_dir / f"{_check_key('issue', issue_id)}.json"

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    def _read_record(self, plan_id: str, doc_path: Path) -> SyncRecord:
        """Read the sidecar; a missing sidecar means the plan was never synced."""
        record_path = self._record_path(plan_id)
        if not record_path.exists():
            mtime = datetime.fromtimestamp(doc_path.stat().st_mtime, tz=timezone.utc)
            return SyncRecord(updated_at=mtime)
        try:
            return SyncRecord.model_validate_json(record_path.read_text(encoding="utf-8"))
        except (ValidationError, ValueError) as e:
            raise MalformedCacheError(
                f"failed to parse plan cache record {record_path}: {e}",
                path=str(record_path),
            ) from e

    def _write(self, plan: Plan, record: SyncRecord) -> None:
        document = serialize_plan(plan)
        # Never let a document we could not read back into the cache
        validate_structure(document)

        self.plans_dir.mkdir(parents=True, exist_ok=True)
        try:
            _write_atomic(self._plan_path(plan.id), document)
            _write_atomic(self._record_path(plan.id), record.model_dump_json(indent=2))
        except OSError as e:
            raise PlanStoreError(f"failed to write plan {plan.id}: {e}") from e

    def get(self, plan_id: str) -> CachedPlan | None:
        """
        Get a cached plan by ID.

        Returns:
            CachedPlan if present, None if absent

        Raises:
            MalformedCacheError: If the document or sidecar is corrupt
        """
        doc_path = self._plan_path(plan_id)
        if not doc_path.exists():
            return None

        try:
            plan = parse_plan(doc_path.read_text(encoding="utf-8"))
        except PlanValidationError as e:
            raise MalformedCacheError(
                f"failed to parse cached plan {doc_path}: {e}", path=str(doc_path)
            ) from e
        except OSError as e:
            raise PlanStoreError(f"failed to read plan {plan_id}: {e}") from e

        if plan.id != plan_id:
            raise MalformedCacheError(
                f"cached plan {doc_path} has mismatched id {plan.id!r}", path=str(doc_path)
            )

        return CachedPlan.from_record(plan, self._read_record(plan_id, doc_path))

    def save(self, plan: Plan) -> CachedPlan:
        """
        Persist a plan and advance its `updated_at` to now.

        Sync bookkeeping (`synced_at`, `synced_content_hash`) is carried over
        untouched, so an edited plan reports `needs_sync` afterwards. The old
        document is never read, so saving over a corrupt one repairs it.

        Raises:
            PlanValidationError: If the serialized document is invalid
                (nothing is written)
            MalformedCacheError: If the existing sidecar is corrupt
            PlanStoreError: If the files cannot be written
        """
        doc_path = self._plan_path(plan.id)
        record = self._read_record(plan.id, doc_path) if doc_path.exists() else SyncRecord()
        record.updated_at = utcnow()

        self._write(plan, record)
        logger.debug("Saved plan %s", plan.id)
        return CachedPlan.from_record(plan, record)

    def save_document(self, text: str) -> CachedPlan:
        """
        Validate, parse and save a raw plan document.

        Raises:
            PlanValidationError: If the document fails structural validation
        """
        plan = parse_plan(text)
        return self.save(plan)

    def link_issue(self, plan_id: str, issue_id: str) -> CachedPlan | None:
        """
        Link a cached plan to a tracker issue and save it.

        Moving the plan to a different issue clears `synced_at` and the
        synced hash, since the new issue has never received the plan. An
        empty `issue_id` unlinks the plan.

        Returns:
            The saved CachedPlan, or None if the plan is not cached
        """
        cached = self.get(plan_id)
        if cached is None:
            return None

        previous = cached.plan.issue_id
        cached.plan.issue_id = issue_id
        record = cached.to_record()
        if cached.plan.issue_id != previous:
            record.synced_at = None
            record.synced_content_hash = ""
        record.updated_at = utcnow()

        self._write(cached.plan, record)
        logger.debug("Linked plan %s to issue %r", plan_id, cached.plan.issue_id)
        return CachedPlan.from_record(cached.plan, record)

    def mark_synced(self, plan_id: str, content_hash: str) -> CachedPlan:
        """
        Record a successful sync: `synced_at = now` and the synced content hash.

        `updated_at` is left alone. Only the sync service should call this.

        Raises:
            PlanStoreError: If the plan is not cached or cannot be written
        """
        cached = self.get(plan_id)
        if cached is None:
            raise PlanStoreError(f"plan not found: {plan_id}")

        cached.synced_at = utcnow()
        cached.synced_content_hash = content_hash
        self.plans_dir.mkdir(parents=True, exist_ok=True)
        try:
            _write_atomic(
                self._record_path(plan_id), cached.to_record().model_dump_json(indent=2)
            )
        except OSError as e:
            raise PlanStoreError(f"failed to write sync record for {plan_id}: {e}") from e
        return cached

    def list(self) -> list[CachedPlan]:
        """
        List all cached plans, sorted by ID.

        Malformed entries are logged and skipped.
        """
        if not self.plans_dir.exists():
            return []

        plans: list[CachedPlan] = []
        for doc_path in sorted(self.plans_dir.glob("*.md")):
            try:
                cached = self.get(doc_path.stem)
            except PlanStoreError as e:
                logger.warning("Skipping unreadable cached plan %s: %s", doc_path.name, e)
                continue
            if cached is not None:
                plans.append(cached)
        return plans

    def find_by_issue_id(self, issue_id: str) -> CachedPlan | None:
        """Find the cached plan linked to an issue, or None."""
        if not issue_id:
            return None
        for cached in self.list():
            if cached.plan.issue_id == issue_id:
                return cached
        return None

    def plans_needing_sync(self) -> list[CachedPlan]:
        """Cached plans with local changes not yet pushed to the tracker."""
        return [cached for cached in self.list() if cached.needs_sync]

    def get_markdown(self, plan_id: str) -> str | None:
        """Get the raw cached document for display, or None if absent."""
        doc_path = self._plan_path(plan_id)
        if not doc_path.exists():
            return None
        try:
            return doc_path.read_text(encoding="utf-8")
        except OSError as e:
            raise PlanStoreError(f"failed to read plan markdown {plan_id}: {e}") from e

    def delete(self, plan_id: str) -> bool:
        """
        Remove a plan and its sidecar from the cache.

        Returns:
            True if a document was removed
        """
        doc_path = self._plan_path(plan_id)
        existed = doc_path.exists()
        doc_path.unlink(missing_ok=True)
        self._record_path(plan_id).unlink(missing_ok=True)
        return existed

    # ------------------------------------------------------------------
    # Issue metadata
    # ------------------------------------------------------------------

    def save_issue_metadata(self, meta: IssueMetadata) -> IssueMetadata:
        """Persist issue metadata, stamping `last_active` with now."""
        path = self._issue_path(meta.issue_id)
        meta.last_active = utcnow()
        self.issues_dir.mkdir(parents=True, exist_ok=True)
        try:
            _write_atomic(path, meta.model_dump_json(indent=2))
        except OSError as e:
            raise PlanStoreError(f"failed to write metadata for {meta.issue_id}: {e}") from e
        return meta

    def get_issue_metadata(self, issue_id: str) -> IssueMetadata | None:
        """
        Get issue metadata, or None if absent.

        Raises:
            MalformedCacheError: If the record is corrupt
        """
        path = self._issue_path(issue_id)
        if not path.exists():
            return None
        try:
            return IssueMetadata.model_validate_json(path.read_text(encoding="utf-8"))
        except (ValidationError, ValueError) as e:
            raise MalformedCacheError(
                f"failed to parse issue metadata {path}: {e}", path=str(path)
            ) from e

    def list_issue_metadata(self) -> list[IssueMetadata]:
        """List all issue metadata records; malformed ones are skipped."""
        if not self.issues_dir.exists():
            return []
        records: list[IssueMetadata] = []
        for path in sorted(self.issues_dir.glob("*.json")):
            try:
                meta = self.get_issue_metadata(path.stem)
            except PlanStoreError as e:
                logger.warning("Skipping unreadable issue metadata %s: %s", path.name, e)
                continue
            if meta is not None:
                records.append(meta)
        return records

    def delete_issue_metadata(self, issue_id: str) -> None:
        """Remove issue metadata; missing records are ignored."""
        self._issue_path(issue_id).unlink(missing_ok=True)

    def export_index(self) -> str:
        """Summarize the cache as JSON (plan id, issue id, needs_sync)."""
        index = [
            {
                "id": cached.plan.id,
                "issue_id": cached.plan.issue_id,
                "status": cached.plan.status.value,
                "needs_sync": cached.needs_sync,
            }
            for cached in self.list()
        ]
        return json.dumps(index, indent=2)
