"""
Parser and serializer for plan documents.

A plan document is markdown with YAML frontmatter:

    ---
    id: PLAN-42
    title: Add auth
    status: draft
    author: sam
    issue_id: ENG-7            (optional)
    created: '2026-01-16T14:32:00+00:00'
    phases:
    - id: phase-1
      title: Design
      status: pending
    - id: phase-2
      title: Build
      status: pending
      depends_on:
      - phase-1
    ---

    # Add auth

    ## Problem Statement
    {problem}

    ## Proposed Solution
    {solution}

    ## Phases

    ### phase-1: Design
    {description}

Frontmatter keys id, title, status and author are required, as are the
Problem Statement, Proposed Solution and Phases sections. Section headings
are matched case-insensitively by keyword, so "## The Problem" also counts.

Heading lines inside body fields are written with a leading backslash
(`\\## Background`) so they cannot be mistaken for document structure;
the parser removes one backslash again.

Example:
    >>> plan = parse_plan(text)
    >>> plan.id
    'PLAN-42'
    >>> parse_plan(serialize_plan(plan)) == plan
    True
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from pathlib import Path
from typing import Any

import frontmatter
import yaml
from pydantic import ValidationError

from jig.core.errors import PlanValidationError
from jig.core.plan.models import Phase, Plan

REQUIRED_FIELDS = ("id", "title", "status", "author")
REQUIRED_SECTIONS = ("Problem Statement", "Proposed Solution", "Phases")

_HEADER_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*$", re.MULTILINE)
# Phase subsection: ### phase-1: Title
_PHASE_HEADER_RE = re.compile(r"^###[ \t]+([^\s:]+)[ \t]*:?[ \t]*(.*?)[ \t]*$", re.MULTILINE)
# Heading-like lines in field text, with any backslashes already in front
_FIELD_HEADING_RE = re.compile(r"^(\\*#{1,6}[ \t])", re.MULTILINE)
_ESCAPED_HEADING_RE = re.compile(r"^\\(\\*#{1,6}[ \t])", re.MULTILINE)


def _escape_headings(text: str) -> str:
    """Prefix heading-like lines with a backslash."""
    return _FIELD_HEADING_RE.sub(r"\\\1", text)


def _unescape_headings(text: str) -> str:
    """Inverse of `_escape_headings`."""
    return _ESCAPED_HEADING_RE.sub(r"\1", text)


@dataclass
class Section:
    """A markdown section: its heading, heading level, and body."""

    header: str
    level: int
    content: str


def split_sections(body: str, max_level: int = 6) -> list[Section]:
    """
    Split markdown into sections by headings.

    Only headings at `max_level` or shallower start a new section; deeper
    headings stay inside their parent's content.
    """
    matches = [m for m in _HEADER_RE.finditer(body) if len(m.group(1)) <= max_level]
    sections: list[Section] = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(body)
        sections.append(
            Section(
                header=match.group(2),
                level=len(match.group(1)),
                content=body[match.end() : end].strip(),
            )
        )
    return sections


def _section_kind(header: str) -> str | None:
    """Classify a section heading as problem, solution, phases, or None."""
    lower = header.lower()
    if "problem" in lower:
        return "problem"
    if "solution" in lower or "proposed" in lower:
        return "solution"
    if "phase" in lower:
        return "phases"
    return None


def _load_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Load frontmatter metadata and body, turning YAML errors into validation errors."""
    try:
        post = frontmatter.loads(text)
    except yaml.YAMLError as e:
        raise PlanValidationError(f"failed to parse frontmatter: {e}") from e
    if not isinstance(post.metadata, dict):
        raise PlanValidationError("frontmatter must be a mapping")
    return dict(post.metadata), post.content


def validate_structure(text: str) -> None:
    """
    Check that a plan document has the required structure.

    Args:
        text: Raw plan document (frontmatter + markdown body)

    Raises:
        PlanValidationError: If required frontmatter keys or body sections
            are missing
    """
    metadata, body = _load_frontmatter(text)

    missing_fields = [key for key in REQUIRED_FIELDS if not metadata.get(key)]
    if missing_fields:
        raise PlanValidationError(
            f"missing required frontmatter fields: {', '.join(missing_fields)}",
            missing_fields=missing_fields,
        )

    found = {_section_kind(s.header) for s in split_sections(body, max_level=2) if s.level == 2}
    missing_sections = [
        name
        for kind, name in zip(("problem", "solution", "phases"), REQUIRED_SECTIONS)
        if kind not in found
    ]
    if missing_sections:
        raise PlanValidationError(
            f"missing required sections: {', '.join(missing_sections)}",
            missing_sections=missing_sections,
        )


def _parse_phase_descriptions(content: str) -> list[tuple[str, str, str]]:
    """Extract (phase_id, title, description) from the Phases section."""
    matches = list(_PHASE_HEADER_RE.finditer(content))
    result = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(content)
        description = _unescape_headings(content[match.end() : end].strip())
        result.append((match.group(1), match.group(2), description))
    return result


def parse_plan(text: str) -> Plan:
    """
    Parse a plan document into a Plan.

    The document is validated first; a document missing required structure
    never reaches the model.

    Raises:
        PlanValidationError: If the document is structurally invalid or a
            field has an invalid value (e.g., unknown status)
    """
    validate_structure(text)
    metadata, body = _load_frontmatter(text)

    fields: dict[str, Any] = {
        "id": str(metadata["id"]),
        "title": str(metadata["title"]),
        "status": metadata["status"],
        "author": str(metadata["author"]),
        "issue_id": metadata.get("issue_id") or "",
    }
    created = metadata.get("created")
    if isinstance(created, date) and not isinstance(created, datetime):
        # YAML reads a bare 2026-01-16 as a date
        created = datetime.combine(created, time(), tzinfo=timezone.utc)
    if created:
        fields["created"] = created

    phases_meta = metadata.get("phases") or []
    if not isinstance(phases_meta, list):
        raise PlanValidationError("frontmatter 'phases' must be a list")

    for section in split_sections(body, max_level=2):
        if section.level != 2:
            continue
        kind = _section_kind(section.header)
        if kind == "problem":
            fields["problem_statement"] = _unescape_headings(section.content)
        elif kind == "solution":
            fields["proposed_solution"] = _unescape_headings(section.content)
        elif kind == "phases":
            described = _parse_phase_descriptions(section.content)
            descriptions = {pid: desc for pid, _, desc in described}
            if phases_meta:
                phases_meta = [
                    {**entry, "description": descriptions.get(str(entry.get("id")), "")}
                    if isinstance(entry, dict)
                    else entry
                    for entry in phases_meta
                ]
            else:
                # Hand-written documents may list phases only in the body
                phases_meta = [
                    {"id": pid, "title": title, "description": desc}
                    for pid, title, desc in described
                ]

    fields["phases"] = phases_meta

    try:
        return Plan.model_validate(fields)
    except ValidationError as e:
        raise PlanValidationError(f"invalid plan document: {e}") from e


def parse_plan_file(path: Path) -> Plan:
    """
    Read and parse a plan document from disk.

    Raises:
        FileNotFoundError: If the file does not exist
        PlanValidationError: If the document is invalid
    """
    return parse_plan(path.read_text(encoding="utf-8"))


def _format_created(created: datetime) -> str:
    return created.isoformat()


def serialize_plan(plan: Plan) -> str:
    """
    Render a plan as a markdown document with YAML frontmatter.

    The output always contains the required sections, so it passes
    `validate_structure` and parses back to an equal Plan.
    """
    metadata: dict[str, Any] = {
        "id": plan.id,
        "title": plan.title,
        "status": plan.status.value,
        "author": plan.author,
        "created": _format_created(plan.created),
    }
    if plan.issue_id:
        metadata["issue_id"] = plan.issue_id

    phases_meta = []
    for phase in plan.phases:
        entry: dict[str, Any] = {
            "id": phase.id,
            "title": phase.title,
            "status": phase.status.value,
        }
        if phase.depends_on:
            entry["depends_on"] = list(phase.depends_on)
        phases_meta.append(entry)
    metadata["phases"] = phases_meta

    lines = [f"# {plan.title}", ""]
    lines += ["## Problem Statement", ""]
    if plan.problem_statement:
        lines += [_escape_headings(plan.problem_statement), ""]
    lines += ["## Proposed Solution", ""]
    if plan.proposed_solution:
        lines += [_escape_headings(plan.proposed_solution), ""]
    lines += ["## Phases", ""]
    for phase in plan.phases:
        lines += [f"### {phase.id}: {phase.title}".rstrip(), ""]
        if phase.description:
            lines += [_escape_headings(phase.description), ""]

    post = frontmatter.Post("\n".join(lines), **metadata)
    return frontmatter.dumps(post) + "\n"
