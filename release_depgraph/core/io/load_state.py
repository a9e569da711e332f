from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from release_depgraph.core.errors import StateLoadError
from release_depgraph.core.model import CompletedIssue, LiveWork, Release, ReleaseIssue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackerState:
    """Read-only snapshot of `.tiki/state.json`."""

    active_work: dict[str, LiveWork] = field(default_factory=dict)
    recent_issues: list[CompletedIssue] = field(default_factory=list)


def resolve_tiki_path(tiki_path: Optional[str] = None) -> Path:
    p = Path(tiki_path) if tiki_path else Path.cwd() / ".tiki"
    if not p.is_dir():
        raise StateLoadError(
            code="E_TIKI_NOT_FOUND",
            message="no .tiki directory found",
            file=str(p),
        )
    return p


def _read_json(p: Path) -> Any:
    try:
        raw_text = p.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise StateLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e
    try:
        return json.loads(raw_text)
    except json.JSONDecodeError as e:
        raise StateLoadError(code="E_JSON_PARSE", message=str(e), file=str(p)) from e


def load_state(tiki_path: Optional[str] = None) -> TrackerState:
    """Load live work and completion history.

    A missing state.json is not an error: nothing is in flight and nothing has
    been completed yet.
    """
    p = resolve_tiki_path(tiki_path) / "state.json"
    if not p.exists():
        return TrackerState()

    data = _read_json(p)
    if not isinstance(data, dict):
        raise StateLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="state.json must be an object",
            file=str(p),
        )

    active_work: dict[str, LiveWork] = {}
    raw_work = data.get("activeWork") or {}
    if isinstance(raw_work, dict):
        for key, raw in raw_work.items():
            work = _parse_live_work(raw)
            if work is None:
                logger.warning("%s: skipping unreadable activeWork entry %s", p, key)
                continue
            active_work[str(key)] = work

    recent: list[CompletedIssue] = []
    history = data.get("history") or {}
    raw_recent = history.get("recentIssues") if isinstance(history, dict) else None
    if raw_recent is not None and not isinstance(raw_recent, list):
        logger.warning("%s: history.recentIssues is not an array, ignoring it", p)
        raw_recent = None
    for i, raw in enumerate(raw_recent or []):
        if not isinstance(raw, dict) or not is_int(raw.get("number")):
            logger.warning("%s: skipping unreadable history.recentIssues[%d]", p, i)
            continue
        recent.append(
            CompletedIssue(
                number=int(raw["number"]),
                completed_at=str(raw.get("completedAt") or ""),
                title=raw.get("title") if isinstance(raw.get("title"), str) else None,
            )
        )

    return TrackerState(active_work=active_work, recent_issues=recent)


def _parse_live_work(raw: Any) -> Optional[LiveWork]:
    # Nested ({"issue": {"number": 5}}) and old flat ({"issueNumber": 5}) shapes.
    if not isinstance(raw, dict):
        return None
    status = raw.get("status")
    if not isinstance(status, str):
        return None

    number: Optional[int] = None
    issue = raw.get("issue")
    if isinstance(issue, dict) and is_int(issue.get("number")):
        number = int(issue["number"])
    elif is_int(raw.get("issueNumber")):
        number = int(raw["issueNumber"])

    wtype = raw.get("type")
    return LiveWork(
        status=status,
        type=wtype if isinstance(wtype, str) else "issue",
        issue_number=number,
    )


def load_releases(tiki_path: Optional[str] = None) -> list[Release]:
    """Load every `.tiki/releases/*.json`, skipping files that do not parse."""
    releases_dir = resolve_tiki_path(tiki_path) / "releases"
    if not releases_dir.is_dir():
        return []

    out: list[Release] = []
    for f in sorted(releases_dir.glob("*.json")):
        try:
            release = _parse_release(_read_json(f), f)
        except StateLoadError as e:
            logger.warning("skipping release file: %s", e)
            continue
        out.append(release)
    return out


def _parse_release(data: Any, p: Path) -> Release:
    if not isinstance(data, dict):
        raise StateLoadError(
            code="E_INVALID_TOP_LEVEL", message="release must be an object", file=str(p)
        )
    version = data.get("version")
    if not isinstance(version, str) or not version.strip():
        raise StateLoadError(
            code="E_REQUIRED_FIELD",
            message="version is required and must be a non-empty string",
            file=str(p),
            path="version",
        )

    issues: list[ReleaseIssue] = []
    raw_issues = data.get("issues")
    if not isinstance(raw_issues, list):
        raise StateLoadError(
            code="E_INVALID_TYPE",
            message="issues must be an array",
            file=str(p),
            path="issues",
        )
    seen: set[int] = set()
    for i, raw in enumerate(raw_issues):
        if not isinstance(raw, dict) or not is_int(raw.get("number")):
            raise StateLoadError(
                code="E_INVALID_TYPE",
                message="issue must be an object with an integer number",
                file=str(p),
                path=f"issues[{i}]",
            )
        number = int(raw["number"])
        if number in seen:
            continue
        seen.add(number)
        title = raw.get("title")
        issues.append(ReleaseIssue(number=number, title=title if isinstance(title, str) else ""))

    return Release(
        version=version,
        status=str(data.get("status") or "active"),
        issues=tuple(issues),
        name=data.get("name") if isinstance(data.get("name"), str) else None,
        created_at=data.get("createdAt") if isinstance(data.get("createdAt"), str) else None,
        updated_at=data.get("updatedAt") if isinstance(data.get("updatedAt"), str) else None,
    )


def is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)
