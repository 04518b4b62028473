from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

import pandas as pd
from dateutil import parser as dateparser

from .models import Assignment, Project, RoleRequirement, SimulationConfig, Worker


class _LineReader:
    """Sequential access to the non-blank lines of an instance file."""

    def __init__(self, text: str, source: str) -> None:
        self._lines: Iterator[Tuple[int, str]] = (
            (number, line) for number, line in enumerate(text.splitlines(), start=1) if line.strip()
        )
        self.source = source

    def next_tokens(self, expected: str) -> Tuple[int, List[str]]:
        try:
            number, line = next(self._lines)
        except StopIteration as exc:
            raise ValueError(f"{self.source}: unexpected end of input, expected {expected}") from exc
        return number, line.split()

    def next_line_number(self) -> Optional[int]:
        entry = next(self._lines, None)
        return entry[0] if entry is not None else None


def _parse_count(value: str, field_name: str, line_no: int, source: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ValueError(f"{source}:{line_no}: invalid integer for {field_name}: {value!r}") from exc
    if parsed < 0:
        raise ValueError(f"{source}:{line_no}: {field_name} must not be negative")
    return parsed


def _expect_fields(tokens: Sequence[str], count: int, expected: str, line_no: int, source: str) -> None:
    if len(tokens) != count:
        raise ValueError(f"{source}:{line_no}: expected {expected}, got {' '.join(tokens)!r}")


def _read_skill_lines(reader: _LineReader, count: int) -> List[Tuple[str, int]]:
    entries: List[Tuple[str, int]] = []
    for _ in range(count):
        line_no, tokens = reader.next_tokens("'<skill> <level>'")
        _expect_fields(tokens, 2, "'<skill> <level>'", line_no, reader.source)
        entries.append((tokens[0], _parse_count(tokens[1], "level", line_no, reader.source)))
    return entries


def _ensure_unique(names: Iterable[str], label: str) -> None:
    seen: Set[str] = set()
    for name in names:
        if name in seen:
            raise ValueError(f"duplicate {label} name '{name}'")
        seen.add(name)


def parse_instance(text: str, source: str = "instance") -> Tuple[List[Worker], List[Project]]:
    reader = _LineReader(text, source)
    line_no, tokens = reader.next_tokens("'<workers> <projects>' header")
    _expect_fields(tokens, 2, "'<workers> <projects>' header", line_no, source)
    worker_count = _parse_count(tokens[0], "worker count", line_no, source)
    project_count = _parse_count(tokens[1], "project count", line_no, source)

    workers: List[Worker] = []
    for _ in range(worker_count):
        line_no, tokens = reader.next_tokens("'<name> <skill count>'")
        _expect_fields(tokens, 2, "'<name> <skill count>'", line_no, source)
        skill_count = _parse_count(tokens[1], "skill count", line_no, source)
        skills: Dict[str, int] = {}
        for skill, level in _read_skill_lines(reader, skill_count):
            if skill in skills:
                raise ValueError(f"{source}: duplicate skill '{skill}' for worker '{tokens[0]}'")
            skills[skill] = level
        workers.append(Worker(name=tokens[0], skills=skills))

    projects: List[Project] = []
    for _ in range(project_count):
        expected = "'<name> <duration> <score> <before> <role count>'"
        line_no, tokens = reader.next_tokens(expected)
        _expect_fields(tokens, 5, expected, line_no, source)
        duration = _parse_count(tokens[1], "duration", line_no, source)
        if duration <= 0:
            raise ValueError(f"{source}:{line_no}: duration must be positive for project '{tokens[0]}'")
        role_count = _parse_count(tokens[4], "role count", line_no, source)
        roles = tuple(
            RoleRequirement(skill, level) for skill, level in _read_skill_lines(reader, role_count)
        )
        projects.append(
            Project(
                name=tokens[0],
                duration=duration,
                score=_parse_count(tokens[2], "score", line_no, source),
                before=_parse_count(tokens[3], "before", line_no, source),
                roles=roles,
            )
        )

    trailing = reader.next_line_number()
    if trailing is not None:
        raise ValueError(f"{source}:{trailing}: unexpected content after the declared projects")

    _ensure_unique((worker.name for worker in workers), "worker")
    _ensure_unique((project.name for project in projects), "project")
    return workers, projects


def load_instance(path: str | Path) -> Tuple[List[Worker], List[Project]]:
    return parse_instance(Path(path).read_text(), source=Path(path).name)


def _require_int(entry: Dict[str, object], key: str, label: str, *, positive: bool = False) -> int:
    value = entry.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{label}: '{key}' must be an integer")
    if value < 0 or (positive and value == 0):
        raise ValueError(f"{label}: '{key}' must be {'positive' if positive else 'non-negative'}")
    return value


def _require_name(entry: object, label: str) -> str:
    if not isinstance(entry, dict):
        raise ValueError(f"{label} entries must be objects")
    name = entry.get("name")
    if not name or not isinstance(name, str):
        raise ValueError(f"{label} name is required")
    return name


def instance_from_dict(payload: object) -> Tuple[List[Worker], List[Project]]:
    """Build an instance from a JSON document with ``workers`` and ``projects`` arrays."""
    if not isinstance(payload, dict):
        raise ValueError("instance must be a JSON object")
    raw_workers = payload.get("workers")
    raw_projects = payload.get("projects")
    if not isinstance(raw_workers, list) or not isinstance(raw_projects, list):
        raise ValueError("instance requires 'workers' and 'projects' arrays")

    workers: List[Worker] = []
    for entry in raw_workers:
        name = _require_name(entry, "worker")
        skills = entry.get("skills", {})
        if not isinstance(skills, dict):
            raise ValueError(f"skills must be an object for worker {name}")
        cleaned: Dict[str, int] = {}
        for skill, level in skills.items():
            cleaned[str(skill)] = _require_int({"level": level}, "level", f"worker {name} skill {skill}")
        workers.append(Worker(name=name, skills=cleaned))

    projects: List[Project] = []
    for entry in raw_projects:
        name = _require_name(entry, "project")
        label = f"project {name}"
        roles_raw = entry.get("roles", [])
        if not isinstance(roles_raw, list):
            raise ValueError(f"{label}: 'roles' must be an array")
        roles: List[RoleRequirement] = []
        for role in roles_raw:
            if not isinstance(role, dict) or not isinstance(role.get("skill"), str):
                raise ValueError(f"{label}: roles need a 'skill' string and a 'level'")
            roles.append(RoleRequirement(role["skill"], _require_int(role, "level", label)))
        projects.append(
            Project(
                name=name,
                duration=_require_int(entry, "duration", label, positive=True),
                score=_require_int(entry, "score", label),
                before=_require_int(entry, "before", label),
                roles=tuple(roles),
            )
        )

    _ensure_unique((worker.name for worker in workers), "worker")
    _ensure_unique((project.name for project in projects), "project")
    return workers, projects


def _optional_count(data: Dict[str, object], key: str, *, allow_zero: bool) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer or null")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{key} must be {'non-negative' if allow_zero else 'positive'}")
    return value


def _parse_optional_date(value: object, field_name: str) -> Optional[date]:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    try:
        return dateparser.isoparse(str(value)).date()
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid date in '{field_name}': {value}") from exc


def config_from_dict(data: object) -> SimulationConfig:
    if not isinstance(data, dict):
        raise ValueError("config must be a JSON object")
    logging_level = data.get("logging_level", "INFO")
    if not isinstance(logging_level, str):
        raise ValueError("logging_level must be a string")
    return SimulationConfig(
        logging_level=logging_level,
        max_days=_optional_count(data, "max_days", allow_zero=False),
        max_postponements=_optional_count(data, "max_postponements", allow_zero=True),
        calendar_start=_parse_optional_date(data.get("calendar_start"), "calendar_start"),
    )


def load_config(path: str | Path) -> SimulationConfig:
    return config_from_dict(json.loads(Path(path).read_text()))


def format_report(completed: Sequence[Assignment]) -> str:
    lines = [str(len(completed))]
    for assignment in completed:
        lines.append(assignment.project.name)
        lines.append(" ".join(assignment.workers))
    return "\n".join(lines) + "\n"


def write_report(completed: Sequence[Assignment], path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    Path(path).write_text(format_report(completed))


def ensure_directory(path: str | Path) -> Path:
    target = Path(path)
    target.mkdir(parents=True, exist_ok=True)
    return target


def write_csv(df: pd.DataFrame, path: str | Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
