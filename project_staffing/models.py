from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Optional, Tuple


Skill = str


@dataclass
class Worker:
    """Roster entry; skill levels grow as the worker completes projects."""

    name: str
    skills: Dict[Skill, int] = field(default_factory=dict)

    def qualifies_for(self, requirement: RoleRequirement) -> bool:
        current = self.skills.get(requirement.skill)
        return current is not None and current >= requirement.level

    def snapshot(self) -> Dict[Skill, int]:
        return dict(self.skills)


@dataclass(frozen=True)
class RoleRequirement:
    skill: Skill
    level: int


@dataclass(frozen=True)
class Project:
    """Backlog entry: fixed duration, value and deadline plus ordered roles."""

    name: str
    duration: int
    score: int
    before: int
    roles: Tuple[RoleRequirement, ...]

    def priority_on(self, day: int) -> int:
        """Base score plus the slack left before the deadline on ``day``."""
        return self.score + max(0, self.before - day)

    def finish_day(self, start_day: int) -> int:
        return start_day + self.duration

    def late_days(self, start_day: int) -> int:
        return max(0, self.finish_day(start_day) - self.before)

    def earned_score(self, start_day: int) -> int:
        return max(0, self.score - self.late_days(start_day))


@dataclass(frozen=True)
class Assignment:
    """A fully staffed project: one worker name per role position."""

    project: Project
    start_day: int
    workers: Tuple[str, ...]

    @property
    def end_day(self) -> int:
        return self.start_day + self.project.duration - 1

    def is_finished_by(self, day: int) -> bool:
        # Finished once its last working day is ``day`` or earlier.
        return self.end_day <= day

    def bindings(self) -> Iterable[Tuple[RoleRequirement, str]]:
        return zip(self.project.roles, self.workers)


@dataclass(frozen=True)
class SimulationConfig:
    logging_level: str = "INFO"
    max_days: Optional[int] = None
    max_postponements: Optional[int] = None
    calendar_start: Optional[date] = None

    def horizon_reached(self, day: int) -> bool:
        return self.max_days is not None and day >= self.max_days

    def postponement_limit_exceeded(self, count: int) -> bool:
        return self.max_postponements is not None and count > self.max_postponements
