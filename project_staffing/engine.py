from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

import pandas as pd
from dateutil.relativedelta import relativedelta

from .models import Assignment, Project, RoleRequirement, SimulationConfig, Worker
from .priority import PendingQueue

logger = logging.getLogger(__name__)

DATE_FMT = "%Y-%m-%d"

REASON_NO_ELIGIBLE_WORKER = "no_eligible_worker"
REASON_POSTPONEMENT_LIMIT = "postponement_limit"
REASON_HORIZON = "horizon_reached"


class UnstaffableProjectError(RuntimeError):
    def __init__(self, project: Project, reason: str) -> None:
        super().__init__(f"Project {project.name} unstaffable: {reason}")
        self.project = project
        self.reason = reason


@dataclass
class SimulationResult:
    completed: List[Assignment]
    unstaffed: List[Dict[str, object]]
    days_elapsed: int
    workers: List[Worker]
    initial_skills: Dict[str, Dict[str, int]]

    @property
    def total_score(self) -> int:
        return sum(item.project.earned_score(item.start_day) for item in self.completed)


@dataclass
class StaffingAttempt:
    """Outcome of trying to fill every role of one project on one day."""

    project: Project
    workers: List[str] = field(default_factory=list)
    blocked_role: Optional[RoleRequirement] = None
    blocked_position: Optional[int] = None

    @property
    def complete(self) -> bool:
        return self.blocked_role is None and len(self.workers) == len(self.project.roles)


def _describe_block(attempt: StaffingAttempt, roster: Sequence[Worker]) -> Tuple[str, Dict[str, object]]:
    role = attempt.blocked_role
    if role is None:
        return "no blocking role recorded", {}
    holders = [
        {"name": worker.name, "level": worker.skills[role.skill]}
        for worker in roster
        if role.skill in worker.skills
    ]
    detail: Dict[str, object] = {
        "skill": role.skill,
        "level": role.level,
        "position": attempt.blocked_position,
        "holders": holders,
    }
    if not holders:
        reason = f"no worker holds skill '{role.skill}'"
    elif all(int(entry["level"]) < role.level for entry in holders):
        best = max(int(entry["level"]) for entry in holders)
        reason = f"'{role.skill}' needs level {role.level}; best available level is {best}"
    else:
        reason = f"every worker qualified for '{role.skill}' level {role.level} stayed busy"
    return reason, detail


class Scheduler:
    """Day-by-day greedy staffing of a project backlog.

    Owns the roster, the pending queue and the active assignments for one run.
    Workers are matched first-fit in roster order; projects that cannot be fully
    staffed are postponed to the next day with their priority recomputed.
    """

    def __init__(
        self,
        workers: Sequence[Worker],
        projects: Sequence[Project],
        config: Optional[SimulationConfig] = None,
        *,
        strict: bool = False,
    ) -> None:
        self.config = config or SimulationConfig()
        self.strict = strict
        # Skills grow during the run; the caller's roster stays untouched.
        self.workers: List[Worker] = [Worker(worker.name, worker.snapshot()) for worker in workers]
        self._by_name = {worker.name: worker for worker in self.workers}
        self.initial_skills = {worker.name: worker.snapshot() for worker in self.workers}
        self.day = 0
        self._sequence = itertools.count()
        self.pending = PendingQueue(self._sequence)
        self.postponed = PendingQueue(self._sequence)
        self.active: List[Assignment] = []
        self.completed: List[Assignment] = []
        self.busy: Set[str] = set()
        self.postponements: Dict[str, int] = {}
        self.last_attempts: Dict[str, StaffingAttempt] = {}
        self.unstaffed: List[Dict[str, object]] = []
        for project in projects:
            self.pending.push(project, self.day)

    def attempt(self, project: Project) -> StaffingAttempt:
        """Fill roles in declared order with the first idle, qualified worker."""
        attempt = StaffingAttempt(project)
        claimed: Set[str] = set()
        for position, role in enumerate(project.roles):
            chosen = next(
                (
                    worker
                    for worker in self.workers
                    if worker.name not in self.busy
                    and worker.name not in claimed
                    and worker.qualifies_for(role)
                ),
                None,
            )
            if chosen is None:
                attempt.blocked_role = role
                attempt.blocked_position = position
                attempt.workers.clear()
                return attempt
            claimed.add(chosen.name)
            attempt.workers.append(chosen.name)
        return attempt

    def _commit(self, attempt: StaffingAttempt) -> Assignment:
        assignment = Assignment(attempt.project, self.day, tuple(attempt.workers))
        self.busy.update(assignment.workers)
        self.active.append(assignment)
        self.last_attempts.pop(attempt.project.name, None)
        logger.debug(
            "day %d: started %s with %s", self.day, attempt.project.name, " ".join(assignment.workers)
        )
        return assignment

    def _postpone(self, attempt: StaffingAttempt) -> None:
        project = attempt.project
        count = self.postponements.get(project.name, 0) + 1
        self.postponements[project.name] = count
        self.last_attempts[project.name] = attempt
        if self.config.postponement_limit_exceeded(count):
            reason, detail = _describe_block(attempt, self.workers)
            detail["postponements"] = count
            logger.info("abandoning %s after %d postponements", project.name, count)
            self._record_unstaffed(
                project, f"postponement limit reached ({reason})", REASON_POSTPONEMENT_LIMIT, detail
            )
            return
        self.postponed.push(project, self.day + 1)

    def _record_unstaffed(
        self, project: Project, reason: str, reason_code: str, detail: Dict[str, object]
    ) -> None:
        if self.strict:
            raise UnstaffableProjectError(project, reason)
        self.unstaffed.append(
            {
                "name": project.name,
                "reason": reason,
                "detail": {**detail, "reason_code": reason_code},
            }
        )

    def staff_pending(self) -> List[Assignment]:
        started: List[Assignment] = []
        while True:
            entry = self.pending.pop()
            if entry is None:
                break
            attempt = self.attempt(entry.project)
            if attempt.complete:
                started.append(self._commit(attempt))
            else:
                self._postpone(attempt)
        return started

    def _grow_skills(self, assignment: Assignment) -> None:
        for role, name in assignment.bindings():
            worker = self._by_name[name]
            current = worker.skills.get(role.skill)
            if current is not None and current <= role.level:
                worker.skills[role.skill] = current + 1
                logger.debug("%s improved %s to %d", name, role.skill, current + 1)

    def retire_finished(self) -> List[Assignment]:
        finished = [item for item in self.active if item.is_finished_by(self.day)]
        if not finished:
            return finished
        self.active = [item for item in self.active if not item.is_finished_by(self.day)]
        for assignment in finished:
            self._grow_skills(assignment)
            self.busy.difference_update(assignment.workers)
            self.completed.append(assignment)
            logger.debug("day %d: finished %s", self.day, assignment.project.name)
        return finished

    def _abandon_remaining(self, reason: str, reason_code: str) -> None:
        leftovers = self.pending.projects() + self.postponed.projects()
        for project in leftovers:
            attempt = self.last_attempts.get(project.name)
            if attempt is not None:
                block_reason, detail = _describe_block(attempt, self.workers)
                message = f"{reason} ({block_reason})"
            else:
                detail, message = {}, reason
            detail["postponements"] = self.postponements.get(project.name, 0)
            self._record_unstaffed(project, message, reason_code, detail)
        self.pending = PendingQueue(self._sequence)
        self.postponed = PendingQueue(self._sequence)

    def step(self) -> bool:
        """Run one simulated day; return False once no further progress is possible."""
        if self.config.horizon_reached(self.day):
            logger.info("stopping at simulation horizon day %d", self.day)
            for assignment in self.active:
                self.busy.difference_update(assignment.workers)
                self._record_unstaffed(
                    assignment.project,
                    "simulation horizon reached before completion",
                    REASON_HORIZON,
                    {"start_day": assignment.start_day, "workers": list(assignment.workers)},
                )
            self.active = []
            self.pending.absorb(self.postponed)
            self._abandon_remaining("simulation horizon reached", REASON_HORIZON)
            return False

        self.staff_pending()

        if not self.active:
            # Idle roster and nothing staffable: no skill can change any more.
            if self.postponed:
                logger.info(
                    "day %d: %d project(s) cannot be staffed with the current roster",
                    self.day,
                    len(self.postponed),
                )
            self._abandon_remaining("no eligible worker", REASON_NO_ELIGIBLE_WORKER)
            return False

        self.retire_finished()
        self.day += 1
        self.pending.absorb(self.postponed)
        return bool(self.pending) or bool(self.active)

    def run(self) -> SimulationResult:
        while self.step():
            pass
        logger.info(
            "simulation finished after %d day(s): %d completed, %d unstaffed",
            self.day,
            len(self.completed),
            len(self.unstaffed),
        )
        return SimulationResult(
            completed=list(self.completed),
            unstaffed=list(self.unstaffed),
            days_elapsed=self.day,
            workers=self.workers,
            initial_skills=self.initial_skills,
        )


def simulate(
    workers: Sequence[Worker],
    projects: Sequence[Project],
    config: Optional[SimulationConfig] = None,
    *,
    strict: bool = False,
) -> SimulationResult:
    return Scheduler(workers, projects, config, strict=strict).run()


def _calendar_label(config: Optional[SimulationConfig], day: int) -> Optional[str]:
    if config is None or config.calendar_start is None:
        return None
    return (config.calendar_start + relativedelta(days=day)).strftime(DATE_FMT)


def timeline_frame(result: SimulationResult, config: Optional[SimulationConfig] = None) -> pd.DataFrame:
    columns = [
        "project",
        "start_day",
        "end_day",
        "duration",
        "score",
        "before",
        "late_days",
        "earned_score",
        "workers",
    ]
    with_calendar = config is not None and config.calendar_start is not None
    if with_calendar:
        columns += ["start_date", "end_date"]
    rows: List[Dict[str, object]] = []
    for assignment in result.completed:
        project = assignment.project
        row: Dict[str, object] = {
            "project": project.name,
            "start_day": assignment.start_day,
            "end_day": assignment.end_day,
            "duration": project.duration,
            "score": project.score,
            "before": project.before,
            "late_days": project.late_days(assignment.start_day),
            "earned_score": project.earned_score(assignment.start_day),
            "workers": " ".join(assignment.workers),
        }
        if with_calendar:
            row["start_date"] = _calendar_label(config, assignment.start_day)
            row["end_date"] = _calendar_label(config, assignment.end_day)
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def skills_frame(result: SimulationResult) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    for worker in result.workers:
        initial = result.initial_skills.get(worker.name, {})
        for skill in sorted(worker.skills):
            final_level = worker.skills[skill]
            initial_level = initial.get(skill, 0)
            rows.append(
                {
                    "worker": worker.name,
                    "skill": skill,
                    "initial_level": initial_level,
                    "final_level": final_level,
                    "gained": final_level - initial_level,
                }
            )
    return pd.DataFrame(rows, columns=["worker", "skill", "initial_level", "final_level", "gained"])
