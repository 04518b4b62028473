"""
Recommendations for projects the simulation could not staff.

Looks at the role that blocked each unstaffed project and suggests either:
- Hiring (nobody on the roster holds the skill)
- Training (someone holds the skill, but below the required level)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .models import Worker


@dataclass
class HiringRecommendation:
    """Recommendation to hire someone with a missing skill."""
    skill: str
    level: int
    reason: str
    affected_projects: List[str]
    severity: str  # "critical", "high", "medium"


@dataclass
class TrainingRecommendation:
    """Recommendation to train an existing worker up to a required level."""
    worker: str
    skill: str
    current_level: int
    target_level: int
    reason: str
    affected_projects: List[str]
    priority: str  # "high", "medium", "low"


class RecommendationEngine:
    """Turns the unstaffed list of a simulation result into actionable suggestions."""

    def __init__(self, unstaffed: Sequence[Dict[str, object]], workers: Sequence[Worker]):
        self.unstaffed = unstaffed
        self.workers = workers

        self.hiring_recommendations: List[HiringRecommendation] = []
        self.training_recommendations: List[TrainingRecommendation] = []

    def analyze(self) -> Dict[str, object]:
        self._analyze_skill_gaps()
        self._prioritize_recommendations()

        return {
            "hiring": [self._hiring_to_dict(h) for h in self.hiring_recommendations],
            "training": [self._training_to_dict(t) for t in self.training_recommendations],
            "summary": self._generate_summary(),
        }

    def _blocking_roles(self) -> Dict[tuple, List[str]]:
        """Group unstaffed projects by the (skill, level) that blocked them."""
        blocked: Dict[tuple, List[str]] = defaultdict(list)
        for item in self.unstaffed:
            detail = item.get("detail")
            if not isinstance(detail, dict) or "skill" not in detail:
                continue
            blocked[(str(detail["skill"]), int(detail["level"]))].append(str(item["name"]))
        return blocked

    def _best_holder(self, skill: str) -> Optional[Worker]:
        holders = [worker for worker in self.workers if skill in worker.skills]
        if not holders:
            return None
        # Highest level wins; roster order breaks ties.
        return max(holders, key=lambda worker: worker.skills[skill])

    def _analyze_skill_gaps(self):
        for (skill, level), projects in self._blocking_roles().items():
            holder = self._best_holder(skill)
            if holder is None:
                self.hiring_recommendations.append(HiringRecommendation(
                    skill=skill,
                    level=level,
                    reason=f"no worker holds {skill}; required by {len(projects)} project(s)",
                    affected_projects=sorted(projects),
                    severity="critical",
                ))
                continue

            current = holder.skills[skill]
            if current >= level:
                # Qualified people exist; they were simply never free together.
                self.hiring_recommendations.append(HiringRecommendation(
                    skill=skill,
                    level=level,
                    reason=f"qualified {skill} workers were always busy",
                    affected_projects=sorted(projects),
                    severity="high" if len(projects) >= 3 else "medium",
                ))
                continue

            gap = level - current
            self.training_recommendations.append(TrainingRecommendation(
                worker=holder.name,
                skill=skill,
                current_level=current,
                target_level=level,
                reason=f"{holder.name} is {gap} level(s) short of {skill} {level}",
                affected_projects=sorted(projects),
                priority="high" if gap == 1 else "medium" if gap <= 3 else "low",
            ))

    def _prioritize_recommendations(self):
        severity_order = {"critical": 0, "high": 1, "medium": 2}
        self.hiring_recommendations.sort(
            key=lambda h: (severity_order.get(h.severity, 999), -len(h.affected_projects), h.skill)
        )

        priority_order = {"high": 0, "medium": 1, "low": 2}
        self.training_recommendations.sort(
            key=lambda t: (priority_order.get(t.priority, 999), t.worker, t.skill)
        )

    def _generate_summary(self) -> Dict[str, object]:
        return {
            "unstaffed_projects": len(self.unstaffed),
            "total_hiring_needs": len(self.hiring_recommendations),
            "critical_hires": sum(1 for h in self.hiring_recommendations if h.severity == "critical"),
            "training_opportunities": len(self.training_recommendations),
        }

    @staticmethod
    def _hiring_to_dict(h: HiringRecommendation) -> Dict:
        return {
            "type": "hiring",
            "skill": h.skill,
            "level": h.level,
            "reason": h.reason,
            "affected_projects": h.affected_projects,
            "severity": h.severity,
        }

    @staticmethod
    def _training_to_dict(t: TrainingRecommendation) -> Dict:
        return {
            "type": "training",
            "worker": t.worker,
            "skill": t.skill,
            "current_level": t.current_level,
            "target_level": t.target_level,
            "reason": t.reason,
            "affected_projects": t.affected_projects,
            "priority": t.priority,
        }
