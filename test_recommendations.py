from project_staffing.engine import simulate
from project_staffing.models import Project, RoleRequirement, Worker
from project_staffing.recommendations import RecommendationEngine


def _project(name, *roles):
    return Project(name=name, duration=1, score=10, before=5, roles=tuple(RoleRequirement(s, l) for s, l in roles))


def test_missing_skill_recommends_critical_hire():
    result = simulate([Worker("Ann", {"py": 1})], [_project("Gpu", ("cuda", 2)), _project("Gpu2", ("cuda", 2))])
    report = RecommendationEngine(result.unstaffed, result.workers).analyze()

    assert report["hiring"] == [
        {
            "type": "hiring",
            "skill": "cuda",
            "level": 2,
            "reason": "no worker holds cuda; required by 2 project(s)",
            "affected_projects": ["Gpu", "Gpu2"],
            "severity": "critical",
        }
    ]
    assert report["training"] == []
    assert report["summary"]["critical_hires"] == 1
    assert report["summary"]["unstaffed_projects"] == 2


def test_underqualified_holder_gets_training():
    roster = [Worker("Ann", {"py": 1}), Worker("Ben", {"py": 3})]
    result = simulate(roster, [_project("Compiler", ("py", 4))])
    report = RecommendationEngine(result.unstaffed, result.workers).analyze()

    assert report["hiring"] == []
    training = report["training"][0]
    assert training["worker"] == "Ben"
    assert (training["current_level"], training["target_level"]) == (3, 4)
    assert training["priority"] == "high"


def test_busy_qualified_workers_suggest_hiring_capacity():
    unstaffed = [
        {"name": "P", "reason": "", "detail": {"skill": "py", "level": 1, "holders": [{"name": "Ann", "level": 2}]}}
    ]
    report = RecommendationEngine(unstaffed, [Worker("Ann", {"py": 2})]).analyze()

    assert report["hiring"][0]["severity"] == "medium"
    assert report["hiring"][0]["reason"] == "qualified py workers were always busy"


def test_entries_without_blocking_role_are_ignored():
    unstaffed = [{"name": "P", "reason": "simulation horizon reached", "detail": {"start_day": 0}}]
    report = RecommendationEngine(unstaffed, []).analyze()

    assert report["hiring"] == [] and report["training"] == []
    assert report["summary"]["unstaffed_projects"] == 1
