import json

import pandas as pd
import pytest

from project_staffing.main import main


@pytest.fixture
def sample_with_gap(tmp_path, sample_text):
    _, rest = sample_text.split("\n", 1)
    text = "3 4\n" + rest + "Blockchain 3 40 10 1\nSolidity 1\n"
    input_dir = tmp_path / "input"
    input_dir.mkdir()
    (input_dir / "instance.txt").write_text(text)
    (input_dir / "config.json").write_text(json.dumps({"logging_level": "WARNING", "calendar_start": "2024-01-01"}))
    return tmp_path


def test_cli_writes_outputs(sample_with_gap, capsys):
    main(["--instance-dir", str(sample_with_gap)])

    output_dir = sample_with_gap / "output"
    report = (output_dir / "submission.txt").read_text()
    assert report.splitlines()[0] == "3"
    timeline = pd.read_csv(output_dir / "assignment_timeline.csv")
    assert list(timeline["project"]) == ["WebChat", "WebServer", "Logging"]
    assert timeline.loc[0, "start_date"] == "2024-01-01"
    skills = pd.read_csv(output_dir / "worker_skills.csv")
    assert set(skills["worker"]) == {"Anna", "Bob", "Maria"}
    markdown = (output_dir / "unstaffed_projects.md").read_text()
    assert "**Blockchain**" in markdown
    assert "Hire Solidity level 1 (critical)" in markdown
    out = capsys.readouterr().out
    assert "Blockchain" in out


def test_cli_dry_run_prints_summary(sample_with_gap, capsys):
    main(["--instance-dir", str(sample_with_gap), "--dry-run"])

    out = capsys.readouterr().out
    assert "- WebChat: day 0 → 9 (10 days) Maria Bob" in out
    assert "Total score: 20" in out
    assert "- Blockchain: no eligible worker" in out
    assert not (sample_with_gap / "output").exists()


def test_cli_strict_exits_with_code_one(sample_with_gap):
    with pytest.raises(SystemExit) as excinfo:
        main(["--instance-dir", str(sample_with_gap), "--strict", "--dry-run"])
    assert excinfo.value.code == 1


def test_cli_max_days_override(sample_with_gap, capsys):
    main(["--instance-dir", str(sample_with_gap), "--dry-run", "--max-days", "5"])

    out = capsys.readouterr().out
    assert "No projects completed." in out
    assert "- WebChat: simulation horizon reached before completion" in out


def test_cli_missing_instance_exits_with_code_two(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["--instance", str(tmp_path / "missing.txt")])
    assert excinfo.value.code == 2
    assert "instance file not found" in capsys.readouterr().err


def test_cli_requires_an_instance(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([])
    assert excinfo.value.code == 2
    assert "--instance" in capsys.readouterr().err


def test_cli_explicit_paths_and_outdir(tmp_path, sample_text):
    instance = tmp_path / "a.txt"
    instance.write_text(sample_text)
    outdir = tmp_path / "results"

    main(["--instance", str(instance), "--outdir", str(outdir)])

    assert (outdir / "submission.txt").read_text().startswith("3\nWebChat\n")
    assert "All projects were staffed." in (outdir / "unstaffed_projects.md").read_text()
