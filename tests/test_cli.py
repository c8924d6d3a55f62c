from __future__ import annotations

import json
import logging

import pytest

from sovits_installer import main as main_mod
from sovits_installer.errors import CommandError, DependencyInstallError
from sovits_installer.lib.orchestrator import OrchestrationResult


@pytest.fixture(autouse=True)
def in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(main_mod, "configure_logging", lambda log_path: log_path)
    monkeypatch.delenv("WORKFLOW", raising=False)
    return tmp_path


def test_no_arguments_prints_help(capsys, tmp_path):
    assert main_mod.main([]) == 0
    out = capsys.readouterr().out
    assert "--device" in out and "--source" in out
    assert list(tmp_path.iterdir()) == []


def test_help_flag_exits_zero():
    with pytest.raises(SystemExit) as ei:
        main_mod.main(["--help"])
    assert ei.value.code == 0


@pytest.mark.parametrize(
    "argv",
    [
        ["--device", "TPU", "--source", "HF"],
        ["--device", "CPU", "--source", "Elsewhere"],
        ["--device", "CPU"],
        ["--source", "HF"],
        ["--device", "CPU", "--source", "HF", "--bogus"],
    ],
)
def test_invalid_arguments_exit_one(argv, capsys):
    with pytest.raises(SystemExit) as ei:
        main_mod.main(argv)
    assert ei.value.code == 1
    assert "usage:" in capsys.readouterr().err


class _Step:
    def __init__(self, step_id, exc=None):
        self.step_id = step_id
        self.exc = exc
        self.ran = False

    def run(self, state):
        self.ran = True
        if self.exc:
            raise self.exc
        return state


def _with_steps(monkeypatch, steps):
    monkeypatch.setattr(main_mod, "build_steps", lambda settings=None: steps)


def test_success_persists_state(monkeypatch, tmp_path):
    _with_steps(monkeypatch, [_Step("10_a"), _Step("20_b")])

    assert main_mod.main(["--device", "CPU", "--source", "HF", "--download-uvr5"]) == 0

    state = json.loads((tmp_path / ".sovits-installer/state.json").read_text())
    assert state["config"]["device"] == "CPU"
    assert state["config"]["download_uvr5"] is True
    assert state["execution"]["completed_steps"] == ["10_a", "20_b"]


def test_dependency_failure_exits_one(monkeypatch, tmp_path):
    later = _Step("40_unpack")
    _with_steps(monkeypatch, [_Step("20_deps", DependencyInstallError("Conda", "solver error")), later])

    assert main_mod.main(["--device", "CPU", "--source", "HF"]) == 1

    assert not later.ran
    state = json.loads((tmp_path / ".sovits-installer/state.json").read_text())
    assert state["execution"]["errors"][0]["step"] == "20_deps"


def test_command_failure_uses_command_exit_code(monkeypatch):
    _with_steps(monkeypatch, [_Step("70_post", CommandError(["uv", "pip", "show", "torch"], 2, "not found"))])
    assert main_mod.main(["--device", "CPU", "--source", "HF"]) == 2


def test_unexpected_error_exits_one(monkeypatch):
    _with_steps(monkeypatch, [_Step("10_a", KeyError("boom"))])
    assert main_mod.main(["--device", "CPU", "--source", "HF"]) == 1


def test_resume_skips_completed_steps(monkeypatch):
    first = [_Step("10_a"), _Step("20_b", DependencyInstallError("UV Pip", "x"))]
    _with_steps(monkeypatch, first)
    assert main_mod.main(["--device", "CPU", "--source", "HF"]) == 1

    second = [_Step("10_a"), _Step("20_b")]
    _with_steps(monkeypatch, second)
    assert main_mod.main(["--device", "CPU", "--source", "HF"]) == 0
    assert not second[0].ran
    assert second[1].ran


def test_dry_run_full_pipeline(monkeypatch, tmp_path):
    from sovits_installer import steps as st
    from sovits_installer.lib import resources

    monkeypatch.setattr(resources, "python_prefix", lambda: tmp_path / "prefix")
    monkeypatch.setattr(resources, "pyopenjtalk_dir", lambda: None)

    def detect(dry_run=False):
        return {"machine": "x86_64", "arch": "amd64", "is_macos": False, "conda": True, "gcc_major": 12}

    _with_steps(
        monkeypatch,
        [
            st.DetectHostStep(detect=detect),
            st.InstallSystemDepsStep(),
            st.FetchResourcesStep(),
            st.UnpackResourcesStep(),
            st.InstallTorchStep(),
            st.InstallRequirementsStep(),
            st.PostInstallStep(),
        ],
    )

    assert main_mod.main(["--device", "CPU", "--source", "HF", "--dry-run"]) == 0

    state = json.loads((tmp_path / ".sovits-installer/state.json").read_text())
    assert state["execution"]["summary"]["ran_steps"][-1] == "70_post_install"
    assert "pretrained_models" in state["execution"]["fetch"]["planned"]


class _FailingOrchestrator:
    def __init__(self):
        self.tasks = None

    def run(self, tasks):
        self.tasks = list(tasks)
        names = [t.name for t in self.tasks]
        return OrchestrationResult(ok=False, failed=[names[0]], fetched=names[1:])


def test_fetch_failure_stops_before_unpack(monkeypatch, tmp_path):
    from sovits_installer import steps as st
    from sovits_installer.lib import resources

    monkeypatch.setattr(resources, "python_prefix", lambda: tmp_path / "prefix")
    monkeypatch.setattr(resources, "pyopenjtalk_dir", lambda: None)
    orch = _FailingOrchestrator()
    unpack = _Step("40_unpack_resources")
    _with_steps(monkeypatch, [st.FetchResourcesStep(orchestrator=orch), unpack])

    assert main_mod.main(["--device", "CPU", "--source", "HF"]) == 1

    assert not unpack.ran
    assert orch.tasks
    state = json.loads((tmp_path / ".sovits-installer/state.json").read_text())
    assert state["execution"]["errors"][0]["step"] == "30_fetch_resources"
    assert state["execution"]["fetch"]["failed"] == ["pretrained_models"]


def test_corrupt_state_is_logged_and_kept(monkeypatch, tmp_path, caplog):
    state_file = tmp_path / ".sovits-installer/state.json"
    state_file.parent.mkdir()
    state_file.write_text("{not json")
    step = _Step("10_a")
    _with_steps(monkeypatch, [step])

    with caplog.at_level(logging.ERROR):
        assert main_mod.main(["--device", "CPU", "--source", "HF"]) == 1

    assert "Installer failed" in caplog.text
    assert "JSONDecodeError" in caplog.text
    assert state_file.read_text() == "{not json"
    assert not step.ran
