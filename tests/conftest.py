from __future__ import annotations

from pathlib import Path

import pytest

from sovits_installer.lib.fetch import FetchTask


@pytest.fixture
def make_task(tmp_path: Path):
    def _make(name: str, *, present: bool = False, policy=None) -> FetchTask:
        return FetchTask(
            name=name,
            url=f"https://example.invalid/{name}.zip",
            dest=tmp_path / f"{name}.zip",
            is_present=lambda: present,
            policy=policy,
        )

    return _make


@pytest.fixture
def base_state(tmp_path: Path):
    return {
        "config": {
            "device": "CPU",
            "source": "HF",
            "download_uvr5": False,
            "workflow": False,
            "workdir": str(tmp_path),
            "dry_run": False,
        },
        "host": {},
        "execution": {"completed_steps": [], "errors": [], "warnings": []},
    }
