from __future__ import annotations

import sys

import pytest

from sovits_installer.errors import CommandError
from sovits_installer.lib.command import run_cmd


def test_captures_output():
    r = run_cmd([sys.executable, "-c", "print('hello')"])
    assert r.returncode == 0
    assert r.stdout.strip() == "hello"


def test_failure_carries_return_code():
    with pytest.raises(CommandError) as ei:
        run_cmd([sys.executable, "-c", "import sys; sys.stderr.write('bad'); sys.exit(3)"])
    assert ei.value.returncode == 3
    assert ei.value.exit_code == 3
    assert "bad" in ei.value.stderr


def test_unchecked_failure_returns_result():
    r = run_cmd([sys.executable, "-c", "import sys; sys.exit(4)"], check=False)
    assert r.returncode == 4


def test_missing_executable_is_127():
    with pytest.raises(CommandError) as ei:
        run_cmd(["definitely-not-a-real-binary-xyz"])
    assert ei.value.returncode == 127


def test_dry_run_does_not_execute():
    r = run_cmd(["definitely-not-a-real-binary-xyz"], dry_run=True)
    assert r.returncode == 0
    assert r.stdout == ""


def test_failure_output_includes_stdout():
    with pytest.raises(CommandError) as ei:
        run_cmd([sys.executable, "-c", "print('PackagesNotFoundError: gxx=11'); raise SystemExit(1)"])
    assert ei.value.stderr == ""
    assert "PackagesNotFoundError" in ei.value.output
