from __future__ import annotations

from typing import List, Optional, Sequence


class InstallerError(Exception):
    """Base class for every failure the installer reports on purpose."""

    exit_code = 1


class ConfigError(InstallerError):
    """Bad flags, unsupported host, missing prerequisites. Raised before side effects."""


class CommandError(InstallerError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "", output: Optional[str] = None) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        # stdout and stderr together; conda reports solver errors on stdout.
        self.output = stderr if output is None else output
        super().__init__(f"Command failed ({returncode}): {' '.join(self.argv)}")

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.returncode or 1


class DependencyInstallError(InstallerError):
    def __init__(self, manager: str, output: str) -> None:
        self.manager = manager
        self.output = output
        super().__init__(f"{manager} install failed:\n{output}")


class FetchError(InstallerError):
    def __init__(self, name: str, attempts: int, cause: Optional[BaseException] = None) -> None:
        self.name = name
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Download of {name} failed after {attempts} attempt(s): {cause}")


class FetchPhaseError(InstallerError):
    def __init__(self, failed: List[str]) -> None:
        self.failed = list(failed)
        super().__init__(f"Download failed for: {', '.join(self.failed)}")


class UnpackError(InstallerError):
    def __init__(self, archive: str, cause: BaseException) -> None:
        self.archive = archive
        self.cause = cause
        super().__init__(f"Unpacking {archive} failed (archive left in place): {cause}")


class StepError(InstallerError):
    """A pipeline step failed. Carries the step id and the original cause."""

    def __init__(self, step_id: str, cause: BaseException) -> None:
        self.step_id = step_id
        self.cause = cause
        super().__init__(f"Step {step_id} failed: {cause}")

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return exit_code_for(self.cause)


def exit_code_for(exc: BaseException) -> int:
    if isinstance(exc, InstallerError):
        return int(exc.exit_code)
    return 1


def describe_chain(exc: BaseException) -> List[str]:
    """Flatten the cause chain into printable lines (outermost first)."""

    lines: List[str] = []
    seen = set()
    cur: Optional[BaseException] = exc
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        lines.append(f"{type(cur).__name__}: {cur}")
        nxt = getattr(cur, "cause", None)
        if not isinstance(nxt, BaseException):
            nxt = cur.__cause__
        cur = nxt
    return lines
