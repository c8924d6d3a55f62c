from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

# Changing any of these invalidates previously completed steps.
SELECTION_KEYS = ("device", "source", "download_uvr5", "workflow")


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    return "json"


def _yaml():
    try:
        import yaml  # type: ignore
    except ImportError as e:  # pragma: no cover
        raise RuntimeError("YAML state requested but PyYAML is not available. Use a .json state path.") from e
    return yaml


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    if _detect_format(p) == "yaml":
        data = _yaml().safe_load(text) or {}
    else:
        data = json.loads(text)

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")
    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) == "yaml":
        p.write_text(_yaml().safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with defaults (without overriding stored values)."""

    state.setdefault("version", 1)
    state.setdefault("config", {})
    state.setdefault("host", {})
    state.setdefault("execution", {})

    cfg = state["config"]
    cfg.setdefault("device", None)
    cfg.setdefault("source", None)
    cfg.setdefault("download_uvr5", False)
    cfg.setdefault("workflow", False)
    cfg.setdefault("workdir", ".")
    cfg.setdefault("dry_run", False)

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])
    exe.setdefault("warnings", [])

    return state


def apply_selection(state: Dict[str, Any], selection: Dict[str, Any]) -> bool:
    """Store the run's selection in config; reset progress if it differs from the stored one.

    Returns True when completed steps were reset.
    """

    cfg = state.setdefault("config", {})
    changed = any(
        k in cfg and cfg.get(k) is not None and cfg.get(k) != selection.get(k)
        for k in SELECTION_KEYS
    )
    cfg.update(selection)
    if changed:
        logger.info("Install selection changed; previously completed steps will run again")
        state.setdefault("execution", {})["completed_steps"] = []
    return changed


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed


def add_warning(state: Dict[str, Any], **warning: Any) -> None:
    state.setdefault("execution", {}).setdefault("warnings", []).append(warning)
