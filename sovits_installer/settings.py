from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError
from .lib.fetch import RetryPolicy


@dataclass(frozen=True)
class InstallerSettings:
    """Optional tuning loaded from YAML. Every key has a default."""

    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def _fetch(self) -> Dict[str, Any]:
        return dict(self.raw.get("fetch") or {})

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy.from_mapping(self._fetch)

    def resource_policy(self, name: str) -> Optional[RetryPolicy]:
        """Per-resource override merged over the global policy, or None if not configured."""

        per = (self._fetch.get("resources") or {}).get(name)
        if not per:
            return None
        return RetryPolicy.from_mapping(per, base=self.retry_policy)

    @property
    def max_workers(self) -> Optional[int]:
        v = self._fetch.get("max_workers")
        return int(v) if v else None

    def mirror_url(self, source: str) -> Optional[str]:
        v = (self.raw.get("mirrors") or {}).get(source)
        return str(v).rstrip("/") if v else None


def load_settings(path: Optional[str]) -> InstallerSettings:
    if not path:
        return InstallerSettings()

    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Settings file not found: {path}")
    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError("settings file must be YAML")

    try:
        import yaml  # type: ignore
    except ImportError as e:  # pragma: no cover
        raise RuntimeError("PyYAML is required to read installer settings") from e

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")

    settings = InstallerSettings(raw=raw)
    try:
        settings.retry_policy
        for name in (settings._fetch.get("resources") or {}):
            settings.resource_policy(name)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{path}: invalid fetch settings: {e}") from e
    return settings
