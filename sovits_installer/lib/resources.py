from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ..errors import ConfigError
from ..settings import InstallerSettings
from .archives import UnpackJob
from .command import run_cmd
from .fetch import FetchTask

logger = logging.getLogger(__name__)

MIRRORS: Dict[str, str] = {
    "HF": "https://huggingface.co/XXXXRT/GPT-SoVITS-Pretrained/resolve/main",
    "HF-Mirror": "https://hf-mirror.com/XXXXRT/GPT-SoVITS-Pretrained/resolve/main",
    "ModelScope": "https://www.modelscope.cn/models/XXXXRT/GPT-SoVITS-Pretrained/resolve/master",
}

MIRROR_LABELS = {
    "HF": "HuggingFace",
    "HF-Mirror": "HuggingFace-Mirror",
    "ModelScope": "ModelScope",
}

OPEN_JTALK_DIC = "open_jtalk_dic_utf_8-1.11"

# Interpreter on PATH, i.e. the activated conda env that uv installs into.
TARGET_PYTHON = "python"
_PYOPENJTALK_LOOKUP = (
    "import importlib.util as u; s = u.find_spec('pyopenjtalk'); print(s.origin if s and s.origin else '')"
)


def dir_exists(path: Path) -> bool:
    return path.is_dir()


def dir_has_content(path: Path, *, ignore: tuple[str, ...] = (".gitignore",)) -> bool:
    """True if ``path`` holds any entry besides the ignored placeholder files."""

    if not path.is_dir():
        return False
    return any(p.name not in ignore for p in path.iterdir())


def python_prefix() -> Path:
    """sys.prefix of the environment being installed into, not of this process."""

    out = run_cmd([TARGET_PYTHON, "-c", "import sys; print(sys.prefix)"]).stdout.strip()
    if not out:
        raise ConfigError(f"Could not determine the prefix of {TARGET_PYTHON}")
    return Path(out)


def pyopenjtalk_dir() -> Optional[Path]:
    """Package dir of pyopenjtalk in the target environment; None until it is installed."""

    r = run_cmd([TARGET_PYTHON, "-c", _PYOPENJTALK_LOOKUP], check=False)
    out = r.stdout.strip()
    if r.returncode != 0 or not out:
        return None
    return Path(out).parent


def _require_pyopenjtalk() -> Path:
    d = pyopenjtalk_dir()
    if d is None:
        raise ConfigError("pyopenjtalk is not installed; cannot place the Open JTalk dictionary")
    return d


@dataclass(frozen=True)
class Resource:
    name: str
    filename: str
    extract_to: Callable[[Path], Path]
    installed: Callable[[Path], bool]
    deferred: bool = False
    optional: bool = False


def _open_jtalk_installed(_workdir: Path) -> bool:
    d = pyopenjtalk_dir()
    return d is not None and (d / OPEN_JTALK_DIC).is_dir()


RESOURCES: List[Resource] = [
    Resource(
        name="pretrained_models",
        filename="pretrained_models.zip",
        extract_to=lambda w: w / "GPT_SoVITS",
        installed=lambda w: dir_exists(w / "GPT_SoVITS/pretrained_models/sv"),
    ),
    Resource(
        name="g2pw",
        filename="G2PWModel.zip",
        extract_to=lambda w: w / "GPT_SoVITS/text",
        installed=lambda w: dir_exists(w / "GPT_SoVITS/text/G2PWModel"),
    ),
    Resource(
        name="uvr5_weights",
        filename="uvr5_weights.zip",
        extract_to=lambda w: w / "tools/uvr5",
        installed=lambda w: dir_has_content(w / "tools/uvr5/uvr5_weights"),
        optional=True,
    ),
    Resource(
        name="nltk_data",
        filename="nltk_data.zip",
        extract_to=lambda _w: python_prefix(),
        installed=lambda _w: dir_has_content(python_prefix() / "nltk_data"),
    ),
    Resource(
        name="open_jtalk_dic",
        filename=f"{OPEN_JTALK_DIC}.tar.gz",
        extract_to=lambda _w: _require_pyopenjtalk(),
        installed=_open_jtalk_installed,
        deferred=True,
    ),
]


def base_url(source: str, settings: Optional[InstallerSettings] = None) -> str:
    if source not in MIRRORS:
        raise ConfigError(f"Invalid Source: {source}")
    override = settings.mirror_url(source) if settings else None
    return override or MIRRORS[source]


def select_resources(*, download_uvr5: bool) -> List[Resource]:
    return [r for r in RESOURCES if download_uvr5 or not r.optional]


def _presence(res: Resource, workdir: Path) -> Callable[[], bool]:
    archive = workdir / res.filename

    def check() -> bool:
        # A finished archive that was never unpacked counts: the unpack phase picks it up.
        return archive.is_file() or res.installed(workdir)

    return check


def build_fetch_tasks(
    *,
    workdir: Path,
    source: str,
    download_uvr5: bool,
    settings: Optional[InstallerSettings] = None,
) -> List[FetchTask]:
    base = base_url(source, settings)
    tasks: List[FetchTask] = []
    for res in select_resources(download_uvr5=download_uvr5):
        tasks.append(
            FetchTask(
                name=res.name,
                url=f"{base}/{res.filename}",
                dest=workdir / res.filename,
                is_present=_presence(res, workdir),
                policy=settings.resource_policy(res.name) if settings else None,
            )
        )
    return tasks


def build_unpack_jobs(*, workdir: Path, deferred: bool) -> List[UnpackJob]:
    """Unpack jobs for one phase. Every resource is listed; absent archives are skipped at unpack time."""

    jobs: List[UnpackJob] = []
    for res in RESOURCES:
        if res.deferred != deferred:
            continue
        jobs.append(
            UnpackJob(
                name=res.name,
                archive=workdir / res.filename,
                dest_dir=(lambda r=res: r.extract_to(workdir)),
            )
        )
    return jobs
