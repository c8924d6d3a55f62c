from .step_10_detect_host import DetectHostStep
from .step_20_system_deps import InstallSystemDepsStep
from .step_30_fetch_resources import FetchResourcesStep
from .step_40_unpack_resources import UnpackResourcesStep
from .step_50_install_torch import InstallTorchStep
from .step_60_install_requirements import InstallRequirementsStep
from .step_70_post_install import PostInstallStep

__all__ = [
    "DetectHostStep",
    "InstallSystemDepsStep",
    "FetchResourcesStep",
    "UnpackResourcesStep",
    "InstallTorchStep",
    "InstallRequirementsStep",
    "PostInstallStep",
]
