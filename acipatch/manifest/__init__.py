from .schema import ImageManifest, LINUX_CAPABILITIES_RETAIN_SET
from .patcher import EditRequest, ManifestPatcher

__all__ = [
    "ImageManifest",
    "LINUX_CAPABILITIES_RETAIN_SET",
    "EditRequest",
    "ManifestPatcher"
]
