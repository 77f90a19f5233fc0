"""
acipatch Errors
Every failure aborts the run; each stage raises its own type.
"""


class AcipatchError(Exception):
    """Base class for all acipatch failures"""


class DecompressionError(AcipatchError):
    """Input compression framing is malformed or truncated"""


class CompressionError(AcipatchError):
    """Output could not be compressed or the compressor failed to flush"""


class ArchiveFormatError(AcipatchError):
    """Malformed tar header or trailer in the input"""


class DocumentDecodeError(AcipatchError):
    """Manifest payload is not a valid image manifest"""


class DocumentEncodeError(AcipatchError):
    """Patched manifest could not be serialized"""


class ManifestNotFound(AcipatchError):
    """Archive ended without a manifest entry while one was required"""


class PatchError(AcipatchError):
    """A requested manifest edit could not be applied"""


class InvalidNameFormat(PatchError):
    def __init__(self, name: str, reason: str = None):
        self.name = name
        message = f"Invalid AC name: {name!r}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MissingApp(PatchError):
    def __init__(self):
        super().__init__("No app in the manifest")


class IsolatorConflict(PatchError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Isolator already exists: {name}")


class InvalidIsolatorValue(PatchError):
    pass


__all__ = [
    "AcipatchError",
    "DecompressionError",
    "CompressionError",
    "ArchiveFormatError",
    "DocumentDecodeError",
    "DocumentEncodeError",
    "ManifestNotFound",
    "PatchError",
    "InvalidNameFormat",
    "MissingApp",
    "IsolatorConflict",
    "InvalidIsolatorValue",
]
