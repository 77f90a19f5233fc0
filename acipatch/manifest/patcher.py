"""
acipatch Manifest Patcher
Applies a fixed set of edits to an image manifest.
Either every requested edit lands or the caller's manifest is left as it was.
"""
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple
from ..errors import InvalidIsolatorValue, IsolatorConflict, MissingApp
from ..utils.logger import logger
from .schema import (
    LINUX_CAPABILITIES_RETAIN_SET,
    ImageManifest,
    Isolator,
    capability_set_value,
    validate_ac_name,
)


@dataclass(frozen=True)
class EditRequest:
    """Edits requested for one run; absent fields are not applied"""
    name: Optional[str] = None
    capabilities: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_options(cls, name: Optional[str] = None, capability: Optional[str] = None) -> "EditRequest":
        """
        Build from raw CLI-style options.
        Empty strings mean "not requested"; capability is comma-separated.
        """
        caps = None
        if capability:
            caps = tuple(c.strip() for c in capability.split(',') if c.strip())
            if not caps:
                raise ValueError(f"No capabilities in {capability!r}")
        return cls(name=name or None, capabilities=caps)

    @property
    def is_empty(self) -> bool:
        return self.name is None and self.capabilities is None


def set_name(manifest: ImageManifest, name: str) -> None:
    manifest.name = validate_ac_name(name)


def add_isolator(manifest: ImageManifest, name: str, values: Iterable[str]) -> None:
    """Append a {"set": [...]} isolator; refuses to touch an existing one"""
    app = manifest.app
    if app is None:
        raise MissingApp()
    if app.get_isolator(name) is not None:
        raise IsolatorConflict(name)

    values = list(values)
    if not values:
        raise InvalidIsolatorValue(f"Isolator {name} needs a non-empty set")
    try:
        value = capability_set_value(values)
    except TypeError as e:
        raise InvalidIsolatorValue(f"Isolator {name}: {e}") from e

    app.add_isolator(Isolator(name, value))


class ManifestPatcher:
    def patch(self, manifest: ImageManifest, edits: EditRequest) -> ImageManifest:
        """
        Apply edits in order (name, then capabilities) to a copy of manifest.

        Returns the patched copy, or manifest itself when nothing was requested.
        Raises the first PatchError hit; the input is never modified.
        """
        if edits.is_empty:
            logger.debug("No manifest edits requested")
            return manifest

        patched = manifest.copy()

        if edits.name is not None:
            set_name(patched, edits.name)
            logger.info(f"   Name:       {manifest.name} -> {patched.name}")

        if edits.capabilities is not None:
            add_isolator(patched, LINUX_CAPABILITIES_RETAIN_SET, edits.capabilities)
            logger.info(f"   Isolator:   {LINUX_CAPABILITIES_RETAIN_SET} {list(edits.capabilities)}")

        return patched


__all__ = ["EditRequest", "ManifestPatcher", "set_name", "add_isolator"]
