"""
acipatch Image Manifest
Dict-backed view of an ACI image manifest. Fields the patcher never touches
keep their value and position through decode/encode.
"""
import copy
import json
import re
from typing import Any, Dict, Iterable, List, Optional
from ..errors import DocumentDecodeError, DocumentEncodeError, InvalidNameFormat


IMAGE_MANIFEST_KIND = "ImageManifest"
LINUX_CAPABILITIES_RETAIN_SET = "os/linux/capabilities-retain-set"

# Lowercase alphanumerics joined by single separators
AC_NAME_RE = re.compile(r'^[a-z0-9]+([-._~/][a-z0-9]+)*$')

# MAJOR.MINOR.PATCH with optional -prerelease and +build
SEMVER_RE = re.compile(
    r'^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)'
    r'(-[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?'
    r'(\+[0-9A-Za-z-]+(\.[0-9A-Za-z-]+)*)?$'
)


def validate_ac_name(name: str) -> str:
    """Return name unchanged if it is a valid AC name, raise otherwise"""
    if not isinstance(name, str):
        raise InvalidNameFormat(repr(name), "not a string")
    if not name:
        raise InvalidNameFormat(name, "empty")
    if not AC_NAME_RE.match(name):
        raise InvalidNameFormat(
            name,
            "must be lowercase alphanumerics separated by single '-', '.', '_', '~' or '/'"
        )
    return name


# ── Value builders ─────────────────────────────────────────────────────────

def string_value(value: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Expected a string, got {type(value).__name__}")
    return value


def array_value(items: Iterable) -> List:
    return list(items)


def mapping_value(**fields) -> Dict[str, Any]:
    return dict(fields)


def capability_set_value(capabilities: Iterable[str]) -> Dict[str, Any]:
    """{"set": [...]} payload shared by the capability isolators"""
    return mapping_value(set=array_value(string_value(c) for c in capabilities))


class Isolator:
    def __init__(self, name: str, value: Dict[str, Any]):
        self.name = name
        self.value = value

    @classmethod
    def from_dict(cls, data: Dict) -> "Isolator":
        return cls(data.get('name'), data.get('value'))

    def to_dict(self) -> Dict[str, Any]:
        return mapping_value(name=string_value(self.name), value=self.value)

    def __repr__(self):
        return f"Isolator({self.name!r}, {self.value!r})"


class App:
    """Live view over the manifest's "app" object"""

    def __init__(self, data: Dict[str, Any]):
        self._data = data

    @property
    def isolators(self) -> List[Dict[str, Any]]:
        return self._data.get('isolators') or []

    def get_isolator(self, name: str) -> Optional[Isolator]:
        for entry in self.isolators:
            if entry.get('name') == name:
                return Isolator.from_dict(entry)
        return None

    def add_isolator(self, isolator: Isolator):
        entries = self._data.get('isolators')
        if entries is None:
            entries = self._data['isolators'] = []
        entries.append(isolator.to_dict())

    @property
    def exec(self) -> Optional[List[str]]:
        return self._data.get('exec')


class ImageManifest:
    """
    Decoded image manifest.

    Only the fields needed to validate and patch are interpreted; everything
    else stays as decoded.
    """

    def __init__(self, data: Dict[str, Any]):
        self._data = data

    @classmethod
    def from_json(cls, raw: bytes) -> "ImageManifest":
        try:
            data = json.loads(raw.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DocumentDecodeError(f"Manifest is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise DocumentDecodeError("Manifest must be a JSON object")

        manifest = cls(data)
        manifest.assert_valid()
        return manifest

    def assert_valid(self):
        kind = self._data.get('acKind')
        if kind != IMAGE_MANIFEST_KIND:
            raise DocumentDecodeError(
                f"acKind must be {IMAGE_MANIFEST_KIND!r}, got {kind!r}"
            )
        version = self._data.get('acVersion')
        if not version:
            raise DocumentDecodeError("acVersion must be set")
        if not isinstance(version, str) or not SEMVER_RE.match(version):
            raise DocumentDecodeError(f"acVersion is not a semantic version: {version!r}")
        try:
            validate_ac_name(self._data.get('name', ''))
        except InvalidNameFormat as e:
            raise DocumentDecodeError(f"name: {e}") from e

        app = self._data.get('app')
        if app is None:
            return
        if not isinstance(app, dict):
            raise DocumentDecodeError("app must be an object")
        isolators = app.get('isolators')
        if isolators is None:
            return
        if not isinstance(isolators, list):
            raise DocumentDecodeError("app.isolators must be an array")
        for entry in isolators:
            if not isinstance(entry, dict) or not isinstance(entry.get('name'), str):
                raise DocumentDecodeError(f"Malformed isolator: {entry!r}")

    def to_json(self, indent: Optional[int] = None) -> bytes:
        separators = (',', ':') if indent is None else (',', ': ')
        try:
            text = json.dumps(self._data, indent=indent, separators=separators,
                              ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise DocumentEncodeError(f"Cannot encode manifest: {e}") from e
        return text.encode('utf-8')

    def get(self, field: str, default=None):
        return self._data.get(field, default)

    def set(self, field: str, value):
        self._data[field] = value

    @property
    def name(self) -> str:
        return self._data.get('name')

    @name.setter
    def name(self, value: str):
        self._data['name'] = validate_ac_name(value)

    @property
    def app(self) -> Optional[App]:
        data = self._data.get('app')
        if data is None:
            return None
        return App(data)

    @property
    def labels(self) -> Dict[str, str]:
        return {
            label.get('name'): label.get('value')
            for label in self._data.get('labels') or []
            if isinstance(label, dict)
        }

    def fields(self) -> List[str]:
        return list(self._data)

    def copy(self) -> "ImageManifest":
        return ImageManifest(copy.deepcopy(self._data))

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)


__all__ = [
    "IMAGE_MANIFEST_KIND",
    "LINUX_CAPABILITIES_RETAIN_SET",
    "validate_ac_name",
    "string_value",
    "array_value",
    "mapping_value",
    "capability_set_value",
    "Isolator",
    "App",
    "ImageManifest",
]
