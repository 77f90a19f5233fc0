import json

import pytest

from acipatch.errors import DocumentDecodeError, DocumentEncodeError, InvalidNameFormat
from acipatch.manifest.schema import (
    ImageManifest,
    Isolator,
    capability_set_value,
    validate_ac_name,
)


@pytest.mark.parametrize("name", [
    "example.com/app",
    "coreos.com/etcd",
    "a",
    "foo-bar_baz~1/qux",
    "0123",
])
def test_valid_ac_names(name):
    assert validate_ac_name(name) == name


@pytest.mark.parametrize("name", [
    "",
    "Example.com/app",
    "has space",
    "trailing-",
    "-leading",
    "double//slash",
    "bang!",
])
def test_invalid_ac_names(name):
    with pytest.raises(InvalidNameFormat):
        validate_ac_name(name)


def test_decode_encode_keeps_fields_and_order(base_manifest):
    base_manifest["x-custom"] = {"keep": [1, 2, 3]}
    raw = json.dumps(base_manifest, indent=4).encode()

    manifest = ImageManifest.from_json(raw)
    out = json.loads(manifest.to_json())

    assert out == base_manifest
    assert list(out) == list(base_manifest)


def test_encode_is_compact_by_default(base_manifest):
    manifest = ImageManifest(base_manifest)
    assert b": " not in manifest.to_json()
    assert b'\n' in manifest.to_json(indent=2)


def test_encode_keeps_non_ascii(base_manifest):
    base_manifest["annotations"].append({"name": "description", "value": "über"})
    manifest = ImageManifest(base_manifest)
    assert "über".encode('utf-8') in manifest.to_json()


def test_encode_failure():
    manifest = ImageManifest({"acKind": "ImageManifest", "bad": float("nan")})
    with pytest.raises(DocumentEncodeError):
        manifest.to_json()


@pytest.mark.parametrize("raw", [
    b"not json",
    b"\xff\xfe",
    b"[1, 2]",
    b'{"acKind": "PodManifest", "acVersion": "0.8.11", "name": "a"}',
    b'{"acKind": "ImageManifest", "name": "a"}',
    b'{"acKind": "ImageManifest", "acVersion": "0.8.11", "name": "Not Valid"}',
    b'{"acKind": "ImageManifest", "acVersion": "0.8.11"}',
    b'{"acKind": "ImageManifest", "acVersion": "0.8.11", "name": "a", "app": []}',
    b'{"acKind": "ImageManifest", "acVersion": "0.8.11", "name": "a", "app": {"isolators": {}}}',
    b'{"acKind": "ImageManifest", "acVersion": "0.8.11", "name": "a", "app": {"isolators": [{"value": {}}]}}',
])
def test_decode_rejects_invalid_documents(raw):
    with pytest.raises(DocumentDecodeError):
        ImageManifest.from_json(raw)


def test_app_absent_or_null():
    assert ImageManifest.from_json(
        b'{"acKind": "ImageManifest", "acVersion": "0.8.11", "name": "a"}'
    ).app is None
    assert ImageManifest.from_json(
        b'{"acKind": "ImageManifest", "acVersion": "0.8.11", "name": "a", "app": null}'
    ).app is None


def test_name_setter_validates(base_manifest):
    manifest = ImageManifest(base_manifest)
    with pytest.raises(InvalidNameFormat):
        manifest.name = "UPPER"
    assert manifest.name == "coreos.com/etcd"


def test_copy_is_independent(base_manifest):
    manifest = ImageManifest(base_manifest)
    clone = manifest.copy()
    clone.app.add_isolator(Isolator("os/linux/no-new-privileges", {"value": True}))
    clone.name = "example.com/other"

    assert manifest.name == "coreos.com/etcd"
    assert len(manifest.app.isolators) == 1
    assert len(clone.app.isolators) == 2


def test_app_isolator_lookup(base_manifest):
    app = ImageManifest(base_manifest).app
    found = app.get_isolator("resource/memory")
    assert found.value == {"limit": "1G"}
    assert app.get_isolator("resource/cpu") is None


def test_add_isolator_creates_collection():
    manifest = ImageManifest({"acKind": "ImageManifest", "app": {"exec": ["/bin/sh"]}})
    manifest.app.add_isolator(Isolator("os/linux/capabilities-retain-set",
                                       capability_set_value(["CAP_NET_BIND_SERVICE"])))
    assert manifest.get("app")["isolators"] == [
        {"name": "os/linux/capabilities-retain-set", "value": {"set": ["CAP_NET_BIND_SERVICE"]}}
    ]


def test_capability_set_value_rejects_non_strings():
    with pytest.raises(TypeError):
        capability_set_value(["CAP_CHOWN", 7])


def test_labels(base_manifest):
    assert ImageManifest(base_manifest).labels["version"] == "v2.0.0"


@pytest.mark.parametrize("version", ["0.8.11", "1.0.0", "1.0.0-alpha.1", "0.8.11+git.abc123"])
def test_semver_ac_version_accepted(version):
    raw = json.dumps({"acKind": "ImageManifest", "acVersion": version, "name": "a"}).encode()
    assert ImageManifest.from_json(raw).get("acVersion") == version


@pytest.mark.parametrize("version", ["latest", "1.2", "01.2.3", "v0.8.11", 811])
def test_non_semver_ac_version_rejected(version):
    raw = json.dumps({"acKind": "ImageManifest", "acVersion": version, "name": "a"}).encode()
    with pytest.raises(DocumentDecodeError):
        ImageManifest.from_json(raw)
