import gzip
import io
import json
import tarfile

import pytest
import zstandard as zstd


BASE_MANIFEST = {
    "acKind": "ImageManifest",
    "acVersion": "0.8.11",
    "name": "coreos.com/etcd",
    "labels": [
        {"name": "version", "value": "v2.0.0"},
        {"name": "os", "value": "linux"},
        {"name": "arch", "value": "amd64"},
    ],
    "app": {
        "exec": ["/etcd"],
        "user": "0",
        "group": "0",
        "isolators": [
            {"name": "resource/memory", "value": {"limit": "1G"}},
        ],
    },
    "annotations": [
        {"name": "authors", "value": "CoreOS"},
    ],
}


def build_tar(entries) -> bytes:
    """
    entries: list of (name, payload) for regular files,
    or (name, TarInfo-type, extra) for dirs and symlinks.
    """
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode='w', format=tarfile.PAX_FORMAT) as tar:
        for entry in entries:
            name, payload = entry[0], entry[1]
            info = tarfile.TarInfo(name)
            info.mtime = 1420070400
            info.mode = 0o644
            if payload == tarfile.DIRTYPE:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tar.addfile(info)
            elif payload == tarfile.SYMTYPE:
                info.type = tarfile.SYMTYPE
                info.linkname = entry[2]
                tar.addfile(info)
            else:
                info.size = len(payload)
                tar.addfile(info, io.BytesIO(payload))
    return buf.getvalue()


def read_tar(data: bytes):
    """Decompress any supported framing and list (name, type, size, payload)"""
    if data.startswith(b'\x28\xb5\x2f\xfd'):
        data = zstd.ZstdDecompressor().decompressobj().decompress(data)
        mode = 'r:'
    else:
        mode = 'r:*'
    out = []
    with tarfile.open(fileobj=io.BytesIO(data), mode=mode) as tar:
        for member in tar.getmembers():
            payload = tar.extractfile(member).read() if member.isreg() else None
            out.append((member.name, member.type, member.size, payload))
    return out


def manifest_bytes(manifest=None) -> bytes:
    return json.dumps(manifest if manifest is not None else BASE_MANIFEST).encode('utf-8')


@pytest.fixture
def base_manifest():
    return json.loads(json.dumps(BASE_MANIFEST))


@pytest.fixture
def make_aci():
    """Build a gzip ACI: manifest (optional) followed by a small rootfs"""
    def _make(manifest=BASE_MANIFEST, extra=None, manifest_name='manifest', compress=gzip.compress):
        entries = []
        if manifest is not None:
            raw = manifest if isinstance(manifest, bytes) else manifest_bytes(manifest)
            entries.append((manifest_name, raw))
        entries.extend(extra if extra is not None else [
            ('rootfs', tarfile.DIRTYPE),
            ('rootfs/etcd', b'\x7fELF' + bytes(range(256)) * 8),
            ('rootfs/etc', tarfile.DIRTYPE),
            ('rootfs/etc/hostname', b'etcd\n'),
            ('rootfs/bin', tarfile.SYMTYPE, 'usr/bin'),
        ])
        return compress(build_tar(entries))
    return _make


@pytest.fixture
def read_aci():
    return read_tar
