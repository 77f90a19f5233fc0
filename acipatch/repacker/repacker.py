"""
acipatch Repacker
Single forward pass over a compressed image: every entry is copied through,
the manifest entry is decoded, patched and re-encoded on the way.
"""
import io
import posixpath
import tarfile
import time
from enum import Enum
from typing import BinaryIO, Optional
from ..compressor.codecs import CODECS, CodecReader, CodecWriter, sniff_compression
from ..config import AcipatchConfig, config
from ..errors import ArchiveFormatError, DocumentDecodeError, ManifestNotFound
from ..manifest.patcher import EditRequest, ManifestPatcher
from ..manifest.schema import ImageManifest
from ..utils.checksum import calculate_bytes_checksum
from ..utils.logger import logger


MANIFEST_NAME = "manifest"


class EntryAction(Enum):
    PASSTHROUGH = "passthrough"
    PATCH = "patch"


class RunState(Enum):
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


def canonical_name(name: str) -> str:
    """'./manifest', 'manifest/' and 'a//../manifest' all become 'manifest'"""
    return posixpath.normpath(name)


def classify_entry(member: tarfile.TarInfo) -> EntryAction:
    if canonical_name(member.name) == MANIFEST_NAME:
        return EntryAction.PATCH
    return EntryAction.PASSTHROUGH


class Repacker:
    def __init__(
        self,
        output_compression: str = None,
        chunk_size: int = None,
        require_manifest: bool = None,
        manifest_indent: Optional[int] = None,
        patcher: ManifestPatcher = None,
        settings: AcipatchConfig = None
    ):
        self.settings = settings or config
        self.output_compression = output_compression or self.settings.output_compression
        if self.output_compression != 'auto' and self.output_compression not in CODECS:
            raise ValueError(f"Unsupported output compression: {self.output_compression}")

        self.chunk_size = chunk_size or self.settings.chunk_size
        self.require_manifest = self.settings.require_manifest if require_manifest is None else require_manifest
        self.manifest_indent = self.settings.manifest_indent if manifest_indent is None else manifest_indent
        self.patcher = patcher or ManifestPatcher()

    def repack(self, src: BinaryIO, dst: BinaryIO, edits: EditRequest = None) -> dict:
        """
        Stream src (a compressed image) into dst, patching the manifest.

        Raises on the first failure; whatever was already written to dst
        stays there and is not a valid archive.
        """
        edits = edits or EditRequest()
        start_time = time.time()
        state = RunState.RUNNING

        input_codec, sniffed = sniff_compression(src)
        output_codec = input_codec if self.output_compression == 'auto' else self.output_compression

        logger.info(f"Repacking image [{input_codec} -> {output_codec}]")

        result = {
            'success': False,
            'state': state.value,
            'input_compression': input_codec,
            'output_compression': output_codec,
            'entry_count': 0,
            'manifest_found': False,
            'manifest_patched': False,
            'manifest_size_before': None,
            'manifest_size_after': None,
            'manifest_checksum_before': None,
            'manifest_checksum_after': None,
        }

        reader = CodecReader(input_codec, sniffed)
        writer = CodecWriter(output_codec, dst, level=self.settings.compression_level(output_codec))
        intar = None
        outtar = None

        try:
            try:
                intar = tarfile.open(fileobj=reader, mode='r|')
                outtar = tarfile.open(
                    fileobj=writer,
                    mode='w|',
                    format=tarfile.PAX_FORMAT,
                    copybufsize=self.chunk_size
                )
                self._walk(intar, outtar, edits, result)
            except tarfile.TarError as e:
                raise ArchiveFormatError(f"Error reading tarball: {e}") from e

            # Archive trailer first, then the compression trailer
            outtar.close()
            writer.close()
            intar.close()
            reader.close()

        except Exception as e:
            state = RunState.FAILED
            result['state'] = state.value
            logger.debug(f"Repack failed after {result['entry_count']} entries: {e}")
            self._close_quietly(outtar, writer, intar, reader)
            raise

        if not result['manifest_found']:
            if self.require_manifest:
                raise ManifestNotFound(f"No '{MANIFEST_NAME}' entry in the image")
            logger.warning(f"No '{MANIFEST_NAME}' entry found — image copied unchanged")

        state = RunState.DONE
        elapsed = time.time() - start_time
        result.update({
            'success': True,
            'state': state.value,
            'processing_time': elapsed
        })

        logger.info(f" Repack Complete!")
        logger.info(f"   Entries:   {result['entry_count']}")
        logger.info(f"   Manifest:  {'patched' if result['manifest_patched'] else 'unchanged'}")
        logger.info(f"   Time:      {elapsed:.2f}s")

        return result

    def _walk(self, intar: tarfile.TarFile, outtar: tarfile.TarFile, edits: EditRequest, result: dict):
        while True:
            member = intar.next()
            if member is None:
                break

            action = classify_entry(member)
            logger.debug(f"  {action.value:<12} {member.name} ({member.size} bytes)")

            if action is EntryAction.PATCH:
                self._patch_entry(intar, outtar, member, edits, result)
            else:
                fileobj = intar.extractfile(member) if member.isreg() else None
                outtar.addfile(member, fileobj)

            result['entry_count'] += 1

            # TarFile keeps every header it has seen; drop them as we go
            intar.members = []
            outtar.members = []

    def _patch_entry(self, intar, outtar, member: tarfile.TarInfo, edits: EditRequest, result: dict):
        if not member.isreg():
            raise DocumentDecodeError(f"'{member.name}' is not a regular file")

        raw = intar.extractfile(member).read()
        if len(raw) != member.size:
            raise ArchiveFormatError(
                f"'{member.name}' truncated: {len(raw)} of {member.size} bytes"
            )

        result['manifest_found'] = True
        result['manifest_size_before'] = len(raw)
        result['manifest_checksum_before'] = calculate_bytes_checksum(raw)

        manifest = ImageManifest.from_json(raw)
        patched = self.patcher.patch(manifest, edits)

        if patched is manifest:
            new_raw = raw
        else:
            new_raw = patched.to_json(indent=self.manifest_indent)
            result['manifest_patched'] = True

        # A pax size record would override the new size on write
        member.pax_headers.pop('size', None)
        member.size = len(new_raw)

        result['manifest_size_after'] = len(new_raw)
        result['manifest_checksum_after'] = calculate_bytes_checksum(new_raw)

        outtar.addfile(member, io.BytesIO(new_raw))

    @staticmethod
    def _close_quietly(*streams):
        for stream in streams:
            if stream is None:
                continue
            try:
                stream.close()
            except Exception as e:
                logger.debug(f"Ignoring error while closing {type(stream).__name__}: {e}")


__all__ = ["Repacker", "EntryAction", "RunState", "canonical_name", "classify_entry", "MANIFEST_NAME"]
