"""
acipatch Image Inspector
Peek at an image's manifest without rewriting anything.
"""
import tarfile
from typing import BinaryIO
from ..compressor.codecs import CodecReader, sniff_compression
from ..errors import ArchiveFormatError
from ..manifest.schema import ImageManifest
from ..repacker.repacker import EntryAction, classify_entry
from ..utils.logger import logger


class Inspector:
    def inspect(self, src: BinaryIO, show: bool = True) -> dict:
        """
        Walk the whole image once and summarize its manifest.
        The manifest is decoded and validated exactly as the repacker would.
        """
        codec, sniffed = sniff_compression(src)
        reader = CodecReader(codec, sniffed)

        info = {
            'compression': codec,
            'entry_count': 0,
            'payload_size': 0,
            'manifest_found': False,
            'name': None,
            'version': None,
            'labels': {},
            'exec': None,
            'isolators': [],
        }

        try:
            with tarfile.open(fileobj=reader, mode='r|') as intar:
                while True:
                    member = intar.next()
                    if member is None:
                        break
                    intar.members = []
                    info['entry_count'] += 1
                    info['payload_size'] += member.size
                    if classify_entry(member) is EntryAction.PATCH and member.isreg():
                        manifest = ImageManifest.from_json(intar.extractfile(member).read())
                        self._summarize(manifest, info)
        except tarfile.TarError as e:
            raise ArchiveFormatError(f"Error reading tarball: {e}") from e
        finally:
            reader.close()

        if not info['manifest_found']:
            logger.warning("No manifest entry in the image")

        if show:
            self._print(info)
        return info

    @staticmethod
    def _summarize(manifest: ImageManifest, info: dict):
        labels = manifest.labels
        app = manifest.app
        info.update({
            'manifest_found': True,
            'name': manifest.name,
            'version': labels.get('version'),
            'labels': labels,
            'exec': app.exec if app else None,
            'isolators': [i.get('name') for i in app.isolators] if app else [],
        })

    def _print(self, info: dict):
        def fmt_size(b):
            if not b:
                return 'empty'
            if b >= 1024 * 1024:
                return f"{b/1024/1024:.2f} MB"
            return f"{b/1024:.1f} KB"

        print(f"\n{'='*50}")
        print(f"  ACI Inspection")
        print(f"{'='*50}")
        print(f"  Compression: {info['compression']}")
        print(f"  Entries:     {info['entry_count']}")
        print(f"  Payload:     {fmt_size(info['payload_size'])}")
        print()
        if not info['manifest_found']:
            print(f"  Manifest:    missing")
        else:
            print(f"  Name:        {info['name']}")
            print(f"  Version:     {info['version'] or 'unknown'}")
            for key, value in info['labels'].items():
                if key != 'version':
                    print(f"  Label:       {key}={value}")
            if info['exec']:
                print(f"  Exec:        {' '.join(info['exec'])}")
            for name in info['isolators']:
                print(f"  Isolator:    {name}")
        print(f"{'='*50}\n")


__all__ = ["Inspector"]
