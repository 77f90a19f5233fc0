"""
acipatch Stream Codecs
Detects the compression framing of an image by its magic bytes and builds
forward-only reader/writer objects for it. Nothing here seeks.
"""
import bz2
import gzip
import lzma
import zlib
from typing import Optional, Tuple
import zstandard as zstd
from ..errors import CompressionError, DecompressionError
from ..utils.logger import logger


MAGIC_MAP = {
    b'\x1f\x8b': 'gzip',
    b'\x28\xb5\x2f\xfd': 'zstd',
    b'BZh': 'bzip2',
    b'\xfd7zXZ\x00': 'xz',
}
MAGIC_LEN = max(len(m) for m in MAGIC_MAP)

CODECS = ('gzip', 'zstd', 'bzip2', 'xz', 'none')

# Errors the codec libraries raise for corrupt framing
_DECODE_ERRORS = {
    'gzip': (gzip.BadGzipFile, zlib.error, EOFError),
    'zstd': (zstd.ZstdError,),
    'bzip2': (OSError, EOFError),  # bz2 reports bad data as a bare OSError
    'xz': (lzma.LZMAError, EOFError),
    'none': (),
}
_ENCODE_ERRORS = {
    'gzip': (zlib.error,),
    'zstd': (zstd.ZstdError,),
    'bzip2': (ValueError,),
    'xz': (lzma.LZMAError,),
    'none': (),
}


class PrefixedReader:
    """Replays bytes already consumed for sniffing, then reads the source"""

    def __init__(self, prefix: bytes, source):
        self._prefix = prefix
        self._source = source

    def read(self, size: int = -1) -> bytes:
        if not self._prefix:
            return self._source.read(size)
        if size is None or size < 0:
            data = self._prefix + self._source.read()
            self._prefix = b''
            return data
        head, self._prefix = self._prefix[:size], self._prefix[size:]
        if len(head) < size:
            head += self._source.read(size - len(head))
        return head

    def readable(self) -> bool:
        return True


def sniff_compression(src) -> Tuple[str, PrefixedReader]:
    """
    Read the first bytes of src and name its compression.
    Returns the codec name and a reader that still yields those bytes.
    """
    head = b''
    while len(head) < MAGIC_LEN:
        chunk = src.read(MAGIC_LEN - len(head))
        if not chunk:
            break
        head += chunk

    name = 'none'
    for magic, codec in MAGIC_MAP.items():
        if head.startswith(magic):
            name = codec
            break

    logger.debug(f"Detected input compression: {name}")
    return name, PrefixedReader(head, src)


class ChannelReader:
    """Remembers the last error the underlying channel raised"""

    def __init__(self, source):
        self._source = source
        self.error = None

    def read(self, size: int = -1) -> bytes:
        try:
            return self._source.read(size)
        except OSError as e:
            self.error = e
            raise

    def readable(self) -> bool:
        return True


class CodecReader:
    """Decompressing reader; codec failures surface as DecompressionError"""

    def __init__(self, name: str, src):
        if name not in CODECS:
            raise ValueError(f"Unsupported compression: {name}")
        self.name = name
        self._errors = _DECODE_ERRORS[name]
        self._channel = ChannelReader(src)
        try:
            self._reader = self._open(name, self._channel)
        except self._errors as e:
            if e is self._channel.error:
                raise
            raise DecompressionError(f"Cannot open {name} stream: {e}") from e

    @staticmethod
    def _open(name: str, src):
        if name == 'gzip':
            return gzip.GzipFile(fileobj=src, mode='rb')
        if name == 'zstd':
            dctx = zstd.ZstdDecompressor()
            return dctx.stream_reader(src, read_across_frames=True, closefd=False)
        if name == 'bzip2':
            return bz2.BZ2File(src, 'rb')
        if name == 'xz':
            return lzma.LZMAFile(src, 'rb')
        return src

    def read(self, size: int = -1) -> bytes:
        try:
            return self._reader.read(size)
        except self._errors as e:
            # I/O failures on the source pass through untouched
            if e is self._channel.error:
                raise
            raise DecompressionError(f"Corrupt {self.name} stream: {e}") from e

    def readable(self) -> bool:
        return True

    def close(self):
        # The source belongs to the caller
        if self._reader is not None and self.name != 'none':
            self._reader.close()
        self._reader = None


class CodecWriter:
    """Compressing writer; close() writes the compression trailer only"""

    def __init__(self, name: str, dst, level: Optional[int] = None):
        if name not in CODECS:
            raise ValueError(f"Unsupported compression: {name}")
        self.name = name
        self._dst = dst
        self._errors = _ENCODE_ERRORS[name]
        self.closed = False
        try:
            self._writer = self._open(name, dst, level)
        except self._errors as e:
            raise CompressionError(f"Cannot start {name} stream: {e}") from e

    @staticmethod
    def _open(name: str, dst, level: Optional[int]):
        if name == 'gzip':
            # mtime=0 keeps repeated runs byte-identical
            return gzip.GzipFile(filename='', fileobj=dst, mode='wb',
                                 compresslevel=9 if level is None else level, mtime=0)
        if name == 'zstd':
            cctx = zstd.ZstdCompressor(level=19 if level is None else level)
            return cctx.stream_writer(dst, closefd=False)
        if name == 'bzip2':
            return bz2.BZ2File(dst, 'wb', compresslevel=9 if level is None else level)
        if name == 'xz':
            return lzma.LZMAFile(dst, 'wb', preset=6 if level is None else level)
        return None

    def write(self, data) -> int:
        if self._writer is None:
            return self._dst.write(data)
        try:
            return self._writer.write(data)
        except self._errors as e:
            raise CompressionError(f"{self.name} compression failed: {e}") from e

    def writable(self) -> bool:
        return True

    def flush(self):
        if self._writer is not None:
            self._writer.flush()
        self._dst.flush()

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            if self._writer is not None:
                self._writer.close()
        except self._errors as e:
            raise CompressionError(f"Cannot finish {self.name} stream: {e}") from e
        self._dst.flush()


__all__ = [
    "CODECS",
    "MAGIC_MAP",
    "sniff_compression",
    "PrefixedReader",
    "ChannelReader",
    "CodecReader",
    "CodecWriter",
]
