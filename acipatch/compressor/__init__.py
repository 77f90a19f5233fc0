from .codecs import CODECS, CodecReader, CodecWriter, sniff_compression

__all__ = [
    "CODECS",
    "CodecReader",
    "CodecWriter",
    "sniff_compression"
]
