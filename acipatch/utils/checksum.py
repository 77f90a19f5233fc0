"""
acipatch Checksum Utility
SHA-256 digests used to report what changed in the manifest entry.
"""
import hashlib
from typing import Union

def calculate_bytes_checksum(data: Union[bytes, str]) -> str:
    """
    Calculates the SHA-256 checksum of a byte string or text string.

    Args:
        data: The input data (bytes or string)

    Returns:
        str: The hexadecimal hash string
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    sha256_hash = hashlib.sha256()
    sha256_hash.update(data)
    return sha256_hash.hexdigest()

__all__ = ["calculate_bytes_checksum"]
