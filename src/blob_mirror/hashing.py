"""Content hashing utilities.

Azure stores ``Content-MD5`` as the base64 encoding of the raw MD5 digest.
The filesystem store computes the same representation so hashes from either
store compare equal for identical bytes.
"""

import base64
import hashlib
from pathlib import Path
from typing import Optional


def compute_content_md5(path: Path) -> str:
    """Compute the base64 MD5 of a file's contents.

    Args:
        path: Path to file to hash

    Returns:
        Base64-encoded MD5 digest
    """
    md5 = hashlib.md5()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            md5.update(chunk)
    return base64.b64encode(md5.digest()).decode("ascii")


def encode_md5(raw: Optional[bytes]) -> Optional[str]:
    """Encode a raw MD5 digest (as returned by the Azure SDK) to base64.

    Returns None when no digest is available.
    """
    if not raw:
        return None
    return base64.b64encode(bytes(raw)).decode("ascii")


def decode_md5(value: Optional[str]) -> Optional[bytearray]:
    """Decode a base64 MD5 string into the bytearray the Azure SDK expects."""
    if not value:
        return None
    return bytearray(base64.b64decode(value))


__all__ = [
    "compute_content_md5",
    "encode_md5",
    "decode_md5",
]
