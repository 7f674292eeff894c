"""Checksum helper for uploads.

The client never hashes anything itself; callers compute the digest of
what they are about to upload and pass it to Client.upload, which sends
it in the Checksum header so the service can verify the content.
"""

import hashlib
from typing import BinaryIO

# Read in 1 MiB chunks
CHUNK_SIZE = 1024 * 1024


def compute_sha256(stream: BinaryIO) -> str:
    """Return the hex SHA-256 digest of a binary stream.

    Reads from the stream's current position to the end. The caller is
    responsible for seeking back before uploading the same stream.

    Args:
        stream: File or other binary stream to hash.

    Returns:
        Lowercase hex digest.
    """
    digest = hashlib.sha256()
    while True:
        chunk = stream.read(CHUNK_SIZE)
        if not chunk:
            break
        digest.update(chunk)
    return digest.hexdigest()
