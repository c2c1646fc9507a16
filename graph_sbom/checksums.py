"""Content checksums of resolved artifact files."""

import hashlib
from pathlib import Path
from typing import Sequence, Union

from spdx_tools.spdx.model import Checksum, ChecksumAlgorithm

# hashlib names of the SPDX checksum algorithms we can compute
HASHLIB_NAMES: dict[ChecksumAlgorithm, str] = {
    ChecksumAlgorithm.MD5: "md5",
    ChecksumAlgorithm.SHA1: "sha1",
    ChecksumAlgorithm.SHA256: "sha256",
    ChecksumAlgorithm.SHA384: "sha384",
    ChecksumAlgorithm.SHA512: "sha512",
    ChecksumAlgorithm.SHA3_256: "sha3_256",
    ChecksumAlgorithm.SHA3_384: "sha3_384",
    ChecksumAlgorithm.SHA3_512: "sha3_512",
}

# A legacy digest for older consumers plus a strong one
DEFAULT_ALGORITHMS = (ChecksumAlgorithm.SHA1, ChecksumAlgorithm.SHA256)

CHUNK_SIZE = 1024 * 1024


def compute_checksums(
    path: Union[str, Path],
    algorithms: Sequence[ChecksumAlgorithm] = DEFAULT_ALGORITHMS,
) -> list[Checksum]:
    """
    Hash a file with several algorithms in a single read.

    Args:
        path: File to hash
        algorithms: SPDX checksum algorithms, output keeps this order

    Returns:
        One Checksum per algorithm

    Raises:
        ValueError: If an algorithm has no hashlib implementation
        OSError: If the file cannot be read
    """
    unsupported = [alg.name for alg in algorithms if alg not in HASHLIB_NAMES]
    if unsupported:
        raise ValueError(f"Unsupported checksum algorithm(s): {', '.join(unsupported)}")

    hashers = [hashlib.new(HASHLIB_NAMES[alg]) for alg in algorithms]
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            for hasher in hashers:
                hasher.update(chunk)

    return [Checksum(alg, hasher.hexdigest()) for alg, hasher in zip(algorithms, hashers)]
