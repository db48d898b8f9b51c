"""Digest calculation and validation utilities."""

import hashlib
import re

# algorithm:encoded, see https://github.com/opencontainers/image-spec/blob/main/descriptor.md#digests
DIGEST_PATTERN = re.compile(r"[a-z0-9]+(?:[.+_-][a-z0-9]+)*:[a-zA-Z0-9=_-]+")


def calculate_digest(data: bytes, algorithm: str = "sha256") -> str:
    """Calculate the digest of data as "algorithm:hex"

    Raises ValueError for algorithms hashlib does not know.
    """
    if algorithm not in hashlib.algorithms_available:
        raise ValueError(f"Unsupported algorithm: {algorithm}")
    return f"{algorithm}:{hashlib.new(algorithm, data).hexdigest()}"


def validate_digest(digest: str) -> bool:
    return isinstance(digest, str) and DIGEST_PATTERN.fullmatch(digest) is not None


def digest_algorithm(digest: str) -> str:
    return digest.split(":", 1)[0]


def digest_hex(digest: str) -> str:
    """Return the encoded part of a digest, "sha256:abc" -> "abc"."""
    return digest.split(":", 1)[-1]
