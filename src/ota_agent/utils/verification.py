"""Package signature verification."""

import hashlib
import logging
from pathlib import Path
from typing import Optional

# Platform sign method -> hashlib algorithm name
SIGN_ALGORITHMS = {"SHA256": "sha256"}

READ_CHUNK = 64 * 1024


def is_supported_sign_method(sign_method: Optional[str]) -> bool:
    """Return True if ``sign_method`` names a digest this agent can check."""
    return sign_method in SIGN_ALGORITHMS


def package_digest(file_path: Path, sign_method: str) -> str:
    """Hex digest of ``file_path`` using the algorithm ``sign_method`` names.

    Raises:
        ValueError: If sign_method is not supported
        OSError: If the file cannot be read
    """
    algorithm = SIGN_ALGORITHMS.get(sign_method)
    if algorithm is None:
        raise ValueError(f"Unsupported sign method: {sign_method}")

    digest = hashlib.new(algorithm)
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(READ_CHUNK), b""):
            digest.update(chunk)
    return digest.hexdigest()


def verify_sign(file_path: Path, sign: str, sign_method: Optional[str]) -> bool:
    """Check a downloaded package against its published signature.

    The platform publishes lowercase hex and the comparison is exact, so
    an uppercase sign never matches.

    Args:
        file_path: Path to the downloaded package
        sign: Expected digest
        sign_method: Digest algorithm named by the platform

    Returns:
        True if the digest matches, False otherwise

    Raises:
        ValueError: If sign_method is not supported
        OSError: If the package cannot be read
    """
    logger = logging.getLogger("ota_agent.verification")

    actual = package_digest(file_path, sign_method)
    logger.info(f"{sign_method} = {actual}")
    if actual != sign:
        logger.error(f"Sign mismatch for {file_path.name}: expected {sign}, got {actual}")
        return False
    return True
