"""Version fingerprints and the ``versionhash`` marker file.

A fingerprint is the 64-byte SHA-512 digest of whatever identifies a
release: either a four-part numeric version or an arbitrary string such as
a release tag. Fingerprints are only ever compared for equality; there is
no notion of "newer".

The marker file stores exactly the 64 raw bytes of the installed version's
fingerprint. A missing or damaged marker reads as :data:`UNKNOWN`, which
never equals a computed fingerprint, so the next check always reports an
update.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import TruncatedDataError
from .io_safe import atomic_write_bytes

FINGERPRINT_SIZE = 64
MARKER_NAME = "versionhash"

_VERSION_STRUCT = struct.Struct("<4i")


@dataclass(frozen=True)
class VersionFingerprint:
    """Opaque identity of an installed version.

    ``digest`` is ``None`` only for :data:`UNKNOWN`.
    """

    digest: Optional[bytes]

    def __post_init__(self) -> None:
        if self.digest is not None and len(self.digest) != FINGERPRINT_SIZE:
            raise ValueError(
                f"fingerprint must be {FINGERPRINT_SIZE} bytes, got {len(self.digest)}"
            )

    @classmethod
    def from_version(
        cls, major: int, minor: int, revision: int, build: int
    ) -> "VersionFingerprint":
        """Hash the four components as 32-bit little-endian integers."""
        try:
            raw = _VERSION_STRUCT.pack(major, minor, revision, build)
        except struct.error as e:
            raise ValueError(f"version components must fit in 32 bits: {e}") from None
        return cls(hashlib.sha512(raw).digest())

    @classmethod
    def from_tag(cls, text: str) -> "VersionFingerprint":
        """Hash the UTF-8 encoding of ``text``."""
        return cls(hashlib.sha512(text.encode("utf-8")).digest())

    @classmethod
    def read_from(cls, stream: BinaryIO) -> "VersionFingerprint":
        """Consume exactly 64 bytes from ``stream``.

        Raises :class:`TruncatedDataError` when the stream ends early.
        """
        chunks = []
        remaining = FINGERPRINT_SIZE
        while remaining:
            chunk = stream.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        if remaining:
            raise TruncatedDataError(
                f"expected {FINGERPRINT_SIZE} bytes, stream ended after "
                f"{FINGERPRINT_SIZE - remaining}"
            )
        return cls(b"".join(chunks))

    def write_to(self, stream: BinaryIO) -> None:
        stream.write(self._require_digest())

    @classmethod
    def load(cls, path: Path) -> "VersionFingerprint":
        """Read a marker file. Raises ``OSError`` or :class:`TruncatedDataError`."""
        with open(path, "rb") as fh:
            return cls.read_from(fh)

    def save(self, path: Path) -> None:
        """Replace the marker at ``path`` with this fingerprint's 64 bytes."""
        atomic_write_bytes(path, self._require_digest())

    @property
    def is_unknown(self) -> bool:
        return self.digest is None

    def _require_digest(self) -> bytes:
        if self.digest is None:
            raise ValueError("the unknown fingerprint cannot be persisted")
        return self.digest

    def __str__(self) -> str:
        if self.digest is None:
            return "<unknown>"
        return self.digest.hex().upper()


UNKNOWN = VersionFingerprint(None)


def marker_path(target_directory: Path) -> Path:
    return Path(target_directory) / MARKER_NAME


def is_marker_name(name: str) -> bool:
    """True when ``name`` is the marker file name, ignoring case."""
    return name.lower() == MARKER_NAME


__all__ = [
    "FINGERPRINT_SIZE",
    "MARKER_NAME",
    "UNKNOWN",
    "VersionFingerprint",
    "marker_path",
    "is_marker_name",
]
