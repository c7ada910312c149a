"""Binary encoding of float32 vectors as little-endian blobs."""

from __future__ import annotations

import struct
from collections.abc import Sequence

__all__ = ["blob_to_vec", "vec_to_blob"]


def vec_to_blob(vector: Sequence[float]) -> bytes:
    """Encode floats as consecutive little-endian float32 values, no header."""
    return struct.pack(f"<{len(vector)}f", *vector)


def blob_to_vec(blob: bytes | None, dim: int) -> list[float]:
    """Decode ``dim`` float32 values; the blob must be exactly ``dim * 4`` bytes."""
    data = blob or b""
    if len(data) != dim * 4:
        raise ValueError(
            f"vector blob length {len(data)} does not match dim {dim} (expected {dim * 4})"
        )
    return list(struct.unpack(f"<{dim}f", data))