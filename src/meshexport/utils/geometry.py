"""Geometry utilities: axis conversion and texture-coordinate conventions."""

from __future__ import annotations

import numpy as np


def swap_yz(vectors: np.ndarray) -> np.ndarray:
    """Remap Z-up vectors to Y-up: (x, y, z) -> (x, z, y).

    A pure axis swap (applying it twice returns the input). Used for both
    positions and normals.
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    return vectors[..., [0, 2, 1]]


def flip_v(uvs: np.ndarray) -> np.ndarray:
    """Convert between top-left and bottom-left texture origins: v -> 1 - v."""
    uvs = np.array(uvs, dtype=np.float64, copy=True)
    uvs[..., 1] = 1.0 - uvs[..., 1]
    return uvs
