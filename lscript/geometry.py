"""
lscript Geometry
================
Packs the turtle's vertex stream into the renderer's buffer layout and
provides a reference implementation of the line-thickening pass a GPU
shader would run over it.

Buffer layout: float32 records (x, y, z, leaf) with leaf in {0.0, 1.0}.
"""
from typing import Iterable

import numpy as np

DEFAULT_THICKNESS = 0.01
RECORD_WIDTH = 4

_UP = np.array([0.0, 0.0, 1.0])
_FALLBACK_SIDE = np.array([1.0, 0.0, 0.0])


def vertex_buffer(vertices: Iterable) -> np.ndarray:
    """Pack OutputVertex objects into a float32 (n, 4) array."""
    records = [vertex.as_record() for vertex in vertices]
    if not records:
        return np.zeros((0, RECORD_WIDTH), dtype=np.float32)
    return np.asarray(records, dtype=np.float32)


def side_vector(direction: np.ndarray) -> np.ndarray:
    """Unit vector perpendicular to direction in the horizontal plane."""
    side = np.cross(_UP, direction)
    norm = np.linalg.norm(side)
    if norm < 1e-9:
        # Vertical segment: any horizontal side will do
        return _FALLBACK_SIDE.copy()
    return side / norm


def thicken(buffer: np.ndarray, thickness: float = DEFAULT_THICKNESS) -> np.ndarray:
    """
    Turn consecutive vertex pairs into quads of two triangles.

    For every pair (i, i+1) the start and end points are offset by
    +/- thickness/2 along the side vector, giving p0..p3, and the triangles
    (p0, p1, p2) and (p1, p2, p3) are emitted with w = 0. A pair is skipped
    when its start is a leaf and its end is not (the jump back after a
    branch) and when it has zero length.

    Returns a float32 (6 * kept_pairs, 4) array.
    """
    buffer = np.asarray(buffer, dtype=np.float32)
    if buffer.ndim != 2 or buffer.shape[1] != RECORD_WIDTH:
        raise ValueError(f"Expected an (n, {RECORD_WIDTH}) vertex buffer, got shape {buffer.shape}")
    if thickness < 0.0:
        raise ValueError(f"Thickness must be >= 0, got {thickness}")

    half = thickness / 2.0
    triangles = []
    for start, end in zip(buffer[:-1], buffer[1:]):
        if start[3] == 1.0 and end[3] != 1.0:
            continue
        a = start[:3].astype(np.float64)
        b = end[:3].astype(np.float64)
        direction = b - a
        if not np.any(direction):
            continue
        offset = side_vector(direction) * half
        p0, p1 = a + offset, a - offset
        p2, p3 = b + offset, b - offset
        triangles.extend((p0, p1, p2, p1, p2, p3))

    if not triangles:
        return np.zeros((0, RECORD_WIDTH), dtype=np.float32)
    out = np.zeros((len(triangles), RECORD_WIDTH), dtype=np.float32)
    out[:, :3] = triangles
    return out
