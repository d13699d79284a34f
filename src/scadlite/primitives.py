"""
Tessellation of the built-in primitive shapes.

Every function takes plain numbers (argument coercion happens in the
runtime's module table) and returns a GeometryBuffer.  Solids put their
outward faces counter-clockwise; flat shapes lie in the z=0 plane facing
+Z and keep their outlines in ``profiles`` for the extruders.
"""

import math
from typing import Optional, Sequence

import numpy as np

from .errors import GeometryError
from .geometry import GeometryBuffer, make_buffer, flat_buffer
from .triangulator import prepare_polygon

DEFAULT_FN = 32
DEFAULT_FA = 12.0
DEFAULT_FS = 2.0

GRID_FINE = 1e-8


def fragments(r: float, fn: float = 0, fa: float = DEFAULT_FA, fs: float = DEFAULT_FS) -> int:
    """
    Number of segments used to approximate a circle of radius ``r``.

    A positive ``fn`` wins (minimum 3); otherwise the count follows from
    the minimum angle ``fa`` and minimum edge length ``fs``, with at
    least 5 segments.  Non-finite parameters fall back to the defaults.
    """
    if r < GRID_FINE or math.isnan(r):
        return 3
    if fn > 0 and math.isfinite(fn):
        return int(max(math.floor(fn), 3))
    # $fa and $fs below 0.01 behave as 0.01
    fa = max(fa, 0.01) if math.isfinite(fa) else DEFAULT_FA
    fs = max(fs, 0.01) if math.isfinite(fs) else DEFAULT_FS
    return int(math.ceil(max(min(360.0 / fa, 2.0 * math.pi * r / fs), 5)))


def circle_points(r: float, n: int) -> np.ndarray:
    """``n`` points counter-clockwise on a circle, starting on +X."""
    angles = 2.0 * np.pi * np.arange(n) / n
    return np.column_stack([r * np.cos(angles), r * np.sin(angles)])


# =============================================================================
# 3D Primitives
# =============================================================================

def cube(size: Sequence[float], center: bool = False) -> GeometryBuffer:
    """Axis-aligned box with its min corner at the origin (or centered)."""
    sx, sy, sz = (float(s) for s in size)
    if sx <= 0 or sy <= 0 or sz <= 0:
        raise GeometryError("cube size must be positive")
    lo = np.array([0.0, 0.0, 0.0])
    hi = np.array([sx, sy, sz])
    if center:
        lo, hi = lo - hi / 2, hi / 2

    positions = []
    indices = []
    for axis in range(3):
        u, v = (axis + 1) % 3, (axis + 2) % 3
        for side in (lo, hi):
            positive = side is hi
            corners = [(0, 0), (1, 0), (1, 1), (0, 1)]
            if not positive:
                corners = corners[::-1]
            base = len(positions)
            for cu, cv in corners:
                p = np.empty(3)
                p[axis] = side[axis]
                p[u] = hi[u] if cu else lo[u]
                p[v] = hi[v] if cv else lo[v]
                positions.append(p)
            indices.extend([base, base + 1, base + 2, base, base + 2, base + 3])

    return make_buffer(positions, indices)


def sphere(r: float, n: int) -> GeometryBuffer:
    """
    UV sphere with its poles on the Z axis.

    ``n`` segments run around the equator and ``max(2, (n + 1) // 2)``
    rings run pole to pole.  Each ring repeats its first vertex at the
    seam.
    """
    if r <= 0:
        raise GeometryError("sphere radius must be positive")
    n = max(3, int(n))
    rings = max(2, (n + 1) // 2)

    theta = np.pi * np.arange(rings + 1) / rings
    phi = 2.0 * np.pi * np.arange(n + 1) / n
    t, p = np.meshgrid(theta, phi, indexing="ij")
    positions = np.column_stack([
        (r * np.sin(t) * np.cos(p)).ravel(),
        (r * np.sin(t) * np.sin(p)).ravel(),
        (r * np.cos(t)).ravel(),
    ])

    def vid(iy, ix):
        return iy * (n + 1) + ix

    indices = []
    for iy in range(rings):
        for ix in range(n):
            a = vid(iy, ix + 1)
            b = vid(iy, ix)
            c = vid(iy + 1, ix)
            d = vid(iy + 1, ix + 1)
            if iy != 0:
                indices.extend([b, c, a])
            if iy != rings - 1:
                indices.extend([a, c, d])

    return make_buffer(positions, indices)


def cylinder(h: float, r1: float, r2: float, n: int, center: bool = False) -> GeometryBuffer:
    """
    Cylinder or truncated cone along +Z.

    The base (radius ``r1``) sits at z=0 and the top (radius ``r2``) at
    z=h, or the pair is centered on the origin.  A zero radius collapses
    that end to a point and drops its cap.
    """
    if h <= 0:
        raise GeometryError("cylinder height must be positive")
    if r1 < 0 or r2 < 0:
        raise GeometryError("cylinder radius must not be negative")
    if r1 <= 0 and r2 <= 0:
        raise GeometryError("cylinder needs a positive radius")
    n = max(3, int(n))
    z0 = -h / 2 if center else 0.0
    z1 = z0 + h

    ring = circle_points(1.0, n)
    bottom = np.column_stack([ring * r1, np.full(n, z0)])
    top = np.column_stack([ring * r2, np.full(n, z1)])

    positions = [bottom, top]
    indices = []
    # Side wall: bottom ring 0..n-1, top ring n..2n-1
    for i in range(n):
        j = (i + 1) % n
        bi, bj, ti, tj = i, j, n + i, n + j
        if r1 > 0:
            indices.extend([bi, bj, tj])
        if r2 > 0:
            indices.extend([bi, tj, ti])

    offset = 2 * n
    if r1 > 0:
        positions.extend([bottom, [[0.0, 0.0, z0]]])
        cb = offset + n
        for i in range(n):
            j = (i + 1) % n
            indices.extend([cb, offset + j, offset + i])
        offset += n + 1
    if r2 > 0:
        positions.extend([top, [[0.0, 0.0, z1]]])
        ct = offset + n
        for i in range(n):
            j = (i + 1) % n
            indices.extend([ct, offset + i, offset + j])

    return make_buffer(np.concatenate([np.asarray(p, dtype=np.float64) for p in positions]), indices)


def polyhedron(points: Sequence[Sequence[float]], faces: Sequence[Sequence[int]]) -> GeometryBuffer:
    """Explicit solid: each face is fan-triangulated from its first index."""
    if len(points) == 0:
        raise GeometryError("polyhedron requires at least one point")
    positions = np.zeros((len(points), 3))
    for i, point in enumerate(points):
        for k in range(min(3, len(point))):
            positions[i, k] = point[k]

    indices = []
    for face in faces:
        face = [int(f) for f in face]
        for f in face:
            if f < 0 or f >= len(points):
                raise GeometryError(f"polyhedron face index {f} out of range")
        for i in range(1, len(face) - 1):
            indices.extend([face[0], face[i], face[i + 1]])

    return make_buffer(positions, indices)


# =============================================================================
# 2D Primitives
# =============================================================================

def circle(r: float, n: int) -> GeometryBuffer:
    """Regular ``n``-gon of radius ``r`` (exactly ``n`` boundary vertices)."""
    if r <= 0:
        raise GeometryError("circle radius must be positive")
    polygon = prepare_polygon(circle_points(r, max(3, int(n))))
    return flat_buffer([polygon])


def square(size: Sequence[float], center: bool = False) -> GeometryBuffer:
    sx, sy = float(size[0]), float(size[1])
    if sx <= 0 or sy <= 0:
        raise GeometryError("square size must be positive")
    x0, y0 = (-sx / 2, -sy / 2) if center else (0.0, 0.0)
    outline = [(x0, y0), (x0 + sx, y0), (x0 + sx, y0 + sy), (x0, y0 + sy)]
    return flat_buffer([prepare_polygon(outline)])


def polygon(points: Sequence[Sequence[float]],
            paths: Optional[Sequence[Sequence[int]]] = None) -> GeometryBuffer:
    """
    Filled outline.  With ``paths`` the first path is the outer boundary
    and the remaining paths are holes, each given as indices into
    ``points``.
    """
    if len(points) < 3:
        raise GeometryError("polygon requires at least three points")
    if paths:
        loops = []
        for path in paths:
            loop = []
            for idx in path:
                idx = int(idx)
                if idx < 0 or idx >= len(points):
                    raise GeometryError(f"polygon path index {idx} out of range")
                loop.append(points[idx])
            loops.append(loop)
        outer, holes = loops[0], loops[1:]
    else:
        outer, holes = points, []

    prepared = prepare_polygon(outer, holes)
    if prepared is None:
        raise GeometryError("polygon outline is degenerate")
    return flat_buffer([prepared])


def text(value: str, size: float = 10.0) -> GeometryBuffer:
    """Placeholder for text: a ``0.6 * size * len`` by ``size`` rectangle centered on the origin."""
    width = size * len(value) * 0.6
    if width <= 0 or size <= 0:
        return GeometryBuffer()
    outline = [(-width / 2, -size / 2), (width / 2, -size / 2),
               (width / 2, size / 2), (-width / 2, size / 2)]
    return flat_buffer([prepare_polygon(outline)])
