"""
Extrusion of flat shapes into solids.

Both extruders read the exact outlines a 2D buffer keeps in ``profiles``
rather than its triangles, so walls follow the outline and holes stay
open.  Caps are re-triangulated from the same outlines.
"""

import math
from typing import Sequence, Union

import numpy as np

from .errors import GeometryError
from .geometry import GeometryBuffer, make_buffer
from .primitives import fragments, DEFAULT_FA, DEFAULT_FS
from .triangulator import Polygon2D, triangulate_polygon

epsilon = 1e-9


def _quad_strip(first: int, count: int, stride: int, rings: int, wrap_rings: bool) -> np.ndarray:
    """
    Triangles joining consecutive rings of a closed loop.

    Vertex ``first + ring * stride + k`` is point ``k`` of ``ring``.  Each
    quad (a, b, c, d) is emitted as triangles (a, b, c) and (a, c, d),
    where a and b are neighbouring points on one ring and c, d the same
    points on the next.
    """
    tris = []
    span = rings if wrap_rings else rings - 1
    for s in range(span):
        s1 = (s + 1) % rings
        for k in range(count):
            k1 = (k + 1) % count
            a = first + s * stride + k
            b = first + s * stride + k1
            c = first + s1 * stride + k1
            d = first + s1 * stride + k
            tris.append((a, b, c))
            tris.append((a, c, d))
    return np.asarray(tris, dtype=np.int64).reshape(-1, 3)


def linear_extrude(base: GeometryBuffer, height: float, center: bool = False,
                   twist: float = 0.0, slices: float = None,
                   scale: Union[float, Sequence[float]] = 1.0) -> GeometryBuffer:
    """
    Extrude a flat shape along +Z.

    The outline is sampled at ``slices + 1`` heights.  At fraction ``t`` of
    the height it is rotated by ``twist * t`` degrees and scaled by
    ``1 + (scale - 1) * t``.  Walls join the samples and both ends are
    capped.  A buffer without outlines only yields the stacked points.
    """
    if not (height > 0 and math.isfinite(height)):
        raise GeometryError("linear_extrude height must be positive")
    if not math.isfinite(twist) or (slices is not None and not math.isfinite(slices)):
        raise GeometryError("linear_extrude twist and slices must be finite")
    if slices is None:
        slices = max(1.0, abs(twist) / 10.0)
    steps = max(1, int(math.floor(slices)))
    scale = np.broadcast_to(np.asarray(scale, dtype=np.float64), (2,))
    z0 = -height / 2 if center else 0.0

    def frame(points: np.ndarray, t: float) -> np.ndarray:
        factor = 1.0 + (scale - 1.0) * t
        angle = math.radians(twist * t)
        c, s = math.cos(angle), math.sin(angle)
        scaled = points * factor
        x = scaled[:, 0] * c - scaled[:, 1] * s
        y = scaled[:, 0] * s + scaled[:, 1] * c
        return np.column_stack([x, y, np.full(len(points), z0 + height * t)])

    if base.profiles is None:
        if base.is_empty:
            return GeometryBuffer()
        flat = base.positions[:, :2]
        stack = [frame(flat, s / steps) for s in range(steps + 1)]
        return GeometryBuffer(positions=np.concatenate(stack))

    positions = []
    triangles = []
    count = 0
    for polygon in base.profiles:
        for loop in polygon:
            m = len(loop)
            rings = [frame(loop, s / steps) for s in range(steps + 1)]
            positions.extend(rings)
            triangles.append(_quad_strip(count, m, m, steps + 1, wrap_rings=False))
            count += m * (steps + 1)

        vertices, cap = triangulate_polygon(polygon)
        positions.append(frame(vertices, 0.0))
        triangles.append(cap[:, [0, 2, 1]] + count)
        count += len(vertices)
        positions.append(frame(vertices, 1.0))
        triangles.append(cap + count)
        count += len(vertices)

    if not positions:
        return GeometryBuffer()
    return make_buffer(np.concatenate(positions), np.concatenate(triangles))


def _revolve(points: np.ndarray, angles: np.ndarray) -> np.ndarray:
    """Place (radius, height) points at each angle around Z; shape (A * M, 3)."""
    x = np.outer(np.cos(angles), points[:, 0])
    y = np.outer(np.sin(angles), points[:, 0])
    z = np.broadcast_to(points[:, 1], x.shape)
    return np.column_stack([x.ravel(), y.ravel(), z.ravel()])


def _mirror_profiles(profiles: Sequence[Polygon2D]) -> list:
    mirrored = []
    for polygon in profiles:
        mirrored.append(tuple((loop * [-1.0, 1.0])[::-1] for loop in polygon))
    return mirrored


def rotate_extrude(base: GeometryBuffer, angle: float = 360.0, fn: float = 0,
                   fa: float = DEFAULT_FA, fs: float = DEFAULT_FS) -> GeometryBuffer:
    """
    Lathe a flat shape around the Z axis.

    The shape's X coordinate becomes the radius and its Y coordinate the
    height.  The sweep is split into ``ceil(fragments(max_radius) *
    |angle| / 360)`` steps; sweeps short of a full turn get end caps.
    """
    if base.profiles is None:
        if base.is_empty:
            return GeometryBuffer()
        raise GeometryError("rotate_extrude requires a 2D child")

    profiles = list(base.profiles)
    xs = np.concatenate([loop[:, 0] for polygon in profiles for loop in polygon])
    if xs.min() < -epsilon and xs.max() > epsilon:
        raise GeometryError("all points for rotate_extrude must have the same X coordinate sign")
    if xs.max() <= epsilon:
        profiles = _mirror_profiles(profiles)
        xs = -xs

    sweep = max(-360.0, min(360.0, float(angle)))
    if abs(sweep) < epsilon:
        return GeometryBuffer()
    full = abs(sweep) >= 360.0 - epsilon
    segments = fragments(float(np.abs(xs).max()), fn, fa, fs)
    steps = max(3 if full else 1, int(math.ceil(segments * abs(sweep) / 360.0)))
    columns = steps if full else steps + 1
    angles = np.radians(sweep) * np.arange(columns) / steps

    positions = []
    triangles = []
    count = 0
    for polygon in profiles:
        for loop in polygon:
            m = len(loop)
            positions.append(_revolve(loop, angles))
            # Outward faces for a counter-clockwise outline need (a, c, b) order here
            triangles.append(_quad_strip(count, m, m, columns, wrap_rings=full)[:, [0, 2, 1]])
            count += m * columns

        if not full:
            vertices, cap = triangulate_polygon(polygon)
            positions.append(_revolve(vertices, angles[:1]))
            triangles.append(cap + count)
            count += len(vertices)
            positions.append(_revolve(vertices, angles[-1:]))
            triangles.append(cap[:, [0, 2, 1]] + count)
            count += len(vertices)

    indices = np.concatenate(triangles)
    if sweep < 0:
        indices = indices[:, [0, 2, 1]]
    return make_buffer(np.concatenate(positions), indices)
