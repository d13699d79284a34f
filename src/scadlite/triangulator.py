"""Triangulation helpers for flat (2D) scadlite shapes.

We delegate to ``mapbox-earcut`` (the fast ear clipping implementation
used by Mapbox GL) to keep the logic compact and reliable.  The helpers
here normalise outlines into the loop format earcut expects (outer loop
counter-clockwise, holes clockwise, no repeated closing point) and turn
its index output into consistently counter-clockwise triangles.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

try:
    import mapbox_earcut as _earcut
except ImportError as exc:  # pragma: no cover - import guard
    raise ImportError(
        "mapbox-earcut must be installed to triangulate 2D shapes"
    ) from exc

epsilon = 1e-9

# One polygon: the outer loop first, then any holes.  Each loop is (M, 2).
Polygon2D = Tuple[np.ndarray, ...]


def prepare_loop(points: Sequence[Sequence[float]], *, want_ccw: bool) -> np.ndarray:
    """Return ``points`` as an ``(M, 2)`` loop with the requested winding.

    Consecutive duplicates and a repeated closing point are dropped.  Loops
    with fewer than three distinct points come back as-is (and are ignored
    by the triangulator).
    """
    loop: List[Tuple[float, float]] = []
    for pt in points:
        x, y = float(pt[0]), float(pt[1])
        if loop and _near(loop[-1], (x, y)):
            continue
        loop.append((x, y))
    if len(loop) > 1 and _near(loop[0], loop[-1]):
        loop.pop()
    arr = np.asarray(loop, dtype=np.float64).reshape(-1, 2)
    if len(arr) < 3:
        return arr
    area = signed_area(arr)
    if (want_ccw and area < 0) or (not want_ccw and area > 0):
        arr = arr[::-1].copy()
    return arr


def prepare_polygon(outer: Sequence[Sequence[float]],
                    holes: Optional[Iterable[Sequence[Sequence[float]]]] = None
                    ) -> Optional[Polygon2D]:
    """Normalise an outline and its holes, or return None when degenerate."""
    outer_loop = prepare_loop(outer, want_ccw=True)
    if len(outer_loop) < 3 or abs(signed_area(outer_loop)) <= epsilon:
        return None
    loops = [outer_loop]
    for hole in holes or []:
        loop = prepare_loop(hole, want_ccw=False)
        if len(loop) < 3:
            continue
        loops.append(loop)
    return tuple(loops)


def signed_area(loop: np.ndarray) -> float:
    """Shoelace area; positive for counter-clockwise loops."""
    x = loop[:, 0]
    y = loop[:, 1]
    return float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y) / 2.0)


def triangulate_polygon(polygon: Polygon2D) -> Tuple[np.ndarray, np.ndarray]:
    """Triangulate one prepared polygon.

    Returns ``(vertices, triangles)``: the ``(N, 2)`` stacked loop points and
    an ``(T, 3)`` int array of counter-clockwise triangles indexing them.
    """
    vertices = np.concatenate(polygon, axis=0).astype(np.float64)
    ring_ends = np.cumsum([len(loop) for loop in polygon]).astype(np.uint32)
    indices = _earcut.triangulate_float64(vertices, ring_ends)
    triangles = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    if len(triangles) == 0:
        return vertices, triangles

    a = vertices[triangles[:, 0]]
    b = vertices[triangles[:, 1]]
    c = vertices[triangles[:, 2]]
    cross = (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])
    flip = cross < 0
    triangles[flip] = triangles[flip][:, [0, 2, 1]]
    return vertices, triangles


def triangulate_profiles(profiles: Sequence[Polygon2D]) -> Tuple[np.ndarray, np.ndarray]:
    """Triangulate several polygons into one vertex array and triangle list."""
    all_vertices = []
    all_triangles = []
    offset = 0
    for polygon in profiles:
        vertices, triangles = triangulate_polygon(polygon)
        all_vertices.append(vertices)
        all_triangles.append(triangles + offset)
        offset += len(vertices)
    if not all_vertices:
        return np.zeros((0, 2)), np.zeros((0, 3), dtype=np.int64)
    return np.concatenate(all_vertices), np.concatenate(all_triangles)


def _near(p1: Tuple[float, float], p2: Tuple[float, float]) -> bool:
    return abs(p1[0] - p2[0]) <= epsilon and abs(p1[1] - p2[1]) <= epsilon
