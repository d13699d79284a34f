"""
Triangle buffers and the operations the evaluator performs on them.

A GeometryBuffer is the unit passed between every stage of evaluation:
primitives create them, transforms return transformed copies, CSG and
extrusion combine them, and the compiler merges the top-level ones into
the final output.  Buffers are immutable; their numpy arrays are marked
read-only and every operation builds a new buffer.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .errors import GeometryError
from .triangulator import Polygon2D, triangulate_profiles

epsilon = 1e-9


def _frozen(array: Optional[np.ndarray], dtype, width: Optional[int]) -> Optional[np.ndarray]:
    if array is None:
        return None
    arr = np.array(array, dtype=dtype)
    if width is not None:
        arr = arr.reshape(-1, width)
    else:
        arr = arr.reshape(-1)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class CsgOperation:
    """A boolean operation recorded against a base buffer but not performed."""
    type: str                   # "subtract" or "intersect"
    geometry: "GeometryBuffer"

    def to_json(self) -> dict:
        return {"type": self.type, "geometry": self.geometry.to_json()}


@dataclass(frozen=True, eq=False)
class GeometryBuffer:
    """
    Triangle geometry in flat array form.

    Attributes:
        positions: (N, 3) float64 vertex positions, or None
        normals: (N, 3) per-vertex normals, or None
        indices: flat int array of triangle corners (length 3T), or None
        profiles: 2D outlines for flat shapes (see triangulator.Polygon2D)
        csg_operations: pending boolean operations against this buffer
    """
    positions: Optional[np.ndarray] = None
    normals: Optional[np.ndarray] = None
    indices: Optional[np.ndarray] = None
    profiles: Optional[Tuple[Polygon2D, ...]] = None
    csg_operations: Tuple[CsgOperation, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "positions", _frozen(self.positions, np.float64, 3))
        object.__setattr__(self, "normals", _frozen(self.normals, np.float64, 3))
        object.__setattr__(self, "indices", _frozen(self.indices, np.int64, None))
        object.__setattr__(self, "csg_operations", tuple(self.csg_operations))
        if self.indices is not None and len(self.indices):
            if len(self.indices) % 3:
                raise GeometryError("index count must be a multiple of 3")
            if self.indices.min() < 0 or self.indices.max() >= self.vertex_count:
                raise GeometryError("triangle index out of range")

    @property
    def is_empty(self) -> bool:
        return self.positions is None or len(self.positions) == 0

    @property
    def vertex_count(self) -> int:
        return 0 if self.positions is None else len(self.positions)

    @property
    def triangle_count(self) -> int:
        if self.indices is None:
            return 0
        return len(self.indices) // 3

    @property
    def triangles(self) -> np.ndarray:
        """Triangle corners as a (T, 3) array."""
        if self.indices is None:
            return np.zeros((0, 3), dtype=np.int64)
        return self.indices.reshape(-1, 3)

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        """Axis-aligned (min, max) corners; raises GeometryError when empty."""
        if self.is_empty:
            raise GeometryError("empty geometry has no bounds")
        return self.positions.min(axis=0), self.positions.max(axis=0)

    def with_operation(self, operation: CsgOperation) -> "GeometryBuffer":
        """Copy of this buffer with one more pending CSG operation."""
        return GeometryBuffer(
            positions=self.positions,
            normals=self.normals,
            indices=self.indices,
            profiles=self.profiles,
            csg_operations=self.csg_operations + (operation,),
        )

    def to_json(self) -> dict:
        """Plain-list form for serialization."""
        def _list(arr):
            return None if arr is None else arr.tolist()
        return {
            "positions": _list(self.positions),
            "normals": _list(self.normals),
            "indices": _list(self.indices),
            "csg_operations": [op.to_json() for op in self.csg_operations],
        }


def compute_vertex_normals(positions: np.ndarray, indices: np.ndarray) -> np.ndarray:
    """Area-weighted vertex normals, as three.js computes them."""
    normals = np.zeros_like(positions, dtype=np.float64)
    if len(indices) == 0:
        return normals
    tris = np.asarray(indices).reshape(-1, 3)
    a = positions[tris[:, 0]]
    b = positions[tris[:, 1]]
    c = positions[tris[:, 2]]
    face_normals = np.cross(b - a, c - a)
    for corner in range(3):
        np.add.at(normals, tris[:, corner], face_normals)
    lengths = np.linalg.norm(normals, axis=1)
    nonzero = lengths > epsilon
    normals[nonzero] /= lengths[nonzero][:, None]
    return normals


def make_buffer(positions, indices, profiles: Optional[Tuple[Polygon2D, ...]] = None) -> GeometryBuffer:
    """Build an indexed buffer, computing its vertex normals."""
    positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    indices = np.asarray(indices, dtype=np.int64).reshape(-1)
    return GeometryBuffer(
        positions=positions,
        normals=compute_vertex_normals(positions, indices),
        indices=indices,
        profiles=profiles,
    )


def flat_buffer(profiles: Sequence[Polygon2D]) -> GeometryBuffer:
    """Triangulate 2D outlines into a buffer lying in the z=0 plane."""
    profiles = tuple(p for p in profiles if p is not None)
    if not profiles:
        return GeometryBuffer()
    vertices, triangles = triangulate_profiles(profiles)
    positions = np.column_stack([vertices, np.zeros(len(vertices))])
    return make_buffer(positions, triangles, profiles)


# =============================================================================
# Matrices (4x4, column vectors)
# =============================================================================

def translation_matrix(v: Sequence[float]) -> np.ndarray:
    m = np.eye(4)
    m[:3, 3] = v
    return m


def scale_matrix(v: Sequence[float]) -> np.ndarray:
    return np.diag([float(v[0]), float(v[1]), float(v[2]), 1.0])


def _rotation(axis: int, degrees: float) -> np.ndarray:
    t = np.radians(degrees)
    c, s = np.cos(t), np.sin(t)
    i, j = [(1, 2), (2, 0), (0, 1)][axis]
    m = np.eye(4)
    m[i, i] = c
    m[i, j] = -s
    m[j, i] = s
    m[j, j] = c
    return m


def euler_rotation_matrix(angles: Sequence[float]) -> np.ndarray:
    """Rotate about X, then Y, then Z (degrees, fixed axes)."""
    return _rotation(2, angles[2]) @ _rotation(1, angles[1]) @ _rotation(0, angles[0])


def axis_angle_matrix(degrees: float, axis: Sequence[float]) -> np.ndarray:
    """Rotation by ``degrees`` about ``axis`` (Rodrigues)."""
    axis = np.asarray(axis, dtype=np.float64)
    length = np.linalg.norm(axis)
    if length < epsilon:
        raise GeometryError("rotation axis must be non-zero")
    x, y, z = axis / length
    t = np.radians(degrees)
    c, s = np.cos(t), np.sin(t)
    C = 1.0 - c
    m = np.eye(4)
    m[:3, :3] = [
        [c + x * x * C, x * y * C - z * s, x * z * C + y * s],
        [y * x * C + z * s, c + y * y * C, y * z * C - x * s],
        [z * x * C - y * s, z * y * C + x * s, c + z * z * C],
    ]
    return m


def mirror_matrix(normal: Sequence[float]) -> np.ndarray:
    """Signed per-axis scale: every axis with a non-zero component flips."""
    return scale_matrix([-1.0 if n != 0 else 1.0 for n in normal[:3]])


# =============================================================================
# Buffer Operations
# =============================================================================

def _transform_profiles(profiles: Optional[Tuple[Polygon2D, ...]],
                        matrix: np.ndarray) -> Optional[Tuple[Polygon2D, ...]]:
    """Carry 2D outlines through a transform that keeps the z=0 plane in place."""
    if profiles is None:
        return None
    if abs(matrix[2, 0]) > epsilon or abs(matrix[2, 1]) > epsilon or abs(matrix[2, 3]) > epsilon:
        return None
    linear = matrix[:2, :2]
    det = np.linalg.det(linear)
    if abs(det) < epsilon:
        return None
    offset = matrix[:2, 3]
    result = []
    for polygon in profiles:
        loops = []
        for loop in polygon:
            moved = loop @ linear.T + offset
            if det < 0:
                moved = moved[::-1]
            moved.setflags(write=False)
            loops.append(moved)
        result.append(tuple(loops))
    return tuple(result)


def transform_buffer(buffer: GeometryBuffer, matrix: np.ndarray) -> GeometryBuffer:
    """
    Apply a 4x4 affine transform, returning a new buffer.

    Pending CSG operands move with their base.  Triangle winding is
    reversed when the transform mirrors, so faces keep pointing outward.
    """
    operations = tuple(
        CsgOperation(op.type, transform_buffer(op.geometry, matrix))
        for op in buffer.csg_operations
    )
    if buffer.is_empty:
        return GeometryBuffer(csg_operations=operations)

    positions = buffer.positions @ matrix[:3, :3].T + matrix[:3, 3]
    indices = buffer.indices
    if indices is not None and np.linalg.det(matrix[:3, :3]) < 0:
        indices = indices.reshape(-1, 3)[:, [0, 2, 1]].reshape(-1)

    normals = None
    if indices is not None:
        normals = compute_vertex_normals(positions, indices)
    elif buffer.normals is not None:
        normals = np.zeros_like(positions)

    return GeometryBuffer(
        positions=positions,
        normals=normals,
        indices=indices,
        profiles=_transform_profiles(buffer.profiles, matrix),
        csg_operations=operations,
    )


def merge_buffers(buffers: Sequence[GeometryBuffer]) -> Optional[GeometryBuffer]:
    """
    Concatenate buffers into one.

    Empty buffers are skipped; None is returned when nothing is left and a
    single buffer is returned unchanged.  Indices are offset by the running
    vertex count.  Normals are kept when any input has them (zeros fill in
    for the others).  When any input is indexed, non-indexed inputs get
    sequential indices.  Profiles survive only when every input has them.
    """
    parts: List[GeometryBuffer] = [b for b in buffers if b is not None and not b.is_empty]
    if not parts:
        return None
    if len(parts) == 1:
        return parts[0]

    any_normals = any(b.normals is not None for b in parts)
    any_indexed = any(b.indices is not None for b in parts)

    positions = []
    normals = []
    indices = []
    offset = 0
    for b in parts:
        positions.append(b.positions)
        if any_normals:
            normals.append(b.normals if b.normals is not None else np.zeros_like(b.positions))
        if any_indexed:
            if b.indices is not None:
                indices.append(b.indices + offset)
            else:
                indices.append(np.arange(offset, offset + b.vertex_count, dtype=np.int64))
        offset += b.vertex_count

    profiles = None
    if all(b.profiles is not None for b in parts):
        profiles = tuple(p for b in parts for p in b.profiles)

    return GeometryBuffer(
        positions=np.concatenate(positions),
        normals=np.concatenate(normals) if any_normals else None,
        indices=np.concatenate(indices) if any_indexed else None,
        profiles=profiles,
        csg_operations=tuple(op for b in parts for op in b.csg_operations),
    )
