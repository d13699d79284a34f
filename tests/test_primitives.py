"""
Tests for primitive tessellation, extrusion and meshes.
"""

import math

import numpy as np
import pytest

from scadlite.errors import GeometryError
from scadlite.primitives import (
    fragments, cube, sphere, cylinder, polyhedron, circle, square, polygon, text,
)
from scadlite.extrusion import linear_extrude, rotate_extrude
from scadlite.mesh import Material, DEFAULT_MATERIAL, create_mesh


class TestFragments:
    """Test circle segment counts."""

    def test_explicit_fn(self):
        assert fragments(10, fn=6) == 6

    def test_fn_minimum(self):
        """Fewer than three segments are raised to three."""
        assert fragments(10, fn=2) == 3

    def test_from_angle_and_size(self):
        """Without fn the smaller of the angle and size limits wins."""
        assert fragments(10) == 30
        assert fragments(100, fa=6, fs=2) == 60

    def test_small_radius(self):
        """Small circles still get five segments; tiny ones three."""
        assert fragments(1) == 5
        assert fragments(0) == 3

    def test_non_finite_parameters(self):
        """Non-finite fn, fa and fs fall back to the defaults."""
        assert fragments(10, fn=math.inf) == 30
        assert fragments(10, fa=math.nan, fs=math.inf) == 30

    def test_tiny_angle_and_size(self):
        """fa and fs are clamped to 0.01."""
        assert fragments(1, fa=0, fs=0) == 629


class TestSolids:
    """Test 3D primitives."""

    def test_cube_corner(self):
        """Cubes sit on the origin by default."""
        buf = cube((10, 20, 30))
        assert buf.vertex_count == 24
        assert buf.triangle_count == 12
        lo, hi = buf.bounds()
        assert lo.tolist() == [0.0, 0.0, 0.0]
        assert hi.tolist() == [10.0, 20.0, 30.0]

    def test_cube_centered(self):
        lo, hi = cube((10, 10, 10), center=True).bounds()
        assert lo.tolist() == [-5.0, -5.0, -5.0]
        assert hi.tolist() == [5.0, 5.0, 5.0]

    def test_cube_normals_outward(self):
        """Each vertex normal points away from the center."""
        buf = cube((2, 2, 2), center=True)
        assert (np.einsum("ij,ij->i", buf.positions, buf.normals) > 0).all()

    def test_cube_invalid(self):
        with pytest.raises(GeometryError):
            cube((0, 1, 1))

    def test_sphere(self):
        """Ring and segment counts and the radius."""
        buf = sphere(5, 8)
        assert buf.vertex_count == 5 * 9
        assert buf.triangle_count == 48
        lo, hi = buf.bounds()
        assert lo[2] == pytest.approx(-5.0)
        assert hi[2] == pytest.approx(5.0)
        radii = np.linalg.norm(buf.positions, axis=1)
        assert np.allclose(radii, 5.0)

    def test_cylinder(self):
        """Side wall plus two capped ends."""
        buf = cylinder(10, 2, 2, 8)
        assert buf.vertex_count == 34
        assert buf.triangle_count == 32
        lo, hi = buf.bounds()
        assert lo[2] == 0.0 and hi[2] == 10.0

    def test_cone(self):
        """A zero top radius drops the top cap."""
        buf = cylinder(10, 2, 0, 8, center=True)
        assert buf.vertex_count == 25
        assert buf.triangle_count == 16
        lo, hi = buf.bounds()
        assert lo[2] == -5.0 and hi[2] == 5.0

    def test_cylinder_invalid(self):
        with pytest.raises(GeometryError):
            cylinder(0, 1, 1, 8)
        with pytest.raises(GeometryError):
            cylinder(1, 0, 0, 8)

    def test_polyhedron(self):
        """Faces are fan-triangulated."""
        points = [[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0], [0.5, 0.5, 1]]
        faces = [[0, 1, 4], [1, 2, 4], [2, 3, 4], [3, 0, 4], [1, 0, 3, 2]]
        buf = polyhedron(points, faces)
        assert buf.vertex_count == 5
        assert buf.triangle_count == 6

    def test_polyhedron_bad_index(self):
        with pytest.raises(GeometryError):
            polyhedron([[0, 0, 0], [1, 0, 0], [0, 1, 0]], [[0, 1, 5]])


class TestFlatShapes:
    """Test 2D primitives."""

    def test_circle(self):
        """A circle has exactly n boundary vertices."""
        buf = circle(10, 6)
        assert buf.vertex_count == 6
        assert buf.triangle_count == 4
        assert np.allclose(buf.positions[:, 2], 0.0)
        assert len(buf.profiles) == 1

    def test_square(self):
        lo, hi = square((4, 2), center=True).bounds()
        assert lo.tolist() == [-2.0, -1.0, 0.0]
        assert hi.tolist() == [2.0, 1.0, 0.0]

    def test_polygon_with_hole(self):
        """The second path is a hole."""
        points = [[0, 0], [10, 0], [10, 10], [0, 10], [3, 3], [7, 3], [7, 7], [3, 7]]
        buf = polygon(points, [[0, 1, 2, 3], [4, 5, 6, 7]])
        assert buf.triangle_count == 8
        assert len(buf.profiles[0]) == 2

    def test_polygon_too_few_points(self):
        with pytest.raises(GeometryError):
            polygon([[0, 0], [1, 0]])

    def test_polygon_bad_path(self):
        with pytest.raises(GeometryError):
            polygon([[0, 0], [1, 0], [0, 1]], [[0, 1, 9]])

    def test_text_placeholder(self):
        """Text is a rectangle sized from the string length."""
        lo, hi = text("ab", 10).bounds()
        assert lo[:2].tolist() == [-6.0, -5.0]
        assert hi[:2].tolist() == [6.0, 5.0]


class TestLinearExtrude:
    """Test linear extrusion."""

    def test_square_prism(self):
        """Walls plus two caps."""
        buf = linear_extrude(square((2, 2)), 5)
        assert buf.vertex_count == 16
        assert buf.triangle_count == 12
        lo, hi = buf.bounds()
        assert lo.tolist() == [0.0, 0.0, 0.0]
        assert hi.tolist() == [2.0, 2.0, 5.0]

    def test_center(self):
        lo, hi = linear_extrude(square((2, 2)), 4, center=True).bounds()
        assert lo[2] == -2.0 and hi[2] == 2.0

    def test_scale_top(self):
        """The top outline is scaled."""
        buf = linear_extrude(square((2, 2), center=True), 1, scale=0.5)
        top = buf.positions[buf.positions[:, 2] == 1.0]
        assert np.abs(top[:, :2]).max() == pytest.approx(0.5)

    def test_twist(self):
        """Twist rotates the top outline."""
        buf = linear_extrude(square((2, 2), center=True), 1, twist=45, slices=1)
        top = buf.positions[buf.positions[:, 2] == 1.0]
        # A 45 degree turn puts the square's corners on the axes
        assert np.abs(top[:, 0]).max() == pytest.approx(np.sqrt(2.0))

    def test_slices(self):
        """Each slice adds a ring of vertices per loop."""
        buf = linear_extrude(circle(1, 8), 1, slices=4)
        # 5 rings of 8 points, plus two 8-point caps
        assert buf.vertex_count == 5 * 8 + 16

    def test_invalid_height(self):
        with pytest.raises(GeometryError):
            linear_extrude(square((1, 1)), 0)

    def test_non_finite_rejected(self):
        """Infinite heights, twists and slice counts are refused."""
        for kwargs in ({"height": math.inf}, {"height": 1, "twist": math.inf},
                       {"height": 1, "slices": math.inf}):
            with pytest.raises(GeometryError):
                linear_extrude(square((1, 1)), **kwargs)


class TestRotateExtrude:
    """Test lathe extrusion."""

    ring = [[5, 0], [7, 0], [7, 2], [5, 2]]

    def test_full_turn(self):
        """A full sweep closes on itself without caps."""
        buf = rotate_extrude(polygon(self.ring), fn=12)
        assert buf.vertex_count == 4 * 12
        assert buf.triangle_count == 4 * 12 * 2
        lo, hi = buf.bounds()
        assert hi[0] == pytest.approx(7.0)
        assert lo[0] == pytest.approx(-7.0)
        assert lo[2] == 0.0 and hi[2] == 2.0

    def test_partial_sweep(self):
        """A partial sweep gets end caps."""
        buf = rotate_extrude(polygon(self.ring), angle=90, fn=12)
        # 4 columns of 4 points, plus two 4-point caps
        assert buf.vertex_count == 4 * 4 + 8
        assert buf.triangle_count == 4 * 3 * 2 + 4

    def test_mixed_sign_rejected(self):
        with pytest.raises(GeometryError):
            rotate_extrude(square((2, 2), center=True))

    def test_needs_flat_child(self):
        with pytest.raises(GeometryError):
            rotate_extrude(cube((1, 1, 1)))


class TestMesh:
    """Test mesh and material wrappers."""

    def test_default_material(self):
        assert DEFAULT_MATERIAL.hex_color == "#f9d71c"
        assert DEFAULT_MATERIAL.roughness == 0.4
        assert DEFAULT_MATERIAL.metalness == 0.1

    def test_create_mesh(self):
        mesh = create_mesh(cube((1, 1, 1)))
        assert mesh.material == Material()
        assert mesh.cast_shadow and mesh.receive_shadow
        data = mesh.to_json()
        assert data["material"]["color"] == "#f9d71c"
        assert len(data["geometry"]["indices"]) == 36
