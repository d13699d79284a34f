"""
Built-in module registry for the scadlite interpreter.

A built-in module receives its evaluated arguments and the geometry of its
children (already evaluated in the call scope) and returns a list of
buffers.  Primitives ignore their children; transforms, CSG and extrusions
consume them.

Argument lookup mirrors how calls are written: a positional argument wins,
then the named one, then the default.  An undefined value counts as
missing at every step.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence
import math

from .context import Environment
from .values import (
    Value, is_number, to_bool, to_number, to_vec2, to_vec3,
    to_points, to_index_lists,
)
from ..errors import GeometryError
from ..geometry import (
    CsgOperation, GeometryBuffer, merge_buffers, transform_buffer,
    translation_matrix, scale_matrix, euler_rotation_matrix,
    axis_angle_matrix, mirror_matrix,
)
from ..primitives import fragments
from .. import extrusion
from .. import primitives

Geometry = List[GeometryBuffer]


@dataclass
class ModuleArguments:
    """Evaluated arguments of one built-in module call."""
    positional: List[Value]
    named: Dict[str, Value]
    children: Geometry
    env: Environment

    def get(self, name: Optional[str], index: Optional[int] = None, default: Value = None) -> Value:
        if index is not None and index < len(self.positional) and self.positional[index] is not None:
            return self.positional[index]
        if name is not None and self.named.get(name) is not None:
            return self.named[name]
        return default

    def number(self, name: Optional[str], index: Optional[int] = None,
               default: Optional[float] = None) -> Optional[float]:
        return to_number(self.get(name, index), default)

    def flag(self, name: str, index: Optional[int] = None, default: bool = False) -> bool:
        return to_bool(self.get(name, index), default)

    def radius(self, r_name: str, d_name: str, index: Optional[int] = None,
               default: Optional[float] = 1.0) -> Optional[float]:
        """A radius given directly or as a diameter."""
        r = self.number(r_name, index)
        if r is not None:
            return r
        d = self.number(d_name)
        if d is not None:
            return d / 2.0
        return default

    def fragments(self, r: float) -> int:
        return fragments(r, self.env.fn, self.env.fa, self.env.fs)


@dataclass
class BuiltinModule:
    """
    A built-in module with its implementation.
    """
    name: str
    implementation: Callable[[ModuleArguments], Geometry]
    doc: str = ""


def _transform_all(children: Sequence[GeometryBuffer], matrix) -> Geometry:
    return [transform_buffer(child, matrix) for child in children]


class BuiltinModuleRegistry:
    """
    Registry of all built-in modules.

    Looked up by the evaluator before user modules, so the names here
    cannot be redefined.
    """

    def __init__(self):
        self._modules: Dict[str, BuiltinModule] = {}
        self._register_all()

    def get_module(self, name: str) -> Optional[BuiltinModule]:
        """Look up a module by name."""
        return self._modules.get(name)

    def register(self, module: BuiltinModule) -> None:
        """Register a module."""
        self._modules[module.name] = module

    def _register_all(self) -> None:
        """Register all built-in modules."""
        self._register_solids()
        self._register_shapes()
        self._register_transforms()
        self._register_boolean_operations()
        self._register_extrusions()
        self._register_structure()

    # --- 3D Primitives ---

    def _register_solids(self) -> None:
        """Register solid primitives."""

        def _cube(args: ModuleArguments) -> Geometry:
            size = to_vec3(args.get("size", 0), (1.0, 1.0, 1.0))
            return [primitives.cube(size, args.flag("center", 1))]

        def _sphere(args: ModuleArguments) -> Geometry:
            r = args.radius("r", "d", 0)
            return [primitives.sphere(r, args.fragments(r))]

        def _cylinder(args: ModuleArguments) -> Geometry:
            h = args.number("h", 0, 1.0)
            r = args.radius("r", "d", default=1.0)
            r1 = args.radius("r1", "d1", 1, default=r)
            r2 = args.radius("r2", "d2", 2, default=r1 if args.number(None, 1) is not None else r)
            n = args.fragments(max(r1, r2))
            return [primitives.cylinder(h, r1, r2, n, args.flag("center", 3))]

        def _cone(args: ModuleArguments) -> Geometry:
            h = args.number("h", 0, 1.0)
            r = args.radius("r", "d", 1)
            return [primitives.cylinder(h, r, 0.0, args.fragments(r), args.flag("center", 2))]

        def _polyhedron(args: ModuleArguments) -> Geometry:
            points = to_points(args.get("points", 0, []), 3)
            faces = args.get("faces", 1)
            if faces is None:
                faces = args.get("triangles", default=[])
            return [primitives.polyhedron(points, to_index_lists(faces))]

        self.register(BuiltinModule("cube", _cube, "cube(size=1, center=false)"))
        self.register(BuiltinModule("sphere", _sphere, "sphere(r=1 | d)"))
        self.register(BuiltinModule("cylinder", _cylinder, "cylinder(h=1, r1, r2, center=false)"))
        self.register(BuiltinModule("cone", _cone, "cone(h=1, r=1, center=false)"))
        self.register(BuiltinModule("polyhedron", _polyhedron, "polyhedron(points, faces)"))

    # --- 2D Primitives ---

    def _register_shapes(self) -> None:
        """Register flat shapes."""

        def _circle(args: ModuleArguments) -> Geometry:
            r = args.radius("r", "d", 0)
            return [primitives.circle(r, args.fragments(r))]

        def _square(args: ModuleArguments) -> Geometry:
            size = to_vec2(args.get("size", 0), (1.0, 1.0))
            return [primitives.square(size, args.flag("center", 1))]

        def _polygon(args: ModuleArguments) -> Geometry:
            points = to_points(args.get("points", 0, []), 2)
            paths = args.get("paths", 1)
            return [primitives.polygon(points, to_index_lists(paths) if paths is not None else None)]

        def _text(args: ModuleArguments) -> Geometry:
            value = args.get("text", 0, "")
            if not isinstance(value, str):
                raise GeometryError("text requires a string")
            return [primitives.text(value, args.number("size", 1, 10.0))]

        self.register(BuiltinModule("circle", _circle, "circle(r=1 | d)"))
        self.register(BuiltinModule("square", _square, "square(size=1, center=false)"))
        self.register(BuiltinModule("polygon", _polygon, "polygon(points, paths)"))
        self.register(BuiltinModule("text", _text, "text(text, size=10)"))

    # --- Transforms ---

    def _register_transforms(self) -> None:
        """Register transforms; each returns transformed copies of its children."""

        def _translate(args: ModuleArguments) -> Geometry:
            v = to_vec3(args.get("v", 0), (0.0, 0.0, 0.0))
            return _transform_all(args.children, translation_matrix(v))

        def _rotate(args: ModuleArguments) -> Geometry:
            a = args.get("a", 0)
            if isinstance(a, list):
                matrix = euler_rotation_matrix(to_vec3(a, (0.0, 0.0, 0.0)))
            else:
                angle = a if is_number(a) else 0.0
                axis = to_vec3(args.get("v", 1), (0.0, 0.0, 1.0))
                matrix = axis_angle_matrix(angle, axis)
            return _transform_all(args.children, matrix)

        def _scale(args: ModuleArguments) -> Geometry:
            v = to_vec3(args.get("v", 0), (1.0, 1.0, 1.0))
            return _transform_all(args.children, scale_matrix(v))

        def _mirror(args: ModuleArguments) -> Geometry:
            v = to_vec3(args.get("v", 0), (1.0, 0.0, 0.0))
            return _transform_all(args.children, mirror_matrix(v))

        def _color(args: ModuleArguments) -> Geometry:
            return list(args.children)

        self.register(BuiltinModule("translate", _translate, "translate(v)"))
        self.register(BuiltinModule("rotate", _rotate, "rotate(a=[x,y,z]) or rotate(a, v=axis)"))
        self.register(BuiltinModule("scale", _scale, "scale(v)"))
        self.register(BuiltinModule("mirror", _mirror, "mirror(v=[1,0,0])"))
        self.register(BuiltinModule("color", _color, "color(c); the color is not applied"))

    # --- Boolean Operations ---

    def _register_boolean_operations(self) -> None:
        """
        Register CSG modules.

        union and hull merge their children.  difference and intersection
        keep the first child and record every later child as a pending
        operation instead of computing the boolean.
        """

        def _union(args: ModuleArguments) -> Geometry:
            merged = merge_buffers(args.children)
            return [merged] if merged is not None else []

        def _pending(operation: str) -> Callable[[ModuleArguments], Geometry]:
            def _apply(args: ModuleArguments) -> Geometry:
                if not args.children:
                    return []
                base = args.children[0]
                for child in args.children[1:]:
                    base = base.with_operation(CsgOperation(operation, child))
                return [base]
            return _apply

        self.register(BuiltinModule("union", _union, "union() { ... }"))
        self.register(BuiltinModule("hull", _union, "hull() { ... }; children are merged"))
        self.register(BuiltinModule("difference", _pending("subtract"), "difference() { ... }"))
        self.register(BuiltinModule("intersection", _pending("intersect"), "intersection() { ... }"))

    # --- Extrusions ---

    def _register_extrusions(self) -> None:
        """Register extrusions of flat children."""

        def _base(args: ModuleArguments) -> Optional[GeometryBuffer]:
            return merge_buffers(args.children)

        def _linear_extrude(args: ModuleArguments) -> Geometry:
            base = _base(args)
            if base is None:
                return []
            scale = args.get("scale")
            if isinstance(scale, list):
                scale = to_vec2(scale, (1.0, 1.0))
            else:
                scale = to_number(scale, 1.0)
            return [extrusion.linear_extrude(
                base,
                height=args.number("height", 0, 1.0),
                center=args.flag("center", 1),
                twist=args.number("twist", default=0.0),
                slices=args.number("slices"),
                scale=scale,
            )]

        def _rotate_extrude(args: ModuleArguments) -> Geometry:
            base = _base(args)
            if base is None:
                return []
            env = args.env
            return [extrusion.rotate_extrude(
                base,
                angle=args.number("angle", 0, 360.0),
                fn=env.fn, fa=env.fa, fs=env.fs,
            )]

        self.register(BuiltinModule(
            "linear_extrude", _linear_extrude,
            "linear_extrude(height=1, center=false, twist=0, slices, scale=1)",
        ))
        self.register(BuiltinModule("rotate_extrude", _rotate_extrude, "rotate_extrude(angle=360)"))

    # --- Structure ---

    def _register_structure(self) -> None:
        """Register modules that expose the current module invocation."""

        def _children(args: ModuleArguments) -> Geometry:
            available = args.env.children or []
            index = args.get("index", 0)
            if index is None:
                return list(available)
            wanted = index if isinstance(index, list) else [index]
            result = []
            for i in wanted:
                if is_number(i) and math.isfinite(i) and 0 <= int(i) < len(available):
                    result.append(available[int(i)])
            return result

        self.register(BuiltinModule("children", _children, "children([index])"))


# Global singleton registry
_registry: Optional[BuiltinModuleRegistry] = None


def get_module_registry() -> BuiltinModuleRegistry:
    """Get the global built-in module registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinModuleRegistry()
    return _registry
