"""
Tests for the scadlite evaluator.
"""

import logging
import pytest

from scadlite import tokenize, parse
from scadlite.runtime import Evaluator, evaluate, Environment


def run(source):
    tokens, lex_diagnostics = tokenize(source)
    assert not lex_diagnostics.has_errors
    statements, diagnostics = parse(tokens, source)
    assert not diagnostics.has_errors, diagnostics.format_all()
    return evaluate(statements, source)


def run_ok(source):
    result = run(source)
    assert result.success, [e.message for e in result.errors]
    return result


def bounds(source):
    lo, hi = run_ok(source).geometry.bounds()
    return lo.tolist(), hi.tolist()


class TestEnvironment:
    """Test scope chains and resolution parameters."""

    def test_defaults(self):
        env = Environment()
        assert (env.fn, env.fa, env.fs) == (32, 12, 2)

    def test_child_lookup(self):
        """Children see parent variables; their own bindings stay local."""
        root = Environment()
        root.set("a", 1.0)
        child = root.child()
        child.set("b", 2.0)
        assert child.get("a") == 1.0
        assert root.lookup("b") == (False, None)

    def test_special_variables(self):
        """$fn updates the scope's parameter and is inherited, not leaked."""
        root = Environment()
        child = root.child()
        child.set("$fn", 6.0)
        assert child.fn == 6.0
        assert child.get("$fn") == 6.0
        assert root.fn == 32
        assert child.child().fn == 6.0
        assert "$fn" not in child.variables

    def test_special_ignores_non_numbers(self):
        env = Environment()
        env.set("$fn", "many")
        assert env.fn == 32


class TestVariablesAndExpressions:
    """Test variables, constants and expression evaluation in programs."""

    def test_variable_argument(self):
        assert bounds("w = 10; cube(w);")[1] == [10.0, 10.0, 10.0]

    def test_len_of_number(self):
        """len of a number is zero, so the comparison holds."""
        assert len(run_ok("n = len(5); if (n == 0) cube(1);").meshes) == 1

    def test_pi(self):
        """PI is predefined."""
        _, hi = bounds("cube(PI);")
        assert hi[0] == pytest.approx(3.141592653589793)

    def test_expressions(self):
        """Arithmetic, indexing, ternary and function calls together."""
        source = "v = [2, 4, 6]; n = len(v) > 2 ? v[1] * 2 : 0; cube([n, sqrt(16), v[0] ^ 2]);"
        assert bounds(source)[1] == [8.0, 4.0, 4.0]

    def test_unknown_variable(self):
        """Unknown variables are reported and read as undefined."""
        result = run("cube(q);")
        assert [e.code for e in result.errors] == ["E403"]
        assert result.errors[0].message == "Unknown variable: q"
        # cube falls back to its default size
        assert result.geometry.bounds()[1].tolist() == [1.0, 1.0, 1.0]

    def test_short_circuit(self):
        """&& does not evaluate its right side when the left is false."""
        result = run_ok("x = false && missing; if (!x) cube(1);")
        assert result.geometry is not None

    def test_range_too_large(self):
        """Oversized ranges are runtime errors, not hangs."""
        result = run("for (i = [0:1e7]) cube(1);")
        assert [e.code for e in result.errors] == ["E404"]
        assert result.geometry is None


class TestControlFlow:
    """Test for, if and let."""

    def test_for_range(self):
        """for over a stepped range produces one buffer per element."""
        result = run_ok("for (i = [0:2:4]) translate([i, 0, 0]) cube(1);")
        assert len(result.meshes) == 3
        assert result.geometry.vertex_count == 72
        assert result.geometry.bounds()[1].tolist() == [5.0, 1.0, 1.0]

    def test_for_list(self):
        result = run_ok("for (p = [[0, 0, 0], [0, 0, 5]]) translate(p) cube(1);")
        assert result.geometry.bounds()[1].tolist() == [1.0, 1.0, 6.0]

    def test_for_non_list(self):
        """Iterating a non-list runs the body zero times."""
        result = run_ok("for (i = 5) cube(1);")
        assert result.geometry is None
        assert result.meshes == []

    def test_for_nested_variables(self):
        result = run_ok("for (x = [0, 2], y = [0, 2]) translate([x, y, 0]) cube(1);")
        assert len(result.meshes) == 4

    def test_for_scope(self):
        """Loop variables do not leak out of the loop."""
        result = run("for (i = [1]) cube(1); cube(i);")
        assert [e.message for e in result.errors] == ["Unknown variable: i"]

    @pytest.mark.parametrize("condition,expected", [
        ("0", 2.0),
        ("[]", 2.0),
        ("false", 2.0),
        ("1", 1.0),
        ("[0]", 1.0),
        ('"text"', 1.0),
    ])
    def test_if_truthiness(self, condition, expected):
        """undefined, false, 0 and [] take the else branch."""
        _, hi = bounds(f"if ({condition}) cube(1); else cube(2);")
        assert hi[0] == expected

    def test_if_without_else(self):
        assert run_ok("if (false) cube(1);").geometry is None

    def test_let_uses_outer_scope(self):
        """let bindings are evaluated in the enclosing scope."""
        assert bounds("x = 1; let (x = 5, y = x) cube([x, y, 1]);")[1] == [5.0, 1.0, 1.0]


class TestUserDefinitions:
    """Test user modules and functions."""

    def test_module_defaults(self):
        assert bounds("module box(w, h = 2) cube([w, h, 1]); box(3);")[1] == [3.0, 2.0, 1.0]

    def test_module_named_arguments(self):
        assert bounds("module box(w, h = 2) cube([w, h, 1]); box(h = 4, w = 1);")[1] == [1.0, 4.0, 1.0]

    def test_default_evaluated_in_caller(self):
        assert bounds("module m(s = k) cube(s); k = 3; m();")[1] == [3.0, 3.0, 3.0]

    def test_missing_parameter_undefined(self):
        """An unbound parameter without default is undefined."""
        assert bounds("module m(s) if (is_undef(s)) cube(4); m();")[1] == [4.0, 4.0, 4.0]

    def test_function(self):
        assert bounds("function sq(x) = x * x; cube(sq(3));")[1] == [9.0, 9.0, 9.0]

    def test_recursive_function(self):
        source = "function fact(n) = n <= 1 ? 1 : n * fact(n - 1); cube(fact(3));"
        assert bounds(source)[1] == [6.0, 6.0, 6.0]

    def test_function_named_arguments(self):
        assert bounds("function f(a, b = 1) = a - b; cube(f(b = 2, a = 5));")[1] == [3.0, 3.0, 3.0]

    def test_hoisting(self):
        """Definitions may follow their use within a statement list."""
        assert bounds("m(); module m() cube(f()); function f() = 2;")[1] == [2.0, 2.0, 2.0]

    def test_local_definitions(self):
        """A module defined inside another is not visible outside it."""
        source = "module outer() { module inner() cube(1); inner(); } outer(); inner();"
        result = run(source)
        assert [e.message for e in result.errors] == ["Unknown module: inner"]
        assert len(result.meshes) == 1

    def test_builtins_take_precedence(self):
        """User definitions cannot shadow built-ins."""
        source = "function sin(x) = 100; module cube(s) sphere(1); cube(sin(90) + 1);"
        result = run_ok(source)
        assert result.geometry.vertex_count == 24
        assert result.geometry.bounds()[1].tolist() == [2.0, 2.0, 2.0]

    def test_redefinition_warns(self, caplog):
        """The last definition wins and a warning is logged."""
        with caplog.at_level(logging.WARNING, logger="scadlite.runtime.interpreter"):
            result = run_ok("module m() cube(1); module m() cube(2); m();")
        assert result.geometry.bounds()[1].tolist() == [2.0, 2.0, 2.0]
        assert "redefined" in caplog.text

    def test_children(self):
        """children() yields the geometry passed to the current module."""
        source = "module wrap() translate([10, 0, 0]) children(); wrap() cube(1);"
        assert bounds(source)[0] == [10.0, 0.0, 0.0]

    def test_children_index(self):
        source = "module second() children(1); second() { cube(1); cube(2); cube(3); }"
        assert bounds(source)[1] == [2.0, 2.0, 2.0]

    def test_children_index_list(self):
        source = "module pick() children([0, 2]); pick() { cube(1); cube(2); cube(3); }"
        result = run_ok(source)
        assert len(result.meshes) == 2
        assert result.geometry.bounds()[1].tolist() == [3.0, 3.0, 3.0]

    def test_children_outside_module(self):
        assert run_ok("children();").geometry is None

    def test_recursive_module(self):
        source = "module stack(n) if (n > 0) { cube(1); translate([0, 0, 1]) stack(n - 1); } stack(3);"
        result = run_ok(source)
        assert len(result.meshes) == 3
        assert result.geometry.bounds()[1].tolist() == [1.0, 1.0, 3.0]


class TestResolution:
    """Test $fn, $fa and $fs handling."""

    def test_global_fn(self):
        result = run_ok("$fn = 6; circle(r = 10);")
        assert result.geometry.vertex_count == 6

    def test_default_fn(self):
        assert run_ok("circle(r = 10);").geometry.vertex_count == 32

    def test_named_fn_is_local(self):
        """A $fn argument applies to that call only."""
        result = run_ok("circle(r = 10, $fn = 8); circle(r = 10);")
        assert [m.geometry.vertex_count for m in result.meshes] == [8, 32]

    def test_named_fn_reaches_children(self):
        """Children are evaluated with the call's resolution."""
        result = run_ok("translate([0, 0, 0], $fn = 7) circle(1); module m() circle(1); m($fn = 9);")
        assert [m.geometry.vertex_count for m in result.meshes] == [7, 9]

    def test_module_assignment_does_not_leak(self):
        result = run_ok("module m() { $fn = 5; circle(1); } m(); circle(1);")
        assert [m.geometry.vertex_count for m in result.meshes] == [5, 32]

    def test_fa_fs(self):
        """With $fn = 0 the count follows $fa and $fs."""
        result = run_ok("$fn = 0; $fa = 6; $fs = 0.1; circle(r = 10);")
        assert result.geometry.vertex_count == 60

    def test_read_special(self):
        assert bounds("cube($fn);")[1] == [32.0, 32.0, 32.0]


class TestBuiltinModules:
    """Test built-in modules through the evaluator."""

    def test_cube_center(self):
        assert bounds("cube(10, center = true);")[0] == [-5.0, -5.0, -5.0]
        assert bounds("cube([1, 2, 3], true);")[1] == [0.5, 1.0, 1.5]

    def test_translate_equivalence(self):
        """translate moves bounds by exactly its vector."""
        lo, hi = bounds("translate([1, 2, 3]) cube(4);")
        assert lo == [1.0, 2.0, 3.0]
        assert hi == [5.0, 6.0, 7.0]

    def test_rotate_swaps_extents(self):
        """A 90 degree Z rotation swaps the X and Y extents."""
        lo, hi = bounds("rotate([0, 0, 90]) cube([10, 2, 1]);")
        assert hi[0] - lo[0] == pytest.approx(2.0)
        assert hi[1] - lo[1] == pytest.approx(10.0)

    def test_rotate_axis_angle(self):
        lo, hi = bounds("rotate(90, [1, 0, 0]) cube([1, 5, 1]);")
        assert hi[2] - lo[2] == pytest.approx(5.0)

    def test_scale_and_mirror(self):
        assert bounds("scale([2, 3, 4]) cube(1);")[1] == [2.0, 3.0, 4.0]
        assert bounds("mirror([1, 0, 0]) cube(1);")[0][0] == -1.0

    def test_color_passes_through(self):
        assert bounds('color("red") cube(2);')[1] == [2.0, 2.0, 2.0]

    def test_cylinder_arguments(self):
        """Radius forms: r, d, and positional r1/r2."""
        assert bounds("cylinder(h = 10, r = 3, $fn = 4);")[1][0] == pytest.approx(3.0)
        assert bounds("cylinder(h = 1, d = 4, $fn = 4);")[1][0] == pytest.approx(2.0)
        result = run_ok("cylinder(10, 2, 0, $fn = 8);")
        # A zero top radius collapses the top and drops its cap
        assert result.geometry.triangle_count == 16

    def test_cone(self):
        result = run_ok("cone(5, 2, $fn = 8);")
        assert result.geometry.triangle_count == 16

    def test_union(self):
        """union merges its children into one buffer."""
        result = run_ok("union() { cube(1); translate([5, 0, 0]) cube(1); }")
        assert len(result.meshes) == 1
        assert result.geometry.vertex_count == 48

    def test_difference_pending(self):
        """difference keeps the first child and records the rest."""
        result = run_ok("difference() { cube(10, center = true); sphere(r = 6); }")
        geometry = result.geometry
        assert geometry.vertex_count == 24
        assert [op.type for op in geometry.csg_operations] == ["subtract"]

    def test_intersection_pending(self):
        result = run_ok("intersection() { cube(1); sphere(1); cylinder(1); }")
        assert [op.type for op in result.geometry.csg_operations] == ["intersect", "intersect"]

    def test_empty_csg(self):
        assert run_ok("difference() { }").geometry is None

    def test_linear_extrude(self):
        assert bounds("linear_extrude(height = 5) square(2);")[1] == [2.0, 2.0, 5.0]

    def test_rotate_extrude(self):
        result = run_ok("rotate_extrude($fn = 12) translate([5, 0]) square(2);")
        lo, hi = result.geometry.bounds()
        assert hi[0] == pytest.approx(7.0)
        assert hi[2] == pytest.approx(2.0)

    def test_polygon_paths(self):
        source = "polygon([[0,0],[10,0],[10,10],[0,10],[3,3],[7,3],[7,7],[3,7]], [[0,1,2,3],[4,5,6,7]]);"
        assert run_ok(source).geometry.triangle_count == 8

    def test_polyhedron(self):
        source = "polyhedron(points = [[0,0,0],[1,0,0],[0,1,0],[0,0,1]], faces = [[0,1,2],[0,3,1],[0,2,3],[1,3,2]]);"
        assert run_ok(source).geometry.triangle_count == 4


class TestRuntimeErrors:
    """Test runtime error reporting."""

    def test_unknown_module_passes_children(self):
        """An unknown module reports an error and keeps its children."""
        result = run("foo() cube(1);")
        assert [e.code for e in result.errors] == ["E401"]
        assert result.errors[0].message == "Unknown module: foo"
        assert result.geometry.vertex_count == 24

    def test_unknown_function(self):
        result = run("x = bar(1);")
        assert [e.code for e in result.errors] == ["E402"]
        assert result.errors[0].message == "Unknown function: bar"

    def test_bad_arguments_continue(self):
        """A failing primitive yields nothing and evaluation continues."""
        result = run("cube(-1);\nsphere(1);")
        assert [e.code for e in result.errors] == ["E404"]
        assert result.errors[0].message == "Invalid arguments to cube: cube size must be positive"
        assert result.errors[0].line == 1
        assert len(result.meshes) == 1

    @pytest.mark.parametrize("source", [
        "text(5);",
        "polygon(5);",
        "polyhedron(points = [], faces = []);",
        "rotate_extrude() cube(1);",
        "rotate(45, [0, 0, 0]) cube(1);",
        "linear_extrude(height = 2, slices = 1/0) square(1);",
        "linear_extrude(height = 1/0) square(1);",
        "x = rands(0, 1, 1e12);",
    ])
    def test_invalid_arguments(self, source):
        result = run(source)
        assert [e.code for e in result.errors] == ["E404"]

    def test_bad_function_arguments_continue(self):
        """A failing built-in function is reported and later statements still run."""
        result = run("cube(1);\nx = rands(0, 1, 3, -5);\ntranslate([5,0,0]) cube(1);")
        assert [(e.code, e.line) for e in result.errors] == [("E404", 2)]
        assert result.errors[0].message.startswith("Invalid arguments to rands: rands seed")
        assert len(result.meshes) == 2

    def test_failed_function_is_undef(self):
        """A failed built-in call evaluates to undef."""
        result = run("x = rands(0, 1, 3, -5);\nif (is_undef(x)) cube(1);")
        assert [e.code for e in result.errors] == ["E404"]
        assert len(result.meshes) == 1

    def test_failing_call_in_user_function(self):
        """Errors inside a user function body are attributed to the inner call."""
        result = run("function f(s) = rands(0, 1, 2, s);\nx = f(-1);\ncube(1);")
        assert [(e.code, e.line) for e in result.errors] == [("E404", 1)]
        assert len(result.meshes) == 1

    def test_infinite_fn_ignored(self):
        """A non-finite $fn leaves the resolution parameters unchanged."""
        result = run_ok("$fn = 1/0;\ncircle(1);\ncircle(1, $fn = 1/0);")
        assert [m.geometry.vertex_count for m in result.meshes] == [5, 5]

    def test_infinite_face_index(self):
        """Non-finite face indices are rejected without losing other geometry."""
        result = run("polyhedron(points = [[0,0,0],[1,0,0],[0,1,0]], faces = [[0, 1, 1/0]]);\ncube(1);")
        assert [e.code for e in result.errors] == ["E404"]
        assert "indices must be finite" in result.errors[0].message
        assert len(result.meshes) == 1

    def test_error_line(self):
        result = run("cube(1);\n\nfoo();")
        assert result.errors[0].line == 3

    def test_evaluator_reuse(self):
        """An Evaluator keeps no state between programs."""
        evaluator = Evaluator()
        first, _ = parse(tokenize("module m() cube(1); m();")[0])
        second, _ = parse(tokenize("m();")[0])
        assert evaluator.evaluate(first).success
        result = evaluator.evaluate(second)
        assert [e.code for e in result.errors] == ["E401"]

    def test_empty_program(self):
        result = run_ok("")
        assert result.geometry is None
        assert result.meshes == []
