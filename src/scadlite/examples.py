"""Sample programs, used by ``python -m scadlite examples`` and the test suite."""

EXAMPLES = {
    "cube": """\
// Simple cube
cube([20, 20, 20], center=true);
""",

    "hollow_box": """\
// Hollow box (enclosure)
difference() {
  cube([80, 50, 30], center=true);
  translate([0, 0, 2])
    cube([76, 46, 30], center=true);
}
""",

    "rounded_box": """\
// Rounded box using hull
$fn = 32;
module rounded_cube(size, r) {
  hull() {
    for (x = [-1, 1], y = [-1, 1], z = [-1, 1])
      translate([x*(size[0]/2-r), y*(size[1]/2-r), z*(size[2]/2-r)])
        sphere(r);
  }
}
rounded_cube([40, 30, 20], 3);
""",

    "gear_like": """\
// Gear-like shape
$fn = 6;
difference() {
  cylinder(h=5, r=20, center=true);
  cylinder(h=10, r=8, center=true);
}
for (i = [0:5])
  rotate([0, 0, i*60])
    translate([15, 0, 0])
      cylinder(h=5, r=5, center=true);
""",

    "enclosure_with_holes": """\
// Enclosure with mounting holes
difference() {
  // Outer shell
  cube([100, 60, 40], center=true);

  // Inner cavity
  translate([0, 0, 2])
    cube([96, 56, 40], center=true);

  // Mounting holes
  for (x = [-40, 40], y = [-20, 20])
    translate([x, y, -20])
      cylinder(h=10, r=2, $fn=16);
}
""",

    "parametric_box": """\
// Parametric box with lid lip
width = 60;
depth = 40;
height = 25;
wall = 2;
lip = 3;

// Body
difference() {
  cube([width, depth, height]);
  translate([wall, wall, wall])
    cube([width-wall*2, depth-wall*2, height]);
}

// Lid (offset for visualization)
translate([0, 0, height + 5]) {
  cube([width, depth, wall]);
  translate([wall, wall, -lip])
    difference() {
      cube([width-wall*2, depth-wall*2, lip]);
      translate([wall, wall, 0])
        cube([width-wall*4, depth-wall*4, lip]);
    }
}
""",

    "vase": """\
// Lathed vase next to a twisted, tapered frame
$fn = 48;
rotate_extrude()
  polygon([[0, 0], [12, 0], [14, 10], [9, 25], [11, 40], [0, 40]]);
translate([40, 0, 0])
  linear_extrude(height=20, twist=90, slices=12, scale=0.5)
    polygon(points=[[-8, -8], [8, -8], [8, 8], [-8, 8], [-3, -3], [3, -3], [3, 3], [-3, 3]],
            paths=[[0, 1, 2, 3], [4, 5, 6, 7]]);
""",
}
