import pytest

from wup_engine.dsl.model import CircleSegment, PathSegment
from wup_engine.dsl.wup_parser import (
    WupParseError,
    build_rect_from_element,
    derive_depth_value,
    normalize_model,
    parse_wup,
    resolve_boy_coordinates,
    round_half_up,
)
from wup_engine.geometry.bounds import routing_extent_points

from conftest import STUD_DRILL_WUP


def test_stud_with_drilling():
    model = parse_wup(STUD_DRILL_WUP)
    assert len(model.studs) == 1
    stud = model.studs[0]
    assert stud.x == 100
    assert stud.width == 38 and stud.height == 2400

    assert len(model.boy_operations) == 1
    op = model.boy_operations[0]
    assert op.target is stud
    assert op.target_kind == "stud"
    assert op.direction == -1
    assert op.x == 119
    assert op.z == 45

    b = model.bounds
    assert b.min_x <= 100 and b.max_x >= 138
    assert b.min_y <= 0 and b.max_y >= 2400
    assert model.unhandled == []


def test_infeasible_curve_still_yields_two_segments():
    model = parse_wup("ELM 1000,1000; QS 1000,40,0,0,0,0; PAF 1,1,1; PP 0,0; PP 100,0; KB 300,0,10,cw;")
    assert len(model.paf_routings) == 1
    seg = model.paf_routings[0].segments[0]
    assert [s.type for s in seg.path_segments] == ["line", "line"]
    assert seg.path_segments[1].fallback
    assert model.unhandled == []


def test_wall_model(wall_model):
    m = wall_model
    assert m.wall.width == 2000 and m.wall.height == 2500
    assert len(m.studs) == 2

    op = m.boy_operations[0]
    assert op.target is m.studs[1]
    assert (op.x, op.z) == (1030, 80)

    panel = m.sheathing[0]
    assert panel.material == "OSB"
    assert (panel.layer, panel.layer_index, panel.face_direction) == ("pli", 1, 1)
    assert all(row.layer_command == "PLI1" for row in m.nail_rows)

    routing = m.paf_routings[0]
    assert routing.layer == "pli"
    assert routing.statement_indices == [7, 8, 9, 10, 11, 12]
    poly, circle = routing.segments
    assert isinstance(poly, PathSegment) and isinstance(circle, CircleSegment)
    assert poly.kind == "polygon"
    assert [s.type for s in poly.path_segments] == ["line", "arc", "line"]
    assert poly.source[2].arc_type == "cc"
    assert poly.depth == 15 and poly.depth_raw == -15
    assert poly.control_code == 1101
    assert circle.radius == 25 and circle.depth == 10 and circle.control_code == 0

    assert [op.editor_id for op in m.boy_operations] == [1]
    assert [row.editor_id for row in m.nail_rows] == [2, 3]
    assert routing.editor_id == 4
    assert m.next_editor_id == 5
    assert m.unhandled == []


def test_bounds_cover_every_entity(wall_model):
    b = wall_model.bounds
    assert (b.min_x, b.max_x, b.min_y, b.max_y) == (0, 1060, 0, 2500)
    pts = []
    for routing in wall_model.paf_routings:
        pts.extend(routing_extent_points(routing))
    for row in wall_model.nail_rows:
        pts += [(row.start.x, row.start.y), (row.end.x, row.end.y)]
    pts += [(op.x, op.z) for op in wall_model.boy_operations]
    for x, y in pts:
        assert b.contains(x, y)


def test_panel_takes_precedence_over_routing():
    model = parse_wup(
        "QS 1000,40,0,0,0,0; PAF 1,1,1; PLI1 600,1200,15,0,0,1,OSB;"
        "PP 0,0; PP 600,0; PP 600,1200; NR 10,10,10,1100,150; PP 50,50; PP 150,50;"
    )
    assert len(model.sheathing[0].points) == 3
    routing = model.paf_routings[0]
    seg = routing.segments[0]
    assert seg.kind == "polyline"
    assert [(p.x, p.y) for p in seg.points] == [(50, 50), (150, 50)]
    assert model.nail_rows[0].editor_id == 1
    assert routing.editor_id == 2


def test_layer_variant_is_inherited():
    model = parse_wup("QS 1000,40,0,0,0,0; PLA2 600,1200,15,0,0,1; NR 0,0,0,100,50; PAF 1; PP 0,0; PP 10,10;")
    panel = model.sheathing[0]
    assert (panel.layer, panel.layer_index, panel.layer_command) == ("pla", 2, "PLA2")
    assert panel.face_direction == -1
    assert panel.material is None
    row = model.nail_rows[0]
    assert (row.layer, row.layer_index, row.layer_command) == ("pla", 2, "PLA2")
    assert model.paf_routings[0].layer_command == "PLA2"


def test_module_relative_members():
    model = parse_wup(
        "MODUL 600,2400,160,1000,0,5; QS 2400,60,0,100,0,0; BOY 10,20,16,30;"
        "OG 600,60,0,0,2340; PLI1 600,2400,15,0,0,1; PP 0,0; PP 600,0; PP 600,2400;"
        "ENDMODUL; BOY 5,5,10,10;"
    )
    stud = model.studs[0]
    assert (stud.x, stud.local_x) == (1100, 100)
    inside, outside = model.boy_operations
    assert inside.target is stud
    assert (inside.x, inside.z, inside.direction) == (1110, 25, 1)
    plate = model.plates[0]
    assert (plate.x, plate.y, plate.role) == (0, 2340, "top")
    panel = model.sheathing[0]
    assert panel.x == 1000
    assert [p.x for p in panel.points] == [1000, 1600, 1600]
    assert outside.target is None
    assert (outside.x, outside.z) == (5, 5)


def test_unhandled_statements_are_collected():
    model = parse_wup(
        "ELM 1000,1000; ELM 5,5; QS 1,2; XYZ 1,2; PP 1,2; QS 1000,40,0,0,0,0; PAF 1; KB 1,2,3; MP 1,2;"
    )
    assert [u.command for u in model.unhandled] == ["ELM", "QS", "XYZ", "PP", "KB", "MP", "PAF"]
    assert [u.statement_index for u in model.unhandled] == [1, 2, 3, 4, 7, 8, 6]
    assert model.wall.width == 1000
    assert len(model.studs) == 1


def test_single_point_path_is_unhandled():
    model = parse_wup("QS 1000,40,0,0,0,0; PAF 1; PP 5,5; NR 0,0,0,100;")
    assert [u.command for u in model.unhandled] == ["PP", "PAF"]
    assert model.paf_routings == []


def test_path_attributes_are_averaged():
    model = parse_wup(
        "QS 1000,40,0,0,0,0; PAF 1;"
        "PP 0,0,-10,1100,0; PP 100,0,-20,1100,0; PP 100,100,-30,1101,0;"
    )
    seg = model.paf_routings[0].segments[0]
    assert seg.kind == "polygon"
    assert seg.depth == pytest.approx(20)
    assert seg.depth_raw == pytest.approx(-20)
    assert seg.z == pytest.approx(-20)
    assert seg.control_code == 1100


def test_depth_tie_break():
    assert derive_depth_value(None, None) is None
    assert derive_depth_value(None, 3) == 3
    assert derive_depth_value(5, None) == 5
    assert derive_depth_value(-10, -5) == -10
    assert derive_depth_value(0, -15) == -15
    assert derive_depth_value(0, 0) == 0


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(1100.49) == 1100


def test_rotated_member_swaps_extent():
    rect = build_rect_from_element([2400, 38, 0, 0, 0, 90], None)
    assert (rect.width, rect.height) == (2400, 38)


def test_boy_without_context():
    assert resolve_boy_coordinates(5, 7, None, None) == (5, 7)


def test_first_editor_id(wall_text):
    model = parse_wup(wall_text, first_editor_id=10)
    assert model.boy_operations[0].editor_id == 10
    assert model.next_editor_id == 14


@pytest.mark.parametrize("text", ["", "   ", None, "XYZ 1;"])
def test_fatal_inputs(text):
    with pytest.raises(WupParseError):
        parse_wup(text)


def test_normalize_model(wall_model):
    view = normalize_model(wall_model)
    assert (view.width, view.height) == (2000, 2500)
    bare = parse_wup("QS 1000,40,0,0,0,0;")
    assert (normalize_model(bare).width, normalize_model(bare).height) == (40, 1000)
