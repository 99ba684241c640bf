import ezdxf
import pytest

from wup_engine.dsl.to_svg import model_to_svg
from wup_engine.packaging.dxf_exporter import export_dxf


def test_svg_preview(tmp_path, wall_model):
    out = tmp_path / "wall.svg"
    model_to_svg(wall_model, str(out))
    svg = out.read_text()
    assert svg.startswith("<?xml")
    assert "<svg" in svg
    assert "A 100.000 100.000" in svg
    assert svg.count("<circle") == 2


def test_dxf_export(tmp_path, wall_model):
    out = tmp_path / "wall.dxf"
    export_dxf(wall_model, str(out))
    doc = ezdxf.readfile(str(out))
    assert doc.header["$INSUNITS"] == 4
    msp = doc.modelspace()
    assert len(msp.query("LWPOLYLINE")) == 3
    assert len(msp.query("CIRCLE")) == 2
    # two nail rows, two straight path edges and the closing edge
    assert len(msp.query("LINE")) == 5
    arcs = msp.query("ARC")
    assert len(arcs) == 1
    arc = arcs[0]
    assert arc.dxf.layer == "PAF"
    assert arc.dxf.radius == pytest.approx(100)
    assert arc.dxf.start_angle % 360 == pytest.approx(270)
    assert arc.dxf.end_angle % 360 == pytest.approx(90)


def test_dxf_layer_map(tmp_path, wall_model):
    out = tmp_path / "wall.dxf"
    export_dxf(wall_model, str(out), layer_map={"PAF": "ROUTING"})
    doc = ezdxf.readfile(str(out))
    assert "ROUTING" in doc.layers
    assert doc.modelspace().query("ARC")[0].dxf.layer == "ROUTING"


def test_dxf_rejects_unknown_units(tmp_path, wall_model):
    with pytest.raises(ValueError):
        export_dxf(wall_model, str(tmp_path / "x.dxf"), units="furlong")
