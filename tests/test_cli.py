import json

from typer.testing import CliRunner

from wup_engine.cli.main import app

from conftest import BOWTIE_WUP

runner = CliRunner()


def test_parse_dumps_json(wall_file):
    result = runner.invoke(app, ["parse", "--inp", str(wall_file)])
    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert len(data["studs"]) == 2
    assert data["boy_operations"][0]["target"]["x"] == 1000
    assert data["unhandled_count"] == 0


def test_parse_to_file(tmp_path, wall_file):
    out = tmp_path / "out" / "model.json"
    result = runner.invoke(app, ["parse", "--inp", str(wall_file), "--out", str(out)])
    assert result.exit_code == 0
    assert json.loads(out.read_text())["next_editor_id"] == 5


def test_parse_error_exits_non_zero(tmp_path):
    bad = tmp_path / "bad.wup"
    bad.write_text("XYZ 1;")
    result = runner.invoke(app, ["parse", "--inp", str(bad)])
    assert result.exit_code == 1


def test_preview_and_export(tmp_path, wall_file):
    svg = tmp_path / "wall.svg"
    dxf = tmp_path / "wall.dxf"
    assert runner.invoke(app, ["preview", "--inp", str(wall_file), "--out", str(svg)]).exit_code == 0
    assert svg.exists()
    opts = tmp_path / "opts.yml"
    opts.write_text("units: mm\ndxf_layers:\n  PAF: ROUTING\n")
    result = runner.invoke(app, ["export-dxf", "--inp", str(wall_file), "--out", str(dxf), "--options", str(opts)])
    assert result.exit_code == 0, result.output
    assert dxf.exists()


def test_check(tmp_path, wall_file):
    opts = tmp_path / "opts.yml"
    opts.write_text("tool_radius: 6\n")
    result = runner.invoke(app, ["check", "--inp", str(wall_file), "--options", str(opts)])
    assert result.exit_code == 0, result.output
    assert "Left compensation, Standard contour" in result.output
    assert "OK" in result.output

    bowtie = tmp_path / "bowtie.wup"
    bowtie.write_text(BOWTIE_WUP)
    result = runner.invoke(app, ["check", "--inp", str(bowtie)])
    assert result.exit_code == 1
    assert "self_intersection" in result.output


def test_translate_writes_modified_copy(wall_file):
    result = runner.invoke(app, [
        "translate", "--inp", str(wall_file), "--kind", "nail_row",
        "--id", "2", "--id", "3", "--axis", "x", "--mm", "5",
    ])
    assert result.exit_code == 0, result.output
    modified = wall_file.with_name("wall-modified.wup").read_text()
    assert "NR 15,10,15,2400,150;" in modified
    assert "NR 995,10,995,2400,150;" in modified
    assert "NR 10,10,10,2400,150;" in wall_file.read_text()


def test_delete_writes_modified_copy(wall_file):
    result = runner.invoke(app, ["delete", "--inp", str(wall_file), "--kind", "boy", "--id", "1"])
    assert result.exit_code == 0, result.output
    assert "BOY" not in wall_file.with_name("wall-modified.wup").read_text()


def test_bad_kind_or_id(wall_file):
    result = runner.invoke(app, ["delete", "--inp", str(wall_file), "--kind", "stud", "--id", "1"])
    assert result.exit_code != 0
    result = runner.invoke(app, ["delete", "--inp", str(wall_file), "--kind", "boy", "--id", "99"])
    assert result.exit_code == 1
    assert not wall_file.with_name("wall-modified.wup").exists()
