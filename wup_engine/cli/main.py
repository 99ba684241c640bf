import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

# Engine imports
from ..dsl.model import EDITABLE_COLLECTIONS, WupModel
from ..dsl.to_svg import model_to_svg                        # SVG preview
from ..dsl.wup_parser import WupParseError, parse_wup
from ..editor.editor import WupEditor
from ..editor.serializer import save_as_modified
from ..transforms.cutout import (
    DEFAULT_TOOL_RADIUS,
    compute_cutout_footprint,
    extract_control_code,
    format_millimetres,
    parse_control_code,
)
from ..validators.intersections import check_model
# DXF exporter is imported inside the command to avoid hard dependency at import-time

app = typer.Typer(help="WUP wall-panel CLI")


# ---------------------------
# Helpers
# ---------------------------

def _load_model(inp: Path) -> WupModel:
    try:
        return parse_wup(Path(inp).read_text(encoding="utf-8"))
    except WupParseError as e:
        typer.echo(f"{inp}: {e}", err=True)
        raise typer.Exit(code=1)


def _load_options(options: Optional[Path]) -> Dict[str, Any]:
    """Optional YAML options (tool_radius, units, dxf_layers)."""
    if options is None:
        return {}
    import yaml

    opts = yaml.safe_load(Path(options).read_text()) or {}
    if not isinstance(opts, dict):
        raise typer.BadParameter("options file must contain a mapping", param_hint="--options")
    return opts


def _model_to_json(model: WupModel) -> Dict[str, Any]:
    data = dataclasses.asdict(model)
    data.pop("source_text", None)
    data["unhandled_count"] = len(model.unhandled)
    return data


def _check_kind(kind: str) -> str:
    if kind not in EDITABLE_COLLECTIONS:
        raise typer.BadParameter(f"kind must be one of {', '.join(EDITABLE_COLLECTIONS)}", param_hint="--kind")
    return kind


# ---------------------------
# Commands
# ---------------------------

@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log parser and editor details")):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")


@app.command()
def parse(
    inp: Path = typer.Option(..., exists=True, dir_okay=False, help="WUP file"),
    out: Optional[Path] = typer.Option(None, help="Output model JSON (stdout when omitted)"),
):
    """Parse a WUP file and dump the structured model as JSON."""
    model = _load_model(inp)
    payload = json.dumps(_model_to_json(model), indent=2)
    if out is None:
        typer.echo(payload)
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(payload)
    typer.echo(f"Wrote model to {out}")


@app.command()
def preview(
    inp: Path = typer.Option(..., exists=True, dir_okay=False, help="WUP file"),
    out: Path = typer.Option(..., help="Output SVG path"),
):
    """Render the wall to an SVG for quick visual checks."""
    model = _load_model(inp)
    out.parent.mkdir(parents=True, exist_ok=True)
    model_to_svg(model, str(out))
    typer.echo(f"Wrote {out}")


@app.command("export-dxf")
def export_dxf_cmd(
    inp: Path = typer.Option(..., exists=True, dir_okay=False, help="WUP file"),
    out: Path = typer.Option(..., help="Output DXF path"),
    units: Optional[str] = typer.Option(None, help="Units for $INSUNITS (mm|in|unitless)"),
    options: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Options YAML"),
):
    """
    Export to DXF (AC1018) with layers:
    STUD / BLOCKING / PLATE / SHEATHING / NAILROW / PAF / BOY
    """
    from ..packaging.dxf_exporter import export_dxf  # import here to keep CLI import light

    opts = _load_options(options)
    model = _load_model(inp)
    out.parent.mkdir(parents=True, exist_ok=True)
    try:
        path = export_dxf(
            model,
            str(out),
            units=units or opts.get("units", "mm"),
            layer_map=opts.get("dxf_layers"),
        )
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--units")
    typer.echo(f"Wrote DXF: {path}")


@app.command()
def check(
    inp: Path = typer.Option(..., exists=True, dir_okay=False, help="WUP file"),
    options: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="Options YAML"),
):
    """
    Report routing footprints, unhandled statements and geometric issues.
    Exits with code 1 when any issue is found.
    """
    opts = _load_options(options)
    tool_radius = float(opts.get("tool_radius", DEFAULT_TOOL_RADIUS))
    model = _load_model(inp)

    for routing in model.paf_routings:
        for seg in routing.segments:
            if seg.kind == "circle":
                continue
            info = parse_control_code(extract_control_code(seg))
            fp = compute_cutout_footprint(seg.points, info, tool_radius)
            if fp is None:
                continue
            typer.echo(
                f"paf #{routing.editor_id} {seg.kind}: {info.radius_mode}, {info.edge_mode}, "
                f"{format_millimetres(fp.width)} x {format_millimetres(fp.height)}"
            )

    for u in model.unhandled:
        typer.echo(f"unhandled [{u.statement_index}] {u.command} {u.body}".rstrip())

    issues = check_model(model)
    for issue in issues:
        where = f"#{issue.editor_id}" if issue.editor_id is not None else f"[{issue.statement_index}]"
        typer.echo(f"{issue.kind} {where}: {issue.message}")
    if issues:
        raise typer.Exit(code=1)
    typer.echo("OK")


@app.command()
def translate(
    inp: Path = typer.Option(..., exists=True, dir_okay=False, help="WUP file"),
    kind: str = typer.Option(..., help="nail_row | boy | paf"),
    ids: List[int] = typer.Option(..., "--id", help="Editor id (repeatable)"),
    axis: str = typer.Option(..., help="x | y (nail_row, paf) or x | z (boy)"),
    mm: float = typer.Option(..., help="Distance in mm"),
):
    """Move entities and write <name>-modified.wup beside the input."""
    editor = WupEditor(_load_model(inp))
    moved = editor.translate_many([(_check_kind(kind), i) for i in ids], axis, mm)
    if not moved:
        typer.echo("Nothing moved", err=True)
        raise typer.Exit(code=1)
    out = save_as_modified(editor.model, inp)
    typer.echo(f"Moved {moved} {kind}; wrote {out}")


@app.command()
def delete(
    inp: Path = typer.Option(..., exists=True, dir_okay=False, help="WUP file"),
    kind: str = typer.Option(..., help="nail_row | boy | paf"),
    ids: List[int] = typer.Option(..., "--id", help="Editor id (repeatable)"),
):
    """Delete entities and write <name>-modified.wup beside the input."""
    editor = WupEditor(_load_model(inp))
    removed = editor.delete_many([(_check_kind(kind), i) for i in ids])
    if not removed:
        typer.echo("Nothing deleted", err=True)
        raise typer.Exit(code=1)
    out = save_as_modified(editor.model, inp)
    typer.echo(f"Deleted {removed} {kind}; wrote {out}")


if __name__ == "__main__":
    app()
