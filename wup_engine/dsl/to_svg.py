from __future__ import annotations

import math
from typing import List

import svgwrite

from .model import WupModel

STYLE = {
    "stud": {"fill": "#d9b382", "stroke": "#7a5230"},
    "blocking": {"fill": "#e6c9a0", "stroke": "#7a5230"},
    "plate": {"fill": "#c49a6c", "stroke": "#5c3b1e"},
    "pli": {"fill": "none", "stroke": "#2f7d32"},
    "pla": {"fill": "none", "stroke": "#1f5fa8"},
}


def _f(v: float) -> str:
    return f"{v:.3f}"


def _path_d(seg) -> str:
    """SVG path data for a routing path; arcs stay arcs."""
    if not seg.path_segments:
        pts = seg.points
        return " ".join(f"{'M' if i == 0 else 'L'} {_f(p.x)} {_f(p.y)}" for i, p in enumerate(pts))
    first = seg.path_segments[0].start
    cmds: List[str] = [f"M {_f(first.x)} {_f(first.y)}"]
    for ps in seg.path_segments:
        if ps.type == "arc":
            large = 1 if ps.sweep > math.pi else 0
            # y is flipped by the group transform, so wall-ccw is svg sweep-flag 1
            sweep = 0 if ps.clockwise else 1
            cmds.append(f"A {_f(ps.radius)} {_f(ps.radius)} 0 {large} {sweep} {_f(ps.end.x)} {_f(ps.end.y)}")
        else:
            cmds.append(f"L {_f(ps.end.x)} {_f(ps.end.y)}")
    if seg.kind == "polygon":
        cmds.append("Z")
    return " ".join(cmds)


def model_to_svg(model: WupModel, filename: str, margin: float = 50, stroke_width: float = 2):
    b = model.bounds
    width = b.width + 2 * margin
    height = b.height + 2 * margin
    dwg = svgwrite.Drawing(filename, size=(f"{width}mm", f"{height}mm"),
                           viewBox=f"0 0 {width} {height}")
    # wall coordinates have y up
    g = dwg.g(transform=f"translate({margin - b.min_x},{margin + b.max_y}) scale(1,-1)")

    for rect in model.frame_members():
        g.add(dwg.rect(insert=(rect.x, rect.y), size=(rect.width, rect.height),
                       stroke_width=stroke_width, **STYLE[rect.kind]))
    for panel in model.sheathing:
        style = STYLE[panel.layer]
        if len(panel.points) >= 3:
            g.add(dwg.polygon([(p.x, p.y) for p in panel.points], stroke_width=stroke_width, **style))
        else:
            g.add(dwg.rect(insert=(panel.x, panel.y), size=(panel.width, panel.height),
                           stroke_width=stroke_width, **style))
    for row in model.nail_rows:
        g.add(dwg.line(start=(row.start.x, row.start.y), end=(row.end.x, row.end.y),
                       stroke=STYLE[row.layer]["stroke"], stroke_width=stroke_width, stroke_dasharray="6,4"))
    for routing in model.paf_routings:
        for seg in routing.segments:
            if seg.kind == "circle":
                g.add(dwg.circle(center=(seg.position.x, seg.position.y), r=seg.radius or 0,
                                 fill="none", stroke="#c62828", stroke_width=stroke_width))
            else:
                g.add(dwg.path(d=_path_d(seg), fill="none", stroke="#c62828", stroke_width=stroke_width))
    for op in model.boy_operations:
        g.add(dwg.circle(center=(op.x, op.z), r=(op.diameter or 2) / 2,
                         fill="#6a1b9a", stroke="none"))
    dwg.add(g)
    dwg.save()
    return filename
