"""
DXF exporter (AC1018) for a parsed wall.

- Units: sets $INSUNITS=4 (mm) when units="mm".
- Geometry:
  * Frame members and panels as closed LWPOLYLINEs (panel boundary points
    when present, the header rectangle otherwise).
  * Routing paths as LINE / ARC entities; solved arcs stay true arcs.
  * MP circles and BOY drillings as CIRCLEs.
- Layers: STUD/BLOCKING/PLATE/SHEATHING/NAILROW/PAF/BOY created BYLAYER.

Requires: ezdxf
"""
from __future__ import annotations

import logging
import math
from typing import Dict, Optional

import ezdxf

from ..dsl.model import WupModel

logger = logging.getLogger(__name__)

INSUNITS = {"mm": 4, "in": 1, "unitless": 0}

DEFAULT_LAYERS = {
    "STUD": {"color": 30},
    "BLOCKING": {"color": 40},
    "PLATE": {"color": 32},
    "SHEATHING": {"color": 3},
    "NAILROW": {"color": 5},
    "PAF": {"color": 1},
    "BOY": {"color": 6},
}
KIND_LAYER = {"stud": "STUD", "blocking": "BLOCKING", "plate": "PLATE"}


def _rect(x, y, w, h):
    return [(x, y), (x + w, y), (x + w, y + h), (x, y + h)]


def export_dxf(
    model: WupModel,
    out_path: str,
    units: str = "mm",
    layer_map: Optional[Dict[str, str]] = None,
):
    if units.lower() not in INSUNITS:
        raise ValueError(f"unsupported units: {units}")

    doc = ezdxf.new(dxfversion="AC1018")
    msp = doc.modelspace()
    doc.header["$INSUNITS"] = INSUNITS[units.lower()]

    layer_map = layer_map or {}

    def layer(name: str) -> str:
        return layer_map.get(name, name)

    for lname, opts in DEFAULT_LAYERS.items():
        if layer(lname) not in doc.layers:
            doc.layers.add(layer(lname), color=opts.get("color", 7))

    for rect in model.frame_members():
        msp.add_lwpolyline(_rect(rect.x, rect.y, rect.width, rect.height), format="xy", close=True,
                           dxfattribs={"layer": layer(KIND_LAYER[rect.kind])})

    for panel in model.sheathing:
        if len(panel.points) >= 3:
            outline = [(p.x, p.y) for p in panel.points]
        else:
            outline = _rect(panel.x, panel.y, panel.width, panel.height)
        msp.add_lwpolyline(outline, format="xy", close=True, dxfattribs={"layer": layer("SHEATHING")})

    for row in model.nail_rows:
        msp.add_line((row.start.x, row.start.y), (row.end.x, row.end.y), dxfattribs={"layer": layer("NAILROW")})

    for routing in model.paf_routings:
        attrs = {"layer": layer("PAF")}
        for seg in routing.segments:
            if seg.kind == "circle":
                msp.add_circle((seg.position.x, seg.position.y), radius=seg.radius or 0.0, dxfattribs=attrs)
                continue
            for ps in seg.path_segments:
                if ps.type == "arc":
                    a0, a1 = math.degrees(ps.start_angle), math.degrees(ps.end_angle)
                    # DXF arcs always run counter-clockwise
                    if ps.clockwise:
                        a0, a1 = a1, a0
                    msp.add_arc((ps.center.x, ps.center.y), radius=ps.radius,
                                start_angle=a0, end_angle=a1, dxfattribs=attrs)
                else:
                    msp.add_line((ps.start.x, ps.start.y), (ps.end.x, ps.end.y), dxfattribs=attrs)
            if seg.kind == "polygon" and seg.path_segments:
                first, last = seg.path_segments[0].start, seg.path_segments[-1].end
                if (first.x, first.y) != (last.x, last.y):
                    msp.add_line((last.x, last.y), (first.x, first.y), dxfattribs=attrs)

    for op in model.boy_operations:
        msp.add_circle((op.x, op.z), radius=(op.diameter or 0.0) / 2, dxfattribs={"layer": layer("BOY")})

    doc.saveas(out_path)
    logger.info("wrote DXF %s", out_path)
    return out_path
