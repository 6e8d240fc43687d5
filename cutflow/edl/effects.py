"""
Effect lowering.

``text_overlay``, ``highlight_region`` and ``fade_to_black`` become single
filters chained onto the concatenated video. ``b_roll`` needs its own input
and therefore produces whole clauses. Effects that cannot be drawn return
None so the compiler can leave them out of the graph.
"""
import math
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from cutflow.config_manager import AnimationConfig
from cutflow.edl.escaping import (
    enable_window,
    escape_expression,
    escape_path,
    escape_text,
    ffmpeg_color,
    fixed3,
    frac_expr,
    format_time,
)
from cutflow.edl.layouts import CropRect, to_zoomed_frame

# Shorthands planners send instead of full position names
_POSITION_ALIASES: Dict[str, str] = {
    "top": "top-center",
    "bottom": "bottom-center",
    "left": "bottom-left",
    "right": "bottom-right",
}

_PIP_POSITIONS: Dict[str, str] = {
    "top-left": "x={m}:y={m}",
    "top-right": "x=W-w-{m}:y={m}",
    "bottom-left": "x={m}:y=H-h-{m}",
    "bottom-right": "x=W-w-{m}:y=H-h-{m}",
}


def text_position(position: str, font_size: int) -> Tuple[str, str]:
    """drawtext x/y expressions for a named position."""
    pad = int(math.floor(font_size * 0.5 + 0.5))
    position = _POSITION_ALIASES.get(position, position)
    positions = {
        "top-left": (f"{pad}", f"{pad}"),
        "top-center": ("(w-text_w)/2", f"{pad}"),
        "top-right": (f"w-text_w-{pad}", f"{pad}"),
        "center": ("(w-text_w)/2", "(h-text_h)/2"),
        "bottom-left": (f"{pad}", f"h-text_h-{pad}"),
        "bottom-center": ("(w-text_w)/2", f"h-text_h-{pad}"),
        "bottom-right": (f"w-text_w-{pad}", f"h-text_h-{pad}"),
    }
    if position not in positions:
        logger.warning(f"Unknown text position '{position}', defaulting to bottom-center")
        return positions["bottom-center"]
    return positions[position]


def text_overlay_filter(decision: Any, font_path: Optional[str], anim: AnimationConfig) -> str:
    p = decision.typed_params()
    start = decision.start_time
    x, y = text_position(p.position, p.font_size)
    font_size = str(p.font_size)
    alpha = ""

    if p.animation == "fade-in":
        alpha = (
            f":alpha='if(lt(t,{format_time(start + anim.text_duration)}),"
            f"min(1,(t-{format_time(start)})/{fixed3(anim.text_duration)}),1)'"
        )
    elif p.animation == "slide-up":
        y = escape_expression(
            f"if(lt(t,{format_time(start + anim.text_duration)}),"
            f"{y}+{anim.slide_distance}*(1-(t-{format_time(start)})/{fixed3(anim.text_duration)}),{y})"
        )
    elif p.animation == "pop":
        # drawtext crashes on per-frame fontsize expressions; a static bump stands in
        font_size = str(int(math.floor(p.font_size * anim.pop_scale + 0.5)))

    parts = [f"drawtext=text={escape_text(p.text)}"]
    if font_path:
        parts.append(f"fontfile={escape_path(font_path)}")
    parts.append(f"fontsize={font_size}")
    parts.append(f"fontcolor={ffmpeg_color(p.color)}")
    parts.append(f"x={x}")
    parts.append(f"y={y}")
    if p.background_color:
        parts.append(f"box=1:boxcolor={ffmpeg_color(p.background_color)}")
    return ":".join(parts) + alpha + ":" + enable_window(start, decision.end_time)


def highlight_box(decision: Any, out_w: int, out_h: int) -> CropRect:
    """Highlight rectangle as frame fractions; any value above 1 marks pixel input."""
    p = decision.typed_params()
    if all(v <= 1.0 for v in (p.x, p.y, p.width, p.height)):
        return CropRect(p.x, p.y, p.width, p.height)
    return CropRect(p.x / out_w, p.y / out_h, p.width / out_w, p.height / out_h)


def highlight_filter(
    decision: Any,
    out_w: int,
    out_h: int,
    zoom_crop: Optional[CropRect],
    anim: AnimationConfig,
) -> Optional[str]:
    p = decision.typed_params()
    box = highlight_box(decision, out_w, out_h)

    if zoom_crop is not None:
        zoomed = to_zoomed_frame(box, zoom_crop)
        if zoomed is None:
            logger.debug(f"{decision.id}: highlight at t={format_time(decision.start_time)} is outside the zoom crop, skipping")
            return None
        box = zoomed

    enable = enable_window(decision.start_time, decision.end_time)
    color = ffmpeg_color(p.color)
    x, y = frac_expr("iw", box.x), frac_expr("ih", box.y)
    w, h = frac_expr("iw", box.w), frac_expr("ih", box.h)
    thickness = p.border_width

    if p.animation == "pulse":
        # drawbox t= takes no time expressions; hold the peak thickness
        thickness = p.border_width * anim.pulse_multiplier
    elif p.animation == "draw":
        w = escape_expression(
            f"min({w},({w})*(t-{format_time(decision.start_time)})/{fixed3(anim.draw_duration)})"
        )

    drawbox = f"drawbox=x={x}:y={y}:w={w}:h={h}:color={color}:t={thickness}:{enable}"
    if p.dim_outside:
        drawbox = f"drawbox=x=0:y=0:w=iw:h=ih:color={anim.dim_color}:t=fill:{enable},{drawbox}"
    return drawbox


def fade_to_black_filters(decision: Any) -> Tuple[str, str]:
    """(video fade, audio fade) pair."""
    p = decision.typed_params()
    start = format_time(decision.start_time)
    duration = fixed3(p.duration)
    return (
        f"fade=type=out:start_time={start}:duration={duration}:color=black",
        f"afade=type=out:start_time={start}:duration={duration}",
    )


def b_roll_clauses(
    decision: Any,
    input_index: int,
    src: str,
    dst: str,
    out_w: int,
    out_h: int,
    anim: AnimationConfig,
) -> List[str]:
    """Scale clause for the extra input plus the overlay onto ``src``."""
    p = decision.typed_params()
    enable = enable_window(decision.start_time, decision.end_time)
    broll = f"broll{input_index}"

    if p.display_mode == "picture-in-picture":
        scale = f"scale=iw*{p.pip_size:g}/100:-1"
        template = _PIP_POSITIONS.get(p.pip_position, _PIP_POSITIONS["bottom-right"])
        position = template.format(m=anim.pip_margin)
    elif p.display_mode == "split":
        scale = f"scale={out_w // 2}:{out_h}:force_original_aspect_ratio=increase,crop={out_w // 2}:{out_h}"
        position = "x=W-w:y=0"
    else:
        scale = f"scale={out_w}:{out_h}"
        position = "x=0:y=0"

    return [
        f"[{input_index}:v]{scale}[{broll}]",
        f"[{src}][{broll}]overlay={position}:{enable}[{dst}]",
    ]
