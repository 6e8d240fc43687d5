"""
Layout composition filters.

Each layout lowers to a filter chain that turns a trimmed source segment into
a frame of exactly ``out_w x out_h``, so that every segment can be fed to
``concat``. Chains carry no input or output label; the compiler splices them
after ``setpts`` and closes them with the segment label.
"""
import math
from typing import Any, NamedTuple, Optional

from cutflow.edl.escaping import frac_expr
from cutflow.edl.models import WebcamRegion

DEFAULT_SOURCE_WIDTH = 1920
_EDGE_EPS = 1e-9


class CropRect(NamedTuple):
    """Normalized rectangle (fractions of the frame)."""

    x: float
    y: float
    w: float
    h: float


def _round(value: float) -> int:
    return int(math.floor(value + 0.5))


def _fill(out_w: int, out_h: int) -> str:
    # Scale to cover, then crop the overflow: no letterboxing, no stretch
    return f"scale={out_w}:{out_h}:force_original_aspect_ratio=increase,crop={out_w}:{out_h}"


def _screen_crop(webcam: WebcamRegion, source_width: int) -> str:
    """Crop that keeps the screen columns and drops the webcam columns."""
    if webcam.x > _round(source_width / 2):
        return f"crop={webcam.x}:ih:0:0"
    return f"crop=iw-{webcam.width}:ih:{webcam.width}:0"


def _center_crop(scale: float) -> str:
    factor = 1 / scale
    offset = (1 - factor) / 2
    return (
        f"crop={frac_expr('iw', factor)}:{frac_expr('ih', factor)}:"
        f"{frac_expr('iw', offset)}:{frac_expr('ih', offset)}"
    )


def compile_layout(
    decision: Any,
    webcam: Optional[WebcamRegion],
    out_w: int,
    out_h: int,
    tag: str,
    target_aspect_ratio: Optional[str] = None,
    source_width: Optional[int] = None,
) -> str:
    """
    Filter chain for one layout decision.

    ``tag`` keeps internal labels unique when several layouts share a graph.
    """
    params = decision.typed_params()
    src_w = source_width or DEFAULT_SOURCE_WIDTH
    tool = decision.tool

    if tool == "only_webcam":
        if webcam is None:
            return f"crop=iw/4:ih/4:3*iw/4:0,{_fill(out_w, out_h)}"
        crop_w = _round(webcam.width / params.scale)
        crop_h = _round(webcam.height / params.scale)
        crop_x = webcam.x + _round((webcam.width - crop_w) / 2)
        crop_y = webcam.y + _round((webcam.height - crop_h) / 2)
        return f"crop={crop_w}:{crop_h}:{crop_x}:{crop_y},{_fill(out_w, out_h)}"

    if tool == "only_screen":
        if webcam is None:
            return _fill(out_w, out_h)
        return f"{_screen_crop(webcam, src_w)},{_fill(out_w, out_h)}"

    if tool == "split_layout":
        if target_aspect_ratio in (None, "16:9"):
            # Landscape output has room for the whole frame
            return (
                f"scale={out_w}:{out_h}:force_original_aspect_ratio=decrease,"
                f"pad={out_w}:{out_h}:(ow-iw)/2:(oh-ih)/2:black"
            )
        screen_h = _round(out_h * params.screen_percent / 100)
        cam_h = out_h - screen_h
        if webcam is None:
            screen_src = "crop=iw:ih*0.7:0:0"
            cam_src = "crop=iw/3:ih*0.3:2*iw/3:ih*0.7"
        else:
            screen_src = _screen_crop(webcam, src_w)
            cam_src = f"crop={webcam.width}:{webcam.height}:{webcam.x}:{webcam.y}"
        return (
            f"split[scr{tag}][cam{tag}];"
            f"[scr{tag}]{screen_src},{_fill(out_w, screen_h)}[screen{tag}];"
            f"[cam{tag}]{cam_src},{_fill(out_w, cam_h)}[webcam{tag}];"
            f"[screen{tag}][webcam{tag}]vstack"
        )

    if tool == "zoom_webcam":
        if webcam is None:
            return f"crop=iw/4:ih/4:3*iw/4:0,{_fill(out_w, out_h)}"
        zoom_w = _round(webcam.width / params.scale)
        zoom_h = _round(webcam.height / params.scale)
        zoom_x = webcam.x + _round((webcam.width - zoom_w) * params.center_x)
        zoom_y = webcam.y + _round((webcam.height - zoom_h) * params.center_y)
        return f"crop={zoom_w}:{zoom_h}:{zoom_x}:{zoom_y},{_fill(out_w, out_h)}"

    if tool == "zoom_screen":
        region = params.region
        if region is not None:
            return (
                f"crop={frac_expr('iw', region.width)}:{frac_expr('ih', region.height)}:"
                f"{frac_expr('iw', region.x)}:{frac_expr('ih', region.y)},{_fill(out_w, out_h)}"
            )
        if webcam is not None:
            return f"{_screen_crop(webcam, src_w)},{_center_crop(params.scale)},{_fill(out_w, out_h)}"
        return f"{_center_crop(params.scale)},{_fill(out_w, out_h)}"

    raise ValueError(f"Unhandled layout tool: {tool}")


def zoom_crop_rect(
    decision: Any,
    webcam: Optional[WebcamRegion] = None,
    source_width: Optional[int] = None,
) -> Optional[CropRect]:
    """
    Part of the source frame that a zoom layout shows, or None for layouts
    that do not zoom the screen.
    """
    if decision.tool != "zoom_screen":
        return None

    params = decision.typed_params()
    if params.region is not None:
        r = params.region
        return CropRect(r.x, r.y, r.width, r.height)

    extent = 1 / params.scale
    offset = (1 - extent) / 2

    if webcam is not None:
        src_w = source_width or DEFAULT_SOURCE_WIDTH
        # The center zoom applies to the screen columns left after the webcam crop
        if webcam.x > _round(src_w / 2):
            screen_x, screen_w = 0.0, webcam.x / src_w
        else:
            screen_x, screen_w = webcam.width / src_w, 1 - webcam.width / src_w
        return CropRect(screen_x + screen_w * offset, offset, screen_w * extent, extent)

    return CropRect(offset, offset, extent, extent)


def to_zoomed_frame(box: CropRect, crop: CropRect) -> Optional[CropRect]:
    """
    Map a source-frame box into the zoomed output frame.

    Returns None when the box origin lands outside the visible [0, 1] range.
    """
    x = (box.x - crop.x) / crop.w
    y = (box.y - crop.y) / crop.h
    if not (-_EDGE_EPS <= x <= 1 + _EDGE_EPS and -_EDGE_EPS <= y <= 1 + _EDGE_EPS):
        return None
    return CropRect(x, y, box.w / crop.w, box.h / crop.h)
