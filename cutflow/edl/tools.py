"""
Decision constructors used by planners.

Each function appends one decision to the accumulator with the documented
defaults filled in and returns a short confirmation for the planner log.
"""
from typing import Dict, Optional

from cutflow.edl.accumulator import EdlAccumulator

_TEXT_POSITIONS = {"top": "top-center", "bottom": "bottom-center", "center": "center"}


# --- Layouts ---------------------------------------------------------------

def only_webcam(acc: EdlAccumulator, start_time: float, end_time: Optional[float]) -> str:
    acc.add(kind="layout", tool="only_webcam", start_time=start_time, end_time=end_time, params={})
    return f"Added only_webcam layout from {start_time}s to {end_time}s"


def only_screen(acc: EdlAccumulator, start_time: float, end_time: Optional[float]) -> str:
    acc.add(kind="layout", tool="only_screen", start_time=start_time, end_time=end_time, params={})
    return f"Added only_screen layout from {start_time}s to {end_time}s"


def split_layout(acc: EdlAccumulator, start_time: float, end_time: Optional[float]) -> str:
    """Screen on top, webcam below: the default for tutorial footage."""
    acc.add(
        kind="layout",
        tool="split_layout",
        start_time=start_time,
        end_time=end_time,
        params={"screen_percent": 65, "webcam_position": "bottom-right"},
    )
    return f"Added split_layout from {start_time}s to {end_time}s (screen 65%, webcam 35%)"


def zoom_webcam(
    acc: EdlAccumulator, start_time: float, end_time: Optional[float], scale: float = 1.2
) -> str:
    acc.add(kind="layout", tool="zoom_webcam", start_time=start_time, end_time=end_time, params={"scale": scale})
    return f"Added zoom_webcam layout from {start_time}s to {end_time}s (scale: {scale}x)"


def zoom_screen(
    acc: EdlAccumulator,
    start_time: float,
    end_time: Optional[float],
    region: Optional[Dict[str, float]] = None,
) -> str:
    """
    Zoom into part of the screen capture.

    Args:
        region: normalized ``x``, ``y``, ``width``, ``height``; a 1.5x center
            zoom is used when omitted.
    """
    params = {"scale": 1.5}
    if region is not None:
        params["region"] = dict(region)
    acc.add(kind="layout", tool="zoom_screen", start_time=start_time, end_time=end_time, params=params)

    region_desc = ""
    if region is not None:
        region_desc = f" on region ({region['x']}, {region['y']}, {region['width']}x{region['height']})"
    return f"Added zoom_screen layout from {start_time}s to {end_time}s{region_desc}"


# --- Transitions -----------------------------------------------------------

def fade(acc: EdlAccumulator, time: float, duration: float = 0.5) -> str:
    acc.add(kind="transition", tool="fade", start_time=time, params={"duration": duration})
    return f"Added fade transition at {time}s ({duration}s duration)"


def swipe(acc: EdlAccumulator, time: float, direction: str) -> str:
    acc.add(kind="transition", tool="swipe", start_time=time, params={"direction": direction})
    return f"Added swipe transition at {time}s (direction: {direction})"


def zoom_transition(acc: EdlAccumulator, time: float, duration: float = 0.5) -> str:
    acc.add(kind="transition", tool="zoom_transition", start_time=time, params={"duration": duration})
    return f"Added zoom transition at {time}s ({duration}s duration)"


def cut(acc: EdlAccumulator, time: float) -> str:
    acc.add(kind="transition", tool="cut", start_time=time, params={})
    return f"Added hard cut at {time}s"


# --- Effects ---------------------------------------------------------------

def text_overlay(
    acc: EdlAccumulator,
    start_time: float,
    end_time: Optional[float],
    text: str,
    position: str = "bottom",
) -> str:
    """
    Show ``text`` on screen.

    Args:
        position: ``top``, ``bottom`` or ``center``.
    """
    acc.add(
        kind="effect",
        tool="text_overlay",
        start_time=start_time,
        end_time=end_time,
        params={"text": text, "position": _TEXT_POSITIONS.get(position, "bottom-center")},
    )
    return f'Added text overlay "{text}" from {start_time}s to {end_time}s at {position}'


def highlight_region(
    acc: EdlAccumulator,
    start_time: float,
    end_time: Optional[float],
    x: float,
    y: float,
    width: float,
    height: float,
    color: str = "yellow",
) -> str:
    """Box around a region; values above 1 are read as output pixels."""
    acc.add(
        kind="effect",
        tool="highlight_region",
        start_time=start_time,
        end_time=end_time,
        params={"x": x, "y": y, "width": width, "height": height, "color": color},
    )
    return (
        f"Added highlight box at ({x}, {y}) {width}x{height} "
        f"from {start_time}s to {end_time}s with color {color}"
    )


def slow_motion(acc: EdlAccumulator, start_time: float, end_time: Optional[float], speed: float) -> str:
    acc.add(
        kind="effect",
        tool="slow_motion",
        start_time=start_time,
        end_time=end_time,
        params={"speed": speed, "preserve_pitch": speed >= 0.5},
    )
    description = f"{speed}x slow motion" if speed < 1 else f"{speed}x speed"
    return f"Added {description} from {start_time}s to {end_time}s (not rendered in single-pass output)"


def b_roll(
    acc: EdlAccumulator,
    start_time: float,
    end_time: Optional[float],
    image_path: Optional[str] = None,
    image_prompt: Optional[str] = None,
    display_mode: str = "fullscreen",
) -> str:
    """
    Overlay a still image.

    ``image_prompt`` is kept for the image generator; the compiler only draws
    decisions that already have an ``image_path``.
    """
    params = {"display_mode": display_mode}
    if image_path is not None:
        params["image_path"] = image_path
    if image_prompt is not None:
        params["image_prompt"] = image_prompt
    acc.add(kind="effect", tool="b_roll", start_time=start_time, end_time=end_time, params=params)
    return f"Added {display_mode} b-roll from {start_time}s to {end_time}s"


def fade_to_black(acc: EdlAccumulator, start_time: float, duration: float = 1.0) -> str:
    acc.add(
        kind="effect",
        tool="fade_to_black",
        start_time=start_time,
        end_time=start_time + duration,
        params={"duration": duration},
    )
    return f"Added fade to black at {start_time}s ({duration}s duration)"
