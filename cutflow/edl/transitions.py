"""
Transition lowering.

Non-cut transitions become ``xfade`` between two composed layout parts. The
two parts overlap by the transition duration, so the output timeline is that
much shorter than the sum of the parts.
"""
from typing import Any, List, Optional

from cutflow.edl.escaping import fixed3

_SWIPE_NAMES = {
    "left": "slideleft",
    "right": "slideright",
    "up": "slideup",
    "down": "slidedown",
}


def find_transition(transitions: List[Any], boundary: float, tolerance: float) -> Optional[Any]:
    """First transition at ``boundary`` that renders as a blend; hard cuts give None."""
    for transition in transitions:
        if abs(transition.start_time - boundary) < tolerance and transition.tool != "cut":
            return transition
    return None


def transition_duration(decision: Any) -> float:
    return decision.typed_params().duration


def xfade_name(decision: Any) -> str:
    if decision.tool == "swipe":
        return _SWIPE_NAMES[decision.typed_params().direction]
    if decision.tool == "zoom_transition":
        # xfade has no zoom blur; radial is the closest built-in
        return "radial"
    return "fade"


def xfade_filter(decision: Any, offset: float) -> str:
    return (
        f"xfade=transition={xfade_name(decision)}:"
        f"duration={fixed3(transition_duration(decision))}:offset={fixed3(max(0.0, offset))}"
    )
