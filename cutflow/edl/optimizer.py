import math
from typing import Any, List, Tuple

from loguru import logger

from cutflow.edl.accumulator import BOUNDARY_TOLERANCE
from cutflow.edl.models import KIND_ORDER, EditDecisionList


def _order_key(decision: Any) -> Tuple:
    return (
        decision.start_time,
        KIND_ORDER[decision.kind],
        decision.end_or_inf,
        decision.tool,
        decision.id,
    )


def optimize_edl(edl: EditDecisionList, tolerance: float = BOUNDARY_TOLERANCE) -> EditDecisionList:
    """
    Return a new EDL with redundant decisions merged away.

    - adjacent layouts with the same tool and params become one layout
    - transitions on a boundary removed by that merge are dropped
    - overlapping or touching effects with the same tool and params merge

    The input EDL is left untouched and the result is idempotent.
    """
    decisions = sorted(edl.decisions, key=_order_key)
    layouts = [d for d in decisions if d.kind == "layout"]
    transitions = [d for d in decisions if d.kind == "transition"]
    effects = [d for d in decisions if d.kind == "effect"]

    merged_layouts, removed_boundaries = _merge_adjacent_layouts(layouts, tolerance)
    kept_transitions = [
        t.model_copy(deep=True)
        for t in transitions
        if not any(abs(t.start_time - boundary) < tolerance for boundary in removed_boundaries)
    ]
    merged_effects = _merge_overlapping_effects(effects, tolerance)

    optimized = sorted(merged_layouts + kept_transitions + merged_effects, key=_order_key)
    logger.info(
        f"Optimized EDL: {len(decisions)} -> {len(optimized)} decisions "
        f"({len(layouts) - len(merged_layouts)} layout merges, "
        f"{len(transitions) - len(kept_transitions)} transitions dropped, "
        f"{len(effects) - len(merged_effects)} effect merges)"
    )
    return edl.model_copy(update={"decisions": optimized})


def _merge_adjacent_layouts(layouts: List[Any], tolerance: float) -> Tuple[List[Any], List[float]]:
    merged: List[Any] = []
    removed_boundaries: List[float] = []

    for layout in layouts:
        if merged:
            prev = merged[-1]
            adjacent = prev.end_time is not None and abs(prev.end_time - layout.start_time) < tolerance
            if adjacent and prev.tool == layout.tool and prev.params == layout.params:
                removed_boundaries.append(layout.start_time)
                prev.end_time = layout.end_time
                continue
        merged.append(layout.model_copy(deep=True))

    return merged, removed_boundaries


def _merge_overlapping_effects(effects: List[Any], tolerance: float) -> List[Any]:
    # (tool, params) groups; params are compared by equality since they need not be hashable
    groups: List[Tuple[str, dict, List[Any]]] = []
    for effect in effects:
        for tool, params, members in groups:
            if tool == effect.tool and params == effect.params:
                members.append(effect)
                break
        else:
            groups.append((effect.tool, effect.params, [effect]))

    merged: List[Any] = []
    for _tool, _params, members in groups:
        current = members[0].model_copy(deep=True)
        for nxt in members[1:]:
            if nxt.start_time <= current.end_or_inf + tolerance:
                end = max(current.end_or_inf, nxt.end_or_inf)
                current.end_time = None if math.isinf(end) else end
            else:
                merged.append(current)
                current = nxt.model_copy(deep=True)
        merged.append(current)

    return merged
