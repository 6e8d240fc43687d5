from collections import defaultdict
from typing import Any, Dict, List, Optional

from loguru import logger

from cutflow.edl.errors import UnknownToolError
from cutflow.edl.models import (
    TOOLS_BY_KIND,
    EditDecisionList,
    EdlMetadata,
    ValidationResult,
    WebcamRegion,
    parse_decision,
    sort_by_start,
)

BOUNDARY_TOLERANCE = 0.01


def _fmt_end(end_time: Optional[float]) -> str:
    return "end" if end_time is None else f"{end_time:g}"


class EdlAccumulator:
    """
    Collects edit decisions for one processing run.

    Hands out ``<kind>-<n>`` ids (one counter per kind), keeps decisions in
    insertion order and answers validation queries. Not thread-safe; the
    owning pipeline stage is the only writer.
    """

    def __init__(self, tolerance: float = BOUNDARY_TOLERANCE):
        self.tolerance = tolerance
        self._decisions: List[Any] = []
        self._counters: Dict[str, int] = defaultdict(int)

    def __len__(self) -> int:
        return len(self._decisions)

    def add(self, decision: Optional[Dict[str, Any]] = None, **fields: Any) -> str:
        """
        Add a decision (everything but ``id``) and return its generated id.

        Accepts a mapping or keyword fields: ``kind``, ``tool``,
        ``start_time``, optional ``end_time`` and ``params``.
        """
        data = dict(decision or {}, **fields)
        data.pop("id", None)
        kind = data.get("kind")
        tool = data.get("tool")

        if kind not in TOOLS_BY_KIND:
            raise UnknownToolError(f"Unknown decision kind '{kind}'")
        if tool not in TOOLS_BY_KIND[kind]:
            raise UnknownToolError(f"Tool '{tool}' is not a {kind} tool")

        self._counters[kind] += 1
        decision_id = f"{kind}-{self._counters[kind]}"
        self._decisions.append(parse_decision({**data, "id": decision_id}))
        logger.debug(f"Added {decision_id} ({tool}) at {data.get('start_time')}s")
        return decision_id

    def get_decisions(self) -> List[Any]:
        """Copy of all decisions, ascending by start_time."""
        return [d.model_copy(deep=True) for d in sort_by_start(self._decisions)]

    def to_edl(
        self,
        source_video: str,
        output_path: str,
        webcam_region: Optional[WebcamRegion] = None,
        metadata: Optional[EdlMetadata] = None,
    ) -> EditDecisionList:
        return EditDecisionList(
            source_video=source_video,
            output_path=output_path,
            decisions=self.get_decisions(),
            webcam_region=webcam_region,
            metadata=metadata,
        )

    def clear(self) -> None:
        self._decisions = []
        self._counters.clear()

    def validate(self) -> ValidationResult:
        """
        Check the accumulated decisions for consistency.

        - layouts may not overlap (a missing end_time reaches infinity)
        - a transition must sit where one layout ends and another starts
        - effects are unconstrained

        All problems are collected; nothing is raised.
        """
        errors: List[str] = []
        ordered = sort_by_start(self._decisions)
        layouts = [d for d in ordered if d.kind == "layout"]
        transitions = [d for d in ordered if d.kind == "transition"]

        for i, current in enumerate(layouts):
            for other in layouts[i + 1:]:
                if current.start_time < other.end_or_inf and other.start_time < current.end_or_inf:
                    errors.append(
                        f"Layout decisions overlap: {current.id} "
                        f"({current.start_time:g}-{_fmt_end(current.end_time)}) "
                        f"and {other.id} ({other.start_time:g}-{_fmt_end(other.end_time)})"
                    )

        for transition in transitions:
            if not self._at_boundary(transition.start_time, layouts):
                errors.append(
                    f"Transition {transition.id} at {transition.start_time:g}s is not at a layout boundary"
                )

        if errors:
            logger.warning(f"EDL validation found {len(errors)} problem(s)")
        return ValidationResult(valid=not errors, errors=errors)

    def _at_boundary(self, t: float, layouts: List[Any]) -> bool:
        ends_here = any(
            layout.end_time is not None and abs(layout.end_time - t) < self.tolerance
            for layout in layouts
        )
        starts_here = any(abs(layout.start_time - t) < self.tolerance for layout in layouts)
        return ends_here and starts_here


def create_accumulator() -> EdlAccumulator:
    return EdlAccumulator()
