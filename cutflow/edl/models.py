"""
Edit Decision List types.

Planners describe an edit as a list of typed decisions instead of raw FFmpeg
commands. Three kinds exist and are told apart by the ``kind`` field:

- layout: how webcam and screen are composed; exactly one is active at a time
- transition: a marker on the boundary between two layouts
- effect: a time-bounded overlay that may overlap anything

Layout and transition times are seconds from the start of the source video.
Effect times are seconds on the output timeline, after gaps between layouts
are cut and transitions overlap their neighbours. A missing ``end_time``
means the decision runs to the end.
"""
import math
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Type, Union, get_args

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from cutflow.edl.errors import DecisionParamsError

LayoutTool = Literal["only_webcam", "only_screen", "split_layout", "zoom_webcam", "zoom_screen"]
TransitionTool = Literal["fade", "swipe", "zoom_transition", "cut"]
EffectTool = Literal["text_overlay", "highlight_region", "slow_motion", "b_roll", "fade_to_black"]
DecisionKind = Literal["layout", "transition", "effect"]

TOOLS_BY_KIND: Dict[str, tuple] = {
    "layout": get_args(LayoutTool),
    "transition": get_args(TransitionTool),
    "effect": get_args(EffectTool),
}

# Sort rank used to break start_time ties deterministically
KIND_ORDER: Dict[str, int] = {"layout": 0, "transition": 1, "effect": 2}


# ---------------------------------------------------------------------------
# Tool parameters
# ---------------------------------------------------------------------------

class Region(BaseModel):
    """Normalized (0-1) rectangle of the source frame."""

    x: float
    y: float
    width: float
    height: float


class OnlyWebcamParams(BaseModel):
    scale: float = Field(default=1.0, description="1.0 fits the webcam to the frame, >1.0 crops its edges")


class OnlyScreenParams(BaseModel):
    pass


class SplitLayoutParams(BaseModel):
    screen_percent: float = Field(default=65, description="Share of frame height given to the screen (0-100)")
    webcam_position: str = Field(default="bottom-right")


class ZoomWebcamParams(BaseModel):
    scale: float = Field(default=1.5)
    center_x: float = Field(default=0.5)
    center_y: float = Field(default=0.5)


class ZoomScreenParams(BaseModel):
    scale: float = Field(default=1.5)
    region: Optional[Region] = Field(default=None, description="Explicit crop; center zoom when absent")


class FadeParams(BaseModel):
    duration: float = Field(default=0.5)


class SwipeParams(BaseModel):
    direction: Literal["left", "right", "up", "down"] = Field(default="left")
    duration: float = Field(default=0.3)


class ZoomTransitionParams(BaseModel):
    scale: float = Field(default=1.5)
    duration: float = Field(default=0.5)
    blur: bool = Field(default=True)


class CutParams(BaseModel):
    pass


class TextOverlayParams(BaseModel):
    text: str
    position: str = Field(default="bottom-center")
    font_size: int = Field(default=48)
    color: str = Field(default="#FFFFFF")
    background_color: Optional[str] = Field(default=None, description="Hex with alpha, e.g. #00000080")
    animation: str = Field(default="none", description="none | fade-in | slide-up | pop")


class HighlightRegionParams(BaseModel):
    x: float
    y: float
    width: float
    height: float
    color: str = Field(default="#FF0000")
    border_width: int = Field(default=3)
    dim_outside: bool = Field(default=False)
    animation: str = Field(default="none", description="none | pulse | draw")


class SlowMotionParams(BaseModel):
    speed: float = Field(default=0.5, description="Playback multiplier, 0.25 to 4.0")
    preserve_pitch: bool = Field(default=True)


class BRollParams(BaseModel):
    image_prompt: Optional[str] = Field(default=None)
    image_path: Optional[str] = Field(default=None)
    display_mode: str = Field(default="fullscreen", description="fullscreen | picture-in-picture | split")
    pip_position: str = Field(default="bottom-right")
    pip_size: float = Field(default=25, description="Percentage of frame width")


class FadeToBlackParams(BaseModel):
    duration: float = Field(default=1.0)


PARAMS_MODELS: Dict[str, Type[BaseModel]] = {
    "only_webcam": OnlyWebcamParams,
    "only_screen": OnlyScreenParams,
    "split_layout": SplitLayoutParams,
    "zoom_webcam": ZoomWebcamParams,
    "zoom_screen": ZoomScreenParams,
    "fade": FadeParams,
    "swipe": SwipeParams,
    "zoom_transition": ZoomTransitionParams,
    "cut": CutParams,
    "text_overlay": TextOverlayParams,
    "highlight_region": HighlightRegionParams,
    "slow_motion": SlowMotionParams,
    "b_roll": BRollParams,
    "fade_to_black": FadeToBlackParams,
}


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

class _DecisionBase(BaseModel):
    id: str
    start_time: float = Field(..., ge=0, description="Seconds from the start of the source video")
    end_time: Optional[float] = Field(default=None, description="None extends to the end of the video")
    params: Dict[str, Any] = Field(default_factory=dict)

    @property
    def end_or_inf(self) -> float:
        return math.inf if self.end_time is None else self.end_time

    def typed_params(self) -> Any:
        """Parse ``params`` into the model for this decision's tool."""
        model = PARAMS_MODELS[self.tool]
        try:
            return model.model_validate(self.params)
        except ValidationError as e:
            raise DecisionParamsError(self.id, self.tool, str(e)) from e


class LayoutDecision(_DecisionBase):
    kind: Literal["layout"] = "layout"
    tool: LayoutTool


class TransitionDecision(_DecisionBase):
    kind: Literal["transition"] = "transition"
    tool: TransitionTool


class EffectDecision(_DecisionBase):
    kind: Literal["effect"] = "effect"
    tool: EffectTool


EditDecision = Annotated[
    Union[LayoutDecision, TransitionDecision, EffectDecision],
    Field(discriminator="kind"),
]

_decision_adapter: TypeAdapter = TypeAdapter(EditDecision)


def parse_decision(data: Dict[str, Any]) -> Union[LayoutDecision, TransitionDecision, EffectDecision]:
    return _decision_adapter.validate_python(data)


def sort_by_start(decisions: Iterable[Any]) -> List[Any]:
    """Stable ascending sort on start_time."""
    return sorted(decisions, key=lambda d: d.start_time)


# ---------------------------------------------------------------------------
# Edit decision list
# ---------------------------------------------------------------------------

class WebcamRegion(BaseModel):
    """Webcam rectangle inside the source frame, in source pixels."""

    model_config = {"frozen": True}

    x: int
    y: int
    width: int
    height: int
    confidence: Optional[float] = Field(default=None, description="Detector confidence 0-1")
    manual: bool = Field(default=False)


class EdlMetadata(BaseModel):
    description: Optional[str] = None
    created_by: Optional[str] = None
    schema_version: Optional[str] = None
    source_duration: Optional[float] = None
    source_width: Optional[int] = None
    source_height: Optional[int] = None
    output_width: Optional[int] = None
    output_height: Optional[int] = None
    output_fps: Optional[float] = None
    target_aspect_ratio: Optional[Literal["16:9", "9:16", "1:1", "4:5"]] = None
    font_path: Optional[str] = None


class EditDecisionList(BaseModel):
    source_video: str
    output_path: str
    decisions: List[EditDecision] = Field(default_factory=list)
    webcam_region: Optional[WebcamRegion] = None
    metadata: Optional[EdlMetadata] = None


class KeepSegment(BaseModel):
    """A [start, end] range of the source video retained after a cut."""

    start: float
    end: float


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)


class CompileResult(BaseModel):
    filter_complex: str
    input_args: List[str] = Field(default_factory=list)
    output_args: List[str] = Field(default_factory=list)
    passes: int = Field(default=1)
