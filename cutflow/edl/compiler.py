"""
Edit Decision List to FFmpeg filter graph.

Layouts select what is kept: every contiguous run of layout coverage becomes
one trimmed segment and uncovered gaps are dropped. Segments are concatenated
and the effects are then drawn on the concatenated (output) timeline. Inside a
run, a non-cut transition at a layout boundary becomes an ``xfade`` that
overlaps the two parts.
"""
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from loguru import logger

from cutflow.config_manager import CompilerSettings
from cutflow.edl.effects import (
    b_roll_clauses,
    fade_to_black_filters,
    highlight_filter,
    text_overlay_filter,
)
from cutflow.edl.escaping import escape_path, format_time
from cutflow.edl.layouts import compile_layout, zoom_crop_rect
from cutflow.edl.models import CompileResult, EditDecisionList, sort_by_start
from cutflow.edl.transitions import find_transition, transition_duration, xfade_filter

# (source label, destination label) -> clauses
Stage = Callable[[str, str], List[str]]


class _Span(NamedTuple):
    """
    A layout resolved to a closed source interval and its output position.

    ``transition`` blends this span in from the previous one; ``overlap`` is
    the blend duration by which the two share output time.
    """

    start: float
    end: float
    layout: Any
    out_start: float = 0.0
    transition: Any = None
    overlap: float = 0.0

    @property
    def out_end(self) -> float:
        return self.out_start + (self.end - self.start)


def _resolve_spans(
    layouts: List[Any],
    source_duration: Optional[float],
    fallback_duration: float,
) -> List[_Span]:
    spans: List[_Span] = []
    for i, layout in enumerate(layouts):
        end = layout.end_time
        if end is None:
            if i + 1 < len(layouts):
                end = layouts[i + 1].start_time
            else:
                end = source_duration or fallback_duration
        if end <= layout.start_time:
            logger.debug(f"{layout.id}: empty interval {layout.start_time}-{end}, skipping")
            continue
        spans.append(_Span(layout.start_time, end, layout))
    return spans


def _group_runs(spans: List[_Span], tolerance: float) -> List[List[_Span]]:
    runs: List[List[_Span]] = []
    for span in spans:
        if runs and abs(span.start - runs[-1][-1].end) < tolerance:
            runs[-1].append(span)
        else:
            runs.append([span])
    return runs


def _attach_transitions(runs: List[List[_Span]], transitions: List[Any], tolerance: float) -> List[List[_Span]]:
    """Mark the spans inside a run that are blended in from their predecessor."""
    attached: List[List[_Span]] = []
    for run in runs:
        parts = [run[0]]
        for span in run[1:]:
            transition = find_transition(transitions, span.start, tolerance)
            if transition is not None:
                span = span._replace(transition=transition, overlap=transition_duration(transition))
            parts.append(span)
        attached.append(parts)
    return attached


def _place_runs(runs: List[List[_Span]]) -> List[List[_Span]]:
    """Position every span on the output timeline; blends pull the next span earlier."""
    placed: List[List[_Span]] = []
    cursor = 0.0
    for run in runs:
        parts: List[_Span] = []
        for span in run:
            out_start = parts[-1].out_end - span.overlap if parts else cursor
            parts.append(span._replace(out_start=out_start))
        placed.append(parts)
        cursor = parts[-1].out_end
    return placed


def _governing_layout(spans: List[_Span], t: float) -> Optional[Any]:
    for span in spans:
        if span.out_start <= t < span.out_end:
            return span.layout
    if spans and abs(t - spans[-1].out_end) < 1e-9:
        return spans[-1].layout
    return None


class EdlCompiler:
    """
    Lowers one EDL into ``-filter_complex`` text plus the extra input and
    mapping arguments. Build a new instance per EDL.
    """

    def __init__(
        self,
        edl: EditDecisionList,
        captions_file: Optional[str] = None,
        fonts_dir: Optional[str] = None,
        settings: Optional[CompilerSettings] = None,
    ):
        self.edl = edl
        self.captions_file = captions_file
        self.fonts_dir = fonts_dir or "."
        self.settings = settings or CompilerSettings()

        meta = edl.metadata
        cfg = self.settings.compiler
        self.out_w = (meta.output_width if meta else None) or cfg.output_width
        self.out_h = (meta.output_height if meta else None) or cfg.output_height
        self.source_width = meta.source_width if meta else None
        self.source_duration = meta.source_duration if meta else None
        self.target_aspect_ratio = meta.target_aspect_ratio if meta else None
        self.font_path = (meta.font_path if meta else None) or cfg.font_path
        self.fps = (meta.output_fps if meta else None) or cfg.default_fps

        self.clauses: List[str] = []
        self.input_args: List[str] = []

    def compile(self) -> CompileResult:
        decisions = sort_by_start(self.edl.decisions)
        layouts = [d for d in decisions if d.kind == "layout"]
        effects = [d for d in decisions if d.kind == "effect"]
        transitions = [d for d in decisions if d.kind == "transition"]

        logger.info(
            f"Compiling EDL for {self.edl.source_video}: {len(layouts)} layouts, "
            f"{len(transitions)} transitions, {len(effects)} effects"
        )
        tolerance = self.settings.compiler.boundary_tolerance
        runs = _group_runs(
            _resolve_spans(layouts, self.source_duration, self.settings.compiler.fallback_duration),
            tolerance,
        )
        runs = _place_runs(_attach_transitions(runs, transitions, tolerance))
        spans = [span for run in runs for span in run]
        blends = sum(1 for span in spans if span.transition is not None)
        if transitions:
            logger.debug(f"{blends} of {len(transitions)} transition(s) rendered as xfade, the rest as hard cuts")

        video_stages, audio_fade = self._effect_stages(effects, spans)
        post_process = bool(video_stages) or audio_fade is not None

        if runs:
            for i, run in enumerate(runs):
                self._emit_segment(i, run)
            labels = "".join(f"[v{i}][a{i}]" for i in range(len(runs)))
            outputs = "[cv][ca]" if post_process else "[outv][outa]"
            self._add(f"{labels}concat=n={len(runs)}:v=1:a=1{outputs}")
            video_src, audio_src = ("cv", "ca") if post_process else ("outv", "outa")
        else:
            video_src, audio_src = "0:v", "0:a"
            if not video_stages:
                self._add("[0:v]null[outv]")
                video_src = "outv"

        for n, stage in enumerate(video_stages):
            dst = "outv" if n == len(video_stages) - 1 else f"fx{n}"
            for clause in stage(video_src, dst):
                self._add(clause)
            video_src = dst

        if audio_fade is not None:
            self._add(f"[{audio_src}]{audio_fade}[afaded]")
            audio_label = "[afaded]"
        elif audio_src == "0:a":
            self._add("[0:a]anull[outa]")
            audio_label = "[outa]"
        else:
            audio_label = f"[{audio_src}]"

        return CompileResult(
            filter_complex=";\n".join(self.clauses),
            input_args=self.input_args,
            output_args=["-map", "[outv]", "-map", audio_label],
        )

    def _add(self, clause: str) -> None:
        logger.debug(f"filter clause: {clause}")
        self.clauses.append(clause)

    def _layout_chain(self, layout: Any, tag: str) -> str:
        return compile_layout(
            layout,
            self.edl.webcam_region,
            self.out_w,
            self.out_h,
            tag,
            target_aspect_ratio=self.target_aspect_ratio,
            source_width=self.source_width,
        )

    def _emit_segment(self, i: int, run: List[_Span]) -> None:
        start, end = run[0].start, run[-1].end
        trim = f"trim=start={format_time(start)}:end={format_time(end)},setpts=PTS-STARTPTS"

        if len(run) == 1:
            self._add(f"[0:v]{trim},{self._layout_chain(run[0].layout, str(i))}[v{i}]")
        else:
            parts = "".join(f"[v{i}p{j}]" for j in range(len(run)))
            self._add(f"[0:v]{trim},split={len(run)}{parts}")
            for j, span in enumerate(run):
                rel_start = format_time(span.start - start)
                rel_end = format_time(span.end - start)
                chain = self._layout_chain(span.layout, f"{i}_{j}")
                self._add(
                    f"[v{i}p{j}]trim=start={rel_start}:end={rel_end},setpts=PTS-STARTPTS,{chain}[v{i}c{j}]"
                )
            if any(span.transition is not None for span in run):
                self._blend_parts(i, run)
                self._emit_blended_audio(i, run)
                return
            composed = "".join(f"[v{i}c{j}]" for j in range(len(run)))
            self._add(f"{composed}concat=n={len(run)}:v=1:a=0[v{i}]")

        self._add(
            f"[0:a]atrim=start={format_time(start)}:end={format_time(end)},asetpts=PTS-STARTPTS[a{i}]"
        )

    def _blend_parts(self, i: int, run: List[_Span]) -> None:
        """Join composed parts pairwise: xfade where a transition sits, concat elsewhere."""
        prev = f"v{i}c0"
        elapsed = run[0].end - run[0].start
        for j in range(1, len(run)):
            span = run[j]
            last = j == len(run) - 1
            dst = f"v{i}" if last else f"v{i}x{j}"
            if span.transition is not None:
                blend = xfade_filter(span.transition, elapsed - span.overlap)
                self._add(f"[{prev}][v{i}c{j}]{blend}[{dst}]")
            else:
                # concat resets the timebase; xfade needs both inputs on a common frame rate
                fps = "" if last else f",fps={self.fps:g}"
                self._add(f"[{prev}][v{i}c{j}]concat=n=2:v=1:a=0{fps}[{dst}]")
            elapsed += (span.end - span.start) - span.overlap
            prev = dst

    def _emit_blended_audio(self, i: int, run: List[_Span]) -> None:
        # Each part gives up its tail to the blend that follows it, matching the video overlap
        for j, span in enumerate(run):
            tail = run[j + 1].overlap if j + 1 < len(run) else 0.0
            self._add(
                f"[0:a]atrim=start={format_time(span.start)}:end={format_time(span.end - tail)},"
                f"asetpts=PTS-STARTPTS[a{i}p{j}]"
            )
        parts = "".join(f"[a{i}p{j}]" for j in range(len(run)))
        self._add(f"{parts}concat=n={len(run)}:v=0:a=1[a{i}]")

    def _effect_stages(self, effects: List[Any], spans: List[_Span]) -> Tuple[List[Stage], Optional[str]]:
        """Video stages in application order plus the first audio fade, if any."""
        anim = self.settings.animation
        chain: List[str] = []
        overlays: List[Stage] = []
        audio_fade: Optional[str] = None

        for effect in effects:
            tool = effect.tool
            if tool == "text_overlay":
                chain.append(text_overlay_filter(effect, self.font_path, anim))
            elif tool == "highlight_region":
                t = effect.start_time if effect.end_time is None else (effect.start_time + effect.end_time) / 2
                governing = _governing_layout(spans, t)
                crop = (
                    zoom_crop_rect(governing, self.edl.webcam_region, self.source_width)
                    if governing is not None
                    else None
                )
                drawbox = highlight_filter(effect, self.out_w, self.out_h, crop, anim)
                if drawbox is not None:
                    chain.append(drawbox)
            elif tool == "fade_to_black":
                video, audio = fade_to_black_filters(effect)
                chain.append(video)
                if audio_fade is None:
                    audio_fade = audio
            elif tool == "b_roll":
                image_path = effect.typed_params().image_path
                if not image_path:
                    logger.debug(f"{effect.id}: b_roll has no image_path, skipping")
                    continue
                self.input_args.extend(["-i", image_path])
                overlays.append(self._b_roll_stage(effect, len(self.input_args) // 2))
            elif tool == "slow_motion":
                logger.debug(f"{effect.id}: slow_motion is not rendered in the single-pass graph, skipping")

        stages: List[Stage] = list(overlays)
        if chain:
            stages.append(lambda src, dst: [f"[{src}]{','.join(chain)}[{dst}]"])
        if self.captions_file:
            captions = f"ass={escape_path(self.captions_file)}:fontsdir={escape_path(self.fonts_dir)}"
            stages.append(lambda src, dst: [f"[{src}]{captions}[{dst}]"])
        return stages, audio_fade

    def _b_roll_stage(self, effect: Any, input_index: int) -> Stage:
        def stage(src: str, dst: str) -> List[str]:
            return b_roll_clauses(
                effect, input_index, src, dst, self.out_w, self.out_h, self.settings.animation
            )
        return stage


def compile_edl(
    edl: EditDecisionList,
    captions_file: Optional[str] = None,
    fonts_dir: Optional[str] = None,
    settings: Optional[CompilerSettings] = None,
) -> CompileResult:
    """Compile an EDL into filter-graph text, extra inputs and stream maps."""
    return EdlCompiler(edl, captions_file, fonts_dir, settings).compile()
