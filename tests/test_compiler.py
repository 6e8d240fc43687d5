import pytest

from cutflow.config_manager import AnimationConfig, CompilerConfig, CompilerSettings
from cutflow.edl.compiler import compile_edl
from cutflow.edl.models import (
    EditDecisionList,
    EdlMetadata,
    EffectDecision,
    LayoutDecision,
    TransitionDecision,
)

FILL = "scale=1920:1080:force_original_aspect_ratio=increase,crop=1920:1080"


def layout(id, start, end, tool="only_screen", **params):
    return LayoutDecision(id=id, tool=tool, start_time=start, end_time=end, params=params)


def effect(id, tool, start, end, **params):
    return EffectDecision(id=id, tool=tool, start_time=start, end_time=end, params=params)


def make_edl(*decisions, **kwargs):
    return EditDecisionList(source_video="in.mp4", output_path="out.mp4", decisions=list(decisions), **kwargs)


def clauses(result):
    return result.filter_complex.split(";\n")


def test_empty_edl_is_passthrough():
    result = compile_edl(make_edl())
    assert result.filter_complex == "[0:v]null[outv];\n[0:a]anull[outa]"
    assert result.input_args == []
    assert result.output_args == ["-map", "[outv]", "-map", "[outa]"]
    assert result.passes == 1


def test_single_layout():
    result = compile_edl(make_edl(layout("layout-1", 0, 10)))
    assert clauses(result) == [
        f"[0:v]trim=start=0.000:end=10.000,setpts=PTS-STARTPTS,{FILL}[v0]",
        "[0:a]atrim=start=0.000:end=10.000,asetpts=PTS-STARTPTS[a0]",
        "[v0][a0]concat=n=1:v=1:a=1[outv][outa]",
    ]


def test_gap_between_layouts_is_cut():
    result = compile_edl(make_edl(layout("layout-1", 0, 2), layout("layout-2", 3, 5)))
    fc = result.filter_complex
    assert "trim=start=0.000:end=2.000" in fc
    assert "trim=start=3.000:end=5.000" in fc
    assert "trim=start=2.000" not in fc
    assert "concat=n=2:v=1:a=1[outv][outa]" in fc


def test_decisions_sorted_before_compiling():
    result = compile_edl(make_edl(layout("layout-2", 3, 5), layout("layout-1", 0, 2)))
    assert clauses(result)[0].startswith("[0:v]trim=start=0.000:end=2.000")


def test_contiguous_layouts_share_one_segment():
    result = compile_edl(make_edl(layout("layout-1", 0, 5), layout("layout-2", 5, 10, tool="zoom_screen", scale=2.0)))
    assert clauses(result) == [
        "[0:v]trim=start=0.000:end=10.000,setpts=PTS-STARTPTS,split=2[v0p0][v0p1]",
        f"[v0p0]trim=start=0.000:end=5.000,setpts=PTS-STARTPTS,{FILL}[v0c0]",
        f"[v0p1]trim=start=5.000:end=10.000,setpts=PTS-STARTPTS,crop=iw*0.500:ih*0.500:iw*0.250:ih*0.250,{FILL}[v0c1]",
        "[v0c0][v0c1]concat=n=2:v=1:a=0[v0]",
        "[0:a]atrim=start=0.000:end=10.000,asetpts=PTS-STARTPTS[a0]",
        "[v0][a0]concat=n=1:v=1:a=1[outv][outa]",
    ]


def test_open_ended_layout_uses_source_duration():
    edl = make_edl(layout("layout-1", 0, None), metadata=EdlMetadata(source_duration=42.5))
    assert "trim=start=0.000:end=42.500" in compile_edl(edl).filter_complex


def test_open_ended_layout_fallback_duration():
    assert "trim=start=0.000:end=3600.000" in compile_edl(make_edl(layout("layout-1", 0, None))).filter_complex


def test_open_ended_layout_stops_at_next_layout():
    edl = make_edl(layout("layout-1", 0, None), layout("layout-2", 4, 6, tool="only_webcam"))
    fc = compile_edl(edl).filter_complex
    assert "split=2" in fc
    assert "[v0p0]trim=start=0.000:end=4.000" in fc
    assert "[v0p1]trim=start=4.000:end=6.000" in fc


def test_output_size_from_metadata():
    edl = make_edl(layout("layout-1", 0, 1), metadata=EdlMetadata(output_width=1080, output_height=1920))
    assert "crop=1080:1920" in compile_edl(edl).filter_complex


def test_fade_transition_renders_xfade():
    edl = make_edl(
        layout("layout-1", 0, 5),
        layout("layout-2", 5, 10, tool="only_webcam"),
        TransitionDecision(id="transition-1", tool="fade", start_time=5, params={"duration": 0.5}),
    )
    parts = clauses(compile_edl(edl))
    assert "xfade" in "".join(parts)
    assert "[v0c0][v0c1]xfade=transition=fade:duration=0.500:offset=4.500[v0]" in parts
    assert not any("concat=n=2:v=1:a=0" in c for c in parts)
    assert parts[-4:] == [
        "[0:a]atrim=start=0.000:end=4.500,asetpts=PTS-STARTPTS[a0p0]",
        "[0:a]atrim=start=5.000:end=10.000,asetpts=PTS-STARTPTS[a0p1]",
        "[a0p0][a0p1]concat=n=2:v=0:a=1[a0]",
        "[v0][a0]concat=n=1:v=1:a=1[outv][outa]",
    ]


@pytest.mark.parametrize(
    "tool,params,expected",
    [
        ("fade", {}, "xfade=transition=fade:duration=0.500:offset=4.500"),
        ("swipe", {"direction": "right"}, "xfade=transition=slideright:duration=0.300:offset=4.700"),
        ("swipe", {"direction": "up", "duration": 1.0}, "xfade=transition=slideup:duration=1.000:offset=4.000"),
        ("zoom_transition", {}, "xfade=transition=radial:duration=0.500:offset=4.500"),
    ],
)
def test_transition_xfade_names(tool, params, expected):
    edl = make_edl(
        layout("layout-1", 0, 5),
        layout("layout-2", 5, 10, tool="only_webcam"),
        TransitionDecision(id="transition-1", tool=tool, start_time=5, params=params),
    )
    assert f"[v0c0][v0c1]{expected}[v0]" in clauses(compile_edl(edl))


def test_cut_transition_stays_hard_concat():
    with_cut = make_edl(
        layout("layout-1", 0, 5),
        layout("layout-2", 5, 10, tool="only_webcam"),
        TransitionDecision(id="transition-1", tool="cut", start_time=5),
    )
    without = make_edl(layout("layout-1", 0, 5), layout("layout-2", 5, 10, tool="only_webcam"))
    fc = compile_edl(with_cut).filter_complex
    assert fc == compile_edl(without).filter_complex
    assert "xfade" not in fc
    assert "[v0c0][v0c1]concat=n=2:v=1:a=0[v0]" in fc


def test_transition_off_boundary_is_ignored():
    edl = make_edl(
        layout("layout-1", 0, 5),
        layout("layout-2", 5, 10, tool="only_webcam"),
        TransitionDecision(id="transition-1", tool="fade", start_time=7),
    )
    assert "xfade" not in compile_edl(edl).filter_complex


def test_mixed_cut_and_fade_in_one_run():
    edl = make_edl(
        layout("layout-1", 0, 4),
        layout("layout-2", 4, 8, tool="only_webcam"),
        layout("layout-3", 8, 12),
        TransitionDecision(id="transition-1", tool="fade", start_time=8),
    )
    parts = clauses(compile_edl(edl))
    assert "[v0c0][v0c1]concat=n=2:v=1:a=0,fps=30[v0x1]" in parts
    assert "[v0x1][v0c2]xfade=transition=fade:duration=0.500:offset=7.500[v0]" in parts
    assert "[0:a]atrim=start=0.000:end=4.000,asetpts=PTS-STARTPTS[a0p0]" in parts
    assert "[0:a]atrim=start=4.000:end=7.500,asetpts=PTS-STARTPTS[a0p1]" in parts
    assert "[0:a]atrim=start=8.000:end=12.000,asetpts=PTS-STARTPTS[a0p2]" in parts
    assert "[a0p0][a0p1][a0p2]concat=n=3:v=0:a=1[a0]" in parts


def test_intermediate_concat_uses_output_fps():
    edl = make_edl(
        layout("layout-1", 0, 4),
        layout("layout-2", 4, 8, tool="only_webcam"),
        layout("layout-3", 8, 12),
        TransitionDecision(id="transition-1", tool="swipe", start_time=8),
        metadata=EdlMetadata(output_fps=24),
    )
    assert "[v0c0][v0c1]concat=n=2:v=1:a=0,fps=24[v0x1]" in clauses(compile_edl(edl))


def test_transition_across_gap_is_hard_cut():
    edl = make_edl(
        layout("layout-1", 0, 4),
        layout("layout-2", 6, 10, tool="only_webcam"),
        TransitionDecision(id="transition-1", tool="fade", start_time=6),
    )
    fc = compile_edl(edl).filter_complex
    assert "xfade" not in fc
    assert "[v0][a0][v1][a1]concat=n=2:v=1:a=1[outv][outa]" in fc


def test_effects_follow_timeline_shortened_by_transition():
    """A 0.5s fade pulls the zoomed part to 4.5s of output, so 4.7s is already zoomed."""
    edl = make_edl(
        layout("layout-1", 0, 5),
        layout("layout-2", 5, 10, tool="zoom_screen", scale=2.0),
        TransitionDecision(id="transition-1", tool="fade", start_time=5),
        effect("effect-1", "highlight_region", 4.6, 4.8, x=0.5, y=0.5, width=0.1, height=0.1),
    )
    fc = compile_edl(edl).filter_complex
    assert "drawbox=x=iw*0.500:y=ih*0.500:w=iw*0.200:h=ih*0.200" in fc

    no_blend = make_edl(
        layout("layout-1", 0, 5),
        layout("layout-2", 5, 10, tool="zoom_screen", scale=2.0),
        effect("effect-1", "highlight_region", 4.6, 4.8, x=0.5, y=0.5, width=0.1, height=0.1),
    )
    assert "w=iw*0.100:h=ih*0.100" in compile_edl(no_blend).filter_complex


def test_highlight_under_center_zoom():
    edl = make_edl(
        layout("layout-1", 0, 10, tool="zoom_screen", scale=2.0),
        effect("effect-1", "highlight_region", 2, 4, x=0.5, y=0.5, width=0.1, height=0.1),
    )
    result = compile_edl(edl)
    assert (
        "[cv]drawbox=x=iw*0.500:y=ih*0.500:w=iw*0.200:h=ih*0.200:color=0xFF0000:t=3:"
        "enable='between(t,2.000,4.000)'[outv]"
    ) in clauses(result)
    assert "[v0][a0]concat=n=1:v=1:a=1[cv][ca]" in clauses(result)
    assert result.output_args == ["-map", "[outv]", "-map", "[ca]"]


def test_highlight_outside_zoom_is_skipped():
    edl = make_edl(
        layout("layout-1", 0, 10, tool="zoom_screen", scale=2.0),
        effect("effect-1", "highlight_region", 2, 4, x=0.05, y=0.05, width=0.1, height=0.1),
    )
    result = compile_edl(edl)
    assert "drawbox" not in result.filter_complex
    assert result.output_args == ["-map", "[outv]", "-map", "[outa]"]


def test_highlight_zoom_follows_output_timeline():
    """Effect times are post-cut: 3.5s of output falls inside the zoomed second run."""
    edl = make_edl(
        layout("layout-1", 0, 2),
        layout("layout-2", 5, 10, tool="zoom_screen", scale=2.0),
        effect("effect-1", "highlight_region", 3, 4, x=0.5, y=0.5, width=0.1, height=0.1),
    )
    assert "drawbox=x=iw*0.500:y=ih*0.500:w=iw*0.200:h=ih*0.200" in compile_edl(edl).filter_complex


def test_highlight_pixels_are_normalized():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "highlight_region", 1, 2, x=100, y=200, width=300, height=150, color="yellow"),
    )
    fc = compile_edl(edl).filter_complex
    assert "drawbox=x=iw*0.052:y=ih*0.185:w=iw*0.156:h=ih*0.139:color=yellow:t=3" in fc


def test_highlight_pulse_and_dim():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect(
            "effect-1", "highlight_region", 1, 2,
            x=0.1, y=0.1, width=0.2, height=0.2, border_width=4, dim_outside=True, animation="pulse",
        ),
    )
    fc = compile_edl(edl).filter_complex
    assert (
        "[cv]drawbox=x=0:y=0:w=iw:h=ih:color=black@0.5:t=fill:enable='between(t,1.000,2.000)',"
        "drawbox=x=iw*0.100:y=ih*0.100:w=iw*0.200:h=ih*0.200:color=0xFF0000:t=12:"
        "enable='between(t,1.000,2.000)'[outv]"
    ) in fc


def test_highlight_draw_escapes_commas():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "highlight_region", 1, 2, x=0.1, y=0.1, width=0.2, height=0.2, animation="draw"),
    )
    fc = compile_edl(edl).filter_complex
    assert r"w=min(iw*0.200\,(iw*0.200)*(t-1.000)/0.500)" in fc


def test_text_overlay_escaping():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "text_overlay", 1, 3, text="Let's go: party"),
        metadata=EdlMetadata(font_path="C:\\Repos\\fonts\\Montserrat.ttf"),
    )
    fc = compile_edl(edl).filter_complex
    assert (
        r"[cv]drawtext=text=Let\\\'s go\\: party:fontfile=C\\:/Repos/fonts/Montserrat.ttf:"
        "fontsize=48:fontcolor=0xFFFFFF:x=(w-text_w)/2:y=h-text_h-24:"
        "enable='between(t,1.000,3.000)'[outv]"
    ) in fc


def test_text_font_from_settings():
    settings = CompilerSettings(compiler=CompilerConfig(font_path="/fonts/Inter.ttf"))
    edl = make_edl(layout("layout-1", 0, 10), effect("effect-1", "text_overlay", 1, 3, text="hi"))
    assert "fontfile=/fonts/Inter.ttf" in compile_edl(edl, settings=settings).filter_complex


def test_text_pop_uses_static_font_size():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "text_overlay", 1, 3, text="Wow", animation="pop"),
    )
    fc = compile_edl(edl).filter_complex
    assert "fontsize=55:" in fc
    assert "fontsize=if" not in fc


def test_text_slide_up_escapes_commas():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "text_overlay", 1, 3, text="Up", animation="slide-up"),
    )
    fc = compile_edl(edl).filter_complex
    assert r"y=if(lt(t\,1.400)\,h-text_h-24+60*(1-(t-1.000)/0.400)\,h-text_h-24):" in fc


def test_text_fade_in_alpha():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "text_overlay", 1, 3, text="Hi", animation="fade-in", position="top-center"),
    )
    fc = compile_edl(edl).filter_complex
    assert "y=24:alpha='if(lt(t,1.400),min(1,(t-1.000)/0.400),1)':enable=" in fc


def test_animation_constants_from_settings():
    settings = CompilerSettings(animation=AnimationConfig(pop_scale=1.5))
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "text_overlay", 1, 3, text="Wow", animation="pop"),
    )
    assert "fontsize=72:" in compile_edl(edl, settings=settings).filter_complex


def test_effects_chain_in_timeline_order():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-2", "highlight_region", 5, 6, x=0.1, y=0.1, width=0.2, height=0.2),
        effect("effect-1", "text_overlay", 1, 3, text="first"),
    )
    video = clauses(compile_edl(edl))[-1]
    assert video.startswith("[cv]drawtext=text=first")
    assert ",drawbox=" in video
    assert video.endswith("[outv]")


def test_fade_to_black_fades_audio():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "fade_to_black", 8, 9, duration=1.0),
    )
    result = compile_edl(edl)
    assert "[cv]fade=type=out:start_time=8.000:duration=1.000:color=black[outv]" in clauses(result)
    assert "[ca]afade=type=out:start_time=8.000:duration=1.000[afaded]" in clauses(result)
    assert result.output_args == ["-map", "[outv]", "-map", "[afaded]"]


def test_fade_to_black_without_layouts():
    result = compile_edl(make_edl(effect("effect-1", "fade_to_black", 8, None)))
    assert clauses(result) == [
        "[0:v]fade=type=out:start_time=8.000:duration=1.000:color=black[outv]",
        "[0:a]afade=type=out:start_time=8.000:duration=1.000[afaded]",
    ]


def test_b_roll_picture_in_picture():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect(
            "effect-1", "b_roll", 2, 4,
            image_path="broll.png", display_mode="picture-in-picture", pip_position="top-right", pip_size=25,
        ),
    )
    result = compile_edl(edl)
    assert result.input_args == ["-i", "broll.png"]
    assert clauses(result)[-2:] == [
        "[1:v]scale=iw*25/100:-1[broll1]",
        "[cv][broll1]overlay=x=W-w-10:y=10:enable='between(t,2.000,4.000)'[outv]",
    ]


def test_b_roll_fullscreen_then_text():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "b_roll", 2, 4, image_path="a.png"),
        effect("effect-2", "b_roll", 5, 6, image_path="b.png"),
        effect("effect-3", "text_overlay", 1, 3, text="hi"),
    )
    result = compile_edl(edl)
    assert result.input_args == ["-i", "a.png", "-i", "b.png"]
    parts = clauses(result)
    assert "[1:v]scale=1920:1080[broll1]" in parts
    assert "[cv][broll1]overlay=x=0:y=0:enable='between(t,2.000,4.000)'[fx0]" in parts
    assert "[fx0][broll2]overlay=x=0:y=0:enable='between(t,5.000,6.000)'[fx1]" in parts
    assert parts[-1].startswith("[fx1]drawtext=")
    assert parts[-1].endswith("[outv]")


def test_b_roll_without_image_is_skipped():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "b_roll", 2, 4, image_prompt="a sunset"),
    )
    result = compile_edl(edl)
    assert result.input_args == []
    assert "overlay" not in result.filter_complex
    assert result.output_args == ["-map", "[outv]", "-map", "[outa]"]


def test_slow_motion_not_rendered():
    base = make_edl(layout("layout-1", 0, 10))
    slowed = make_edl(layout("layout-1", 0, 10), effect("effect-1", "slow_motion", 2, 4, speed=0.5))
    assert compile_edl(slowed).filter_complex == compile_edl(base).filter_complex


def test_captions_applied_last():
    edl = make_edl(
        layout("layout-1", 0, 10),
        effect("effect-1", "text_overlay", 1, 3, text="hi"),
    )
    result = compile_edl(edl, captions_file="C:\\tmp\\subs.ass", fonts_dir="fonts")
    parts = clauses(result)
    assert parts[-2].startswith("[cv]drawtext=")
    assert parts[-2].endswith("[fx0]")
    assert parts[-1] == r"[fx0]ass=C\\:/tmp/subs.ass:fontsdir=fonts[outv]"
    assert result.output_args == ["-map", "[outv]", "-map", "[ca]"]


def test_captions_only():
    result = compile_edl(make_edl(layout("layout-1", 0, 10)), captions_file="subs.ass")
    assert clauses(result)[-1] == "[cv]ass=subs.ass:fontsdir=.[outv]"


def test_invalid_params_raise():
    edl = make_edl(layout("layout-1", 0, 10), effect("effect-1", "text_overlay", 1, 3))
    with pytest.raises(ValueError):
        compile_edl(edl)


def test_deterministic():
    edl = make_edl(
        layout("layout-1", 0, 5),
        layout("layout-2", 5, 10, tool="zoom_screen", scale=1.5),
        effect("effect-1", "text_overlay", 1, 3, text="hi", animation="slide-up"),
        effect("effect-2", "b_roll", 2, 4, image_path="a.png"),
        effect("effect-3", "fade_to_black", 9, 10),
    )
    first = compile_edl(edl, captions_file="subs.ass")
    second = compile_edl(edl, captions_file="subs.ass")
    assert first == second
