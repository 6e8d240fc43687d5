import pytest

from cutflow.edl.layouts import CropRect, compile_layout, to_zoomed_frame, zoom_crop_rect
from cutflow.edl.models import LayoutDecision, WebcamRegion

FILL = "scale=1920:1080:force_original_aspect_ratio=increase,crop=1920:1080"


def layout(tool, **params):
    return LayoutDecision(id="layout-1", tool=tool, start_time=0, end_time=10, params=params)


@pytest.fixture
def webcam_right():
    return WebcamRegion(x=1400, y=700, width=480, height=360)


@pytest.fixture
def webcam_left():
    return WebcamRegion(x=20, y=700, width=480, height=360)


def test_only_screen_without_webcam():
    assert compile_layout(layout("only_screen"), None, 1920, 1080, "0") == FILL


def test_only_screen_drops_webcam_columns(webcam_right, webcam_left):
    assert compile_layout(layout("only_screen"), webcam_right, 1920, 1080, "0") == f"crop=1400:ih:0:0,{FILL}"
    assert compile_layout(layout("only_screen"), webcam_left, 1920, 1080, "0") == f"crop=iw-480:ih:480:0,{FILL}"


def test_only_webcam_uses_region(webcam_right):
    assert compile_layout(layout("only_webcam"), webcam_right, 1920, 1080, "0") == f"crop=480:360:1400:700,{FILL}"


def test_only_webcam_scaled_crop(webcam_right):
    chain = compile_layout(layout("only_webcam", scale=2.0), webcam_right, 1920, 1080, "0")
    assert chain == f"crop=240:180:1520:790,{FILL}"


def test_only_webcam_fallback_quadrant():
    assert compile_layout(layout("only_webcam"), None, 1920, 1080, "0") == f"crop=iw/4:ih/4:3*iw/4:0,{FILL}"


def test_split_layout_landscape_letterboxes():
    chain = compile_layout(layout("split_layout"), None, 1920, 1080, "0", target_aspect_ratio="16:9")
    assert chain == "scale=1920:1080:force_original_aspect_ratio=decrease,pad=1920:1080:(ow-iw)/2:(oh-ih)/2:black"


def test_split_layout_portrait_stacks():
    chain = compile_layout(layout("split_layout", screen_percent=65), None, 1080, 1920, "3", target_aspect_ratio="9:16")
    assert chain == (
        "split[scr3][cam3];"
        "[scr3]crop=iw:ih*0.7:0:0,scale=1080:1248:force_original_aspect_ratio=increase,crop=1080:1248[screen3];"
        "[cam3]crop=iw/3:ih*0.3:2*iw/3:ih*0.7,scale=1080:672:force_original_aspect_ratio=increase,crop=1080:672[webcam3];"
        "[screen3][webcam3]vstack"
    )


def test_split_layout_portrait_with_webcam(webcam_right):
    chain = compile_layout(layout("split_layout"), webcam_right, 1080, 1920, "0", target_aspect_ratio="9:16")
    assert "[scr0]crop=1400:ih:0:0," in chain
    assert "[cam0]crop=480:360:1400:700," in chain


def test_zoom_webcam(webcam_right):
    chain = compile_layout(layout("zoom_webcam", scale=1.5), webcam_right, 1920, 1080, "0")
    assert chain == f"crop=320:240:1480:760,{FILL}"


def test_zoom_screen_center():
    chain = compile_layout(layout("zoom_screen", scale=2.0), None, 1920, 1080, "0")
    assert chain == f"crop=iw*0.500:ih*0.500:iw*0.250:ih*0.250,{FILL}"


def test_zoom_screen_region():
    region = {"x": 0.1, "y": 0.2, "width": 0.5, "height": 0.4}
    chain = compile_layout(layout("zoom_screen", region=region), None, 1920, 1080, "0")
    assert chain == f"crop=iw*0.500:ih*0.400:iw*0.100:ih*0.200,{FILL}"


def test_zoom_crop_rect_center():
    assert zoom_crop_rect(layout("zoom_screen", scale=2.0)) == CropRect(0.25, 0.25, 0.5, 0.5)


def test_zoom_crop_rect_only_for_screen_zoom():
    assert zoom_crop_rect(layout("zoom_webcam")) is None
    assert zoom_crop_rect(layout("only_screen")) is None


def test_to_zoomed_frame_keeps_center():
    box = to_zoomed_frame(CropRect(0.5, 0.5, 0.1, 0.1), CropRect(0.25, 0.25, 0.5, 0.5))
    assert box.x == pytest.approx(0.5)
    assert box.y == pytest.approx(0.5)
    assert box.w == pytest.approx(0.2)
    assert box.h == pytest.approx(0.2)


def test_to_zoomed_frame_outside_crop():
    crop = CropRect(0.25, 0.25, 0.5, 0.5)
    assert to_zoomed_frame(CropRect(0.1, 0.5, 0.1, 0.1), crop) is None
    assert to_zoomed_frame(CropRect(0.5, 0.9, 0.1, 0.1), crop) is None
