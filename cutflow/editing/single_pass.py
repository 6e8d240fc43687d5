"""
Single-pass cut compiler.

Turns an ordered list of keep segments into one trim + concat filter graph,
optionally burning ASS captions onto the concatenated stream. Used by the
silence-removal and manual-cut flows, which have no layouts or effects.
"""
from typing import List, Optional, Sequence

from loguru import logger

from cutflow.config_manager import EncodingConfig
from cutflow.edl.errors import EmptySegmentsError
from cutflow.edl.escaping import escape_path, format_time
from cutflow.edl.models import KeepSegment


def build_filter_complex(
    keep_segments: Sequence[KeepSegment],
    ass_filename: Optional[str] = None,
    fontsdir: Optional[str] = None,
) -> str:
    """
    Build the ``-filter_complex`` text for a set of keep segments.

    Segments must already be ascending and non-overlapping; they are used as
    given. Raises ``EmptySegmentsError`` for an empty list.
    """
    if not keep_segments:
        raise EmptySegmentsError("keepSegments must not be empty")

    clauses: List[str] = []
    for i, seg in enumerate(keep_segments):
        start, end = format_time(seg.start), format_time(seg.end)
        clauses.append(f"[0:v]trim=start={start}:end={end},setpts=PTS-STARTPTS[v{i}]")
        clauses.append(f"[0:a]atrim=start={start}:end={end},asetpts=PTS-STARTPTS[a{i}]")

    labels = "".join(f"[v{i}][a{i}]" for i in range(len(keep_segments)))
    n = len(keep_segments)
    if ass_filename:
        clauses.append(f"{labels}concat=n={n}:v=1:a=1[cv][ca]")
        clauses.append(f"[cv]ass={escape_path(ass_filename)}:fontsdir={escape_path(fontsdir or '.')}[outv]")
    else:
        clauses.append(f"{labels}concat=n={n}:v=1:a=1[outv][outa]")

    logger.debug(f"Single-pass graph: {n} segments, captions={'yes' if ass_filename else 'no'}")
    return ";\n".join(clauses)


def encoding_args(encoding: EncodingConfig) -> List[str]:
    return [
        "-c:v", encoding.video_codec,
        "-preset", encoding.preset,
        "-crf", str(encoding.crf),
        "-pix_fmt", encoding.pix_fmt,
        "-c:a", encoding.audio_codec,
        "-b:a", encoding.audio_bitrate,
        "-threads", str(encoding.threads),
    ]


def build_single_pass_args(
    input_path: str,
    keep_segments: Sequence[KeepSegment],
    output_path: str,
    ass_filename: Optional[str] = None,
    settings: Optional[EncodingConfig] = None,
    fontsdir: Optional[str] = None,
) -> List[str]:
    """Full FFmpeg argument vector (binary first) for a single-pass cut."""
    encoding = settings or EncodingConfig()
    filter_complex = build_filter_complex(keep_segments, ass_filename, fontsdir)
    audio_label = "[ca]" if ass_filename else "[outa]"

    logger.info(f"Single-pass cut of {input_path}: {len(keep_segments)} segments -> {output_path}")
    return [
        encoding.ffmpeg_path, "-y",
        "-i", input_path,
        "-filter_complex", filter_complex,
        "-map", "[outv]",
        "-map", audio_label,
        *encoding_args(encoding),
        output_path,
    ]
