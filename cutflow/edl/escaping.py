"""
Number formatting and escaping for text spliced into an FFmpeg filter graph.

A value inside ``-filter_complex`` is parsed twice: first by the filtergraph
parser (which splits on ``,`` ``;`` ``[`` ``]`` and consumes one level of
backslashes), then by the filter's option parser (which splits on ``:``).
Every interpolated value goes through one of the helpers below.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

_MILLIS = Decimal("0.001")


def fixed3(value: float) -> str:
    """Format to exactly three decimals, rounding half up (1.23456789 -> 1.235)."""
    quantized = Decimal(str(value)).quantize(_MILLIS, rounding=ROUND_HALF_UP)
    if quantized.is_zero():
        quantized = quantized.copy_abs()
    return f"{quantized:f}"


def format_time(seconds: float) -> str:
    return fixed3(seconds)


def frac_expr(dimension: str, fraction: float) -> str:
    """``iw*0.500`` style expression for a normalized coordinate."""
    return f"{dimension}*{fixed3(fraction)}"


def escape_expression(expr: str) -> str:
    """
    Escape commas inside an expression used as an option value.

    An unescaped comma ends the filter at the filtergraph level, so
    ``if(lt(t,1),a,b)`` would be truncated to ``if(lt(t``.
    """
    return expr.replace(",", "\\,")


def escape_text(text: str) -> str:
    """
    Escape free text for a drawtext ``text=`` value (used unquoted).

    Characters the option parser cares about are escaped for both levels,
    characters only the filtergraph parser cares about get one level.
    """
    return (
        text.replace("\\", "\\\\\\\\")
        .replace("'", "\\\\\\'")
        .replace(":", "\\\\:")
        .replace(",", "\\,")
        .replace(";", "\\;")
        .replace("[", "\\[")
        .replace("]", "\\]")
    )


def escape_path(path: str) -> str:
    """
    Make a file path safe as an unquoted filter option value.

    Backslashes become forward slashes. Colons and quotes are escaped for both
    parser levels, graph delimiters for the filtergraph level only.
    """
    return (
        path.replace("\\", "/")
        .replace("'", "\\\\\\'")
        .replace(":", "\\\\:")
        .replace(",", "\\,")
        .replace(";", "\\;")
        .replace("[", "\\[")
        .replace("]", "\\]")
    )


def ffmpeg_color(color: str) -> str:
    """``#RRGGBB[AA]`` to FFmpeg's ``0xRRGGBB[AA]``; named colors pass through."""
    return color.replace("#", "0x", 1)


def enable_window(start: float, end: Optional[float]) -> str:
    if end is None:
        return f"enable='gte(t,{format_time(start)})'"
    return f"enable='between(t,{format_time(start)},{format_time(end)})'"
