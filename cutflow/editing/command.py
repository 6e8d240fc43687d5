from abc import ABC, abstractmethod
from typing import List, Optional

from loguru import logger

from cutflow.config_manager import EncodingConfig
from cutflow.edl.models import CompileResult
from cutflow.editing.single_pass import encoding_args


class MediaRunner(ABC):
    """Executes an FFmpeg argument vector. Retries and timeouts are the runner's concern."""

    @abstractmethod
    def run(self, args: List[str]) -> bool:
        """Runs the command and reports success."""
        pass


def build_ffmpeg_args(
    source_video: str,
    result: CompileResult,
    output_path: str,
    settings: Optional[EncodingConfig] = None,
) -> List[str]:
    """
    Assemble the command line for a compiled EDL.

    The source is always input 0; the compiler's extra inputs follow it so
    their indexes match the labels in the filter graph.
    """
    encoding = settings or EncodingConfig()
    args = [
        encoding.ffmpeg_path, "-y",
        "-i", source_video,
        *result.input_args,
        "-filter_complex", result.filter_complex,
        *result.output_args,
        *encoding_args(encoding),
        output_path,
    ]
    logger.debug(f"FFmpeg command has {len(args)} arguments, {len(result.input_args) // 2} extra input(s)")
    return args
