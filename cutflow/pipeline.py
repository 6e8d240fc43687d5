from typing import List, Optional, Sequence

from loguru import logger

from cutflow.config_manager import ConfigManager
from cutflow.editing.command import MediaRunner, build_ffmpeg_args
from cutflow.editing.single_pass import build_single_pass_args
from cutflow.edl.accumulator import EdlAccumulator
from cutflow.edl.compiler import compile_edl
from cutflow.edl.models import EditDecisionList, EdlMetadata, KeepSegment, WebcamRegion
from cutflow.edl.optimizer import optimize_edl


class EditPipeline:
    """
    Drives one edit from accumulated decisions to a finished render:
    validate, optimize, compile, then hand the command to the runner.
    """

    def __init__(self, config_manager: ConfigManager, runner: MediaRunner, optimize: bool = True):
        self.cfg = config_manager
        self.runner = runner
        self.optimize = optimize

    def build_command(self, edl: EditDecisionList, captions_file: Optional[str] = None) -> List[str]:
        if self.optimize:
            edl = optimize_edl(edl, tolerance=self.cfg.compiler.boundary_tolerance)
        result = compile_edl(
            edl,
            captions_file=captions_file,
            fonts_dir=self.cfg.paths.fonts_dir,
            settings=self.cfg.compiler_settings,
        )
        return build_ffmpeg_args(edl.source_video, result, edl.output_path, self.cfg.encoding)

    def run(
        self,
        accumulator: EdlAccumulator,
        source_video: str,
        output_path: str,
        webcam_region: Optional[WebcamRegion] = None,
        metadata: Optional[EdlMetadata] = None,
        captions_file: Optional[str] = None,
    ) -> bool:
        logger.info(f"Starting edit of {source_video} ({len(accumulator)} decisions)")

        try:
            validation = accumulator.validate()
            if not validation.valid:
                for error in validation.errors:
                    logger.error(error)
                logger.error("EDL validation failed, nothing rendered.")
                return False

            edl = accumulator.to_edl(source_video, output_path, webcam_region, metadata)
            args = self.build_command(edl, captions_file)

            if not self.runner.run(args):
                logger.error(f"Render failed for {output_path}")
                return False

            logger.success(f"Rendered {output_path}")
            return True
        except Exception as e:
            logger.exception(f"Edit pipeline failed: {e}")
            raise e

    def cut(
        self,
        input_path: str,
        keep_segments: Sequence[KeepSegment],
        output_path: str,
        captions_file: Optional[str] = None,
    ) -> bool:
        """Single-pass cut that bypasses the decision pipeline."""
        args = build_single_pass_args(
            input_path,
            keep_segments,
            output_path,
            ass_filename=captions_file,
            settings=self.cfg.encoding,
            fontsdir=self.cfg.paths.fonts_dir,
        )
        ok = self.runner.run(args)
        if not ok:
            logger.error(f"Single-pass cut failed for {output_path}")
        return ok
