from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


class PathsConfig(BaseModel):
    log_dir: str = Field(default="logs")
    fonts_dir: str = Field(default=".")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    rotation: str = Field(default="10 MB")
    retention: str = Field(default="10 days")


class CompilerConfig(BaseModel):
    output_width: int = Field(default=1920)
    output_height: int = Field(default=1080)
    fallback_duration: float = Field(default=3600.0, description="End of an open-ended layout when the source duration is unknown")
    boundary_tolerance: float = Field(default=0.01, description="Seconds within which two timestamps are the same boundary")
    default_fps: float = Field(default=30.0, description="Frame rate used to normalise parts joined inside a blended run")
    font_path: Optional[str] = Field(default=None)


class AnimationConfig(BaseModel):
    """Tuned animation constants, kept as configuration."""

    text_duration: float = Field(default=0.4)
    slide_distance: int = Field(default=60)
    pop_scale: float = Field(default=1.15)
    pulse_multiplier: int = Field(default=3)
    draw_duration: float = Field(default=0.5)
    dim_color: str = Field(default="black@0.5")
    pip_margin: int = Field(default=10)


class EncodingConfig(BaseModel):
    ffmpeg_path: str = Field(default="ffmpeg")
    video_codec: str = Field(default="libx264")
    pix_fmt: str = Field(default="yuv420p")
    preset: str = Field(default="ultrafast")
    crf: int = Field(default=23)
    audio_codec: str = Field(default="aac")
    audio_bitrate: str = Field(default="128k")
    threads: int = Field(default=4)


class CompilerSettings(BaseModel):
    """The subset of configuration the compilers read."""

    compiler: CompilerConfig = Field(default_factory=CompilerConfig)
    animation: AnimationConfig = Field(default_factory=AnimationConfig)


class AppConfig(BaseModel):
    paths: PathsConfig = Field(default_factory=PathsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    compiler: CompilerConfig = Field(default_factory=CompilerConfig)
    animation: AnimationConfig = Field(default_factory=AnimationConfig)
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)


class ConfigManager:
    """
    Manages loading and validation of application configuration.
    """
    def __init__(self, config_path: str = "config/settings.yaml"):
        self.config_path = Path(config_path)
        self.config: AppConfig = self._load_config()

    def _load_config(self) -> AppConfig:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found at {self.config_path}")

        with open(self.config_path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        return AppConfig(**raw_config)

    @property
    def paths(self) -> PathsConfig:
        return self.config.paths

    @property
    def logging(self) -> LoggingConfig:
        return self.config.logging

    @property
    def compiler(self) -> CompilerConfig:
        return self.config.compiler

    @property
    def animation(self) -> AnimationConfig:
        return self.config.animation

    @property
    def encoding(self) -> EncodingConfig:
        return self.config.encoding

    @property
    def compiler_settings(self) -> CompilerSettings:
        return CompilerSettings(compiler=self.config.compiler, animation=self.config.animation)
