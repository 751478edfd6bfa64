"""Pydantic models for configuration and validation."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class RunConfig(BaseModel):
    """Playlist run parameters."""

    locale: Literal["ko", "en", "ja", "zh"] = Field(
        default="ko", description="Output language of summaries"
    )
    with_screenshots: bool = Field(default=True, description="Run the screenshot capture stage")
    concurrency: int = Field(default=1, ge=1, description="Videos processed in parallel")
    output_dir: str = Field(default="./output", description="Base output directory")


class GeminiConfig(BaseModel):
    """Summarization service settings."""

    model: str = Field(default="gemini-2.5-flash", description="Gemini model name")
    max_retries: int = Field(default=3, ge=0, description="Retries for transient API errors")
    retry_delay_s: float = Field(
        default=5.0, ge=0.0, description="Base delay for exponential backoff in seconds"
    )
    max_output_tokens: int = Field(default=65536, gt=0, description="Response token limit")


class CaptureConfig(BaseModel):
    """Screenshot capture settings (yt-dlp + ffmpeg)."""

    ytdlp_path: str = Field(default="yt-dlp", description="yt-dlp executable")
    temp_dir: Optional[str] = Field(
        default=None, description="Directory for downloaded clips (None = system temp)"
    )
    timestamp_offset_s: int = Field(
        default=0, ge=0, description="Seconds added to each timestamp before capture"
    )
    max_height: int = Field(default=720, gt=0, description="Maximum downloaded video height")
    timeout_s: int = Field(default=300, gt=0, description="Per-command timeout in seconds")


class YouTubeConfig(BaseModel):
    """Catalog API settings."""

    api_base: str = Field(
        default="https://www.googleapis.com/youtube/v3", description="Data API base URL"
    )
    page_size: int = Field(default=50, ge=1, le=50, description="Items per playlist page")
    timeout_s: float = Field(default=30.0, gt=0.0, description="HTTP timeout in seconds")


class DigestConfig(BaseModel):
    """Complete application configuration with validation."""

    run: RunConfig = Field(default_factory=RunConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    youtube: YouTubeConfig = Field(default_factory=YouTubeConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "DigestConfig":
        """Create config from nested dict (YAML)."""
        return cls(**data)

    def merge_cli_overrides(self, cli_args: dict) -> "DigestConfig":
        """Apply CLI overrides and return new config instance."""
        config_dict = self.model_dump()

        if "locale" in cli_args:
            config_dict["run"]["locale"] = cli_args["locale"]
        if "concurrency" in cli_args:
            config_dict["run"]["concurrency"] = cli_args["concurrency"]
        if "output" in cli_args:
            config_dict["run"]["output_dir"] = cli_args["output"]
        if cli_args.get("no_screenshots"):
            config_dict["run"]["with_screenshots"] = False
        if "model" in cli_args:
            config_dict["gemini"]["model"] = cli_args["model"]
        if "retry" in cli_args:
            config_dict["gemini"]["max_retries"] = cli_args["retry"]

        return DigestConfig.from_dict(config_dict)
