"""
Application settings management.

Settings are loaded from environment variables with .env file support.
Interview calibration constants (stage thresholds, end phrases) are loaded
from config/interview_config.yaml. All configuration is validated using Pydantic.
"""

from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


GeneratorProvider = Literal["openai", "anthropic", "offline"]


class Settings(BaseSettings):
    """
    Application settings loaded from environment.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # ==========================================================================
    # Paths
    # ==========================================================================

    config_dir: Path = Field(
        default=Path("config"),
        description="Directory containing YAML configuration files",
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Data root holding participants/ and conversations/",
    )
    log_dir: Path = Field(default=Path("logs"), description="Directory for log files")
    log_to_file: bool = Field(default=True, description="Write a per-process log file")
    log_sessions_to_keep: int = Field(
        default=5, ge=1, le=100, description="Number of process log files retained"
    )

    # ==========================================================================
    # Reply Generator
    # ==========================================================================
    #
    # "offline" never reaches a model; every reply comes from the fallback pool.

    generator_provider: GeneratorProvider = Field(
        default="openai", description="Text model provider for interviewer replies"
    )
    generator_model: Optional[str] = Field(
        default=None, description="Model ID override (provider default when unset)"
    )
    generator_base_url: Optional[str] = Field(
        default=None, description="Endpoint override for the provider API"
    )
    generator_timeout: float = Field(
        default=30.0, gt=0, le=300, description="Per-call deadline in seconds"
    )
    generator_retries: int = Field(
        default=0, ge=0, le=3, description="Extra attempts after a generator failure"
    )
    generator_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    generator_max_tokens: int = Field(default=300, ge=16, le=4096)

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    anthropic_api_key: Optional[str] = Field(
        default=None, description="Anthropic API key"
    )

    # ==========================================================================
    # Admin
    # ==========================================================================

    admin_token: Optional[str] = Field(
        default=None, description="Bearer token for export endpoints (disabled if unset)"
    )

    # ==========================================================================
    # Server Configuration
    # ==========================================================================

    host: str = Field(default="127.0.0.1", description="Server host address")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")


# ============================================================================
# Interview Configuration (from YAML)
# ============================================================================


class ElaborationThresholds(BaseModel):
    """exploration -> elaboration."""

    substantive_responses: int = Field(default=5, ge=0)
    min_turns: int = Field(default=12, ge=0)
    minimal_responses: int = Field(default=8, ge=0)
    minimal_min_turns: int = Field(default=15, ge=0)


class RecapThresholds(BaseModel):
    """elaboration -> recap."""

    exhaustion_signals: int = Field(default=8, ge=0)
    minimal_responses: int = Field(default=12, ge=0)
    min_turns: int = Field(default=25, ge=0)
    substantive_responses: int = Field(default=5, ge=0)


class TerminationThresholds(BaseModel):
    """recap -> terminated."""

    exhaustion_signals: int = Field(default=10, ge=0)
    minimal_responses: int = Field(default=15, ge=0)
    topic_turns: int = Field(default=12, ge=0)
    topic_exhaustion_signals: int = Field(default=3, ge=0)


class StageThresholds(BaseModel):
    """All stage transition thresholds.

    Deliberately high: earlier study runs collapsed after a handful of bare
    "no" answers.
    """

    elaboration: ElaborationThresholds = Field(default_factory=ElaborationThresholds)
    recap: RecapThresholds = Field(default_factory=RecapThresholds)
    termination: TerminationThresholds = Field(default_factory=TerminationThresholds)


class InterviewConfig(BaseModel):
    """
    Complete interview configuration loaded from interview_config.yaml.

    Studies retune these without code changes; the defaults are the contract.
    """

    thresholds: StageThresholds = Field(default_factory=StageThresholds)
    end_phrases: List[str] = Field(
        default_factory=lambda: ["end the chat"],
        description="In-band phrases treated as an explicit end request",
    )
    max_message_length: int = Field(default=5000, ge=1, le=50000)


def load_interview_config(config_path: Optional[Path] = None) -> InterviewConfig:
    """
    Load interview configuration from YAML file.

    Args:
        config_path: Path to interview_config.yaml. If None, looks in the
            project config/ directory, then the working directory.

    Returns:
        InterviewConfig with validated settings (defaults if no file found)

    Raises:
        pydantic.ValidationError: If the file contents fail validation
    """
    if config_path is None:
        project_config = (
            Path(__file__).resolve().parent.parent.parent
            / "config"
            / "interview_config.yaml"
        )
        cwd_config = Path.cwd() / "config" / "interview_config.yaml"
        if project_config.exists():
            config_path = project_config
        elif cwd_config.exists():
            config_path = cwd_config
        else:
            return InterviewConfig()

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        return InterviewConfig()

    with open(config_path, encoding="utf-8") as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        return InterviewConfig()

    return InterviewConfig(**config_data)


# Global settings instance
settings = Settings()

# Global interview config instance
interview_config = load_interview_config()
