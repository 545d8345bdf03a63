# docredact/service/config.py

"""Application configuration using Pydantic Settings.

Manages environment variables, defaults, and validation rules. Lexical rule
tables live in core/patterns.yaml; numeric knobs live here.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application settings.

    Loads values from environment variables (prefix 'DOCREDACT_') or .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCREDACT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Recognizer
    use_ml: bool = Field(
        default=True, description="Run the NER recognizer alongside patterns."
    )

    spacy_model: str = Field(
        default="en_core_web_lg", description="SpaCy model name used by the recognizer."
    )

    auto_download_model: bool = Field(
        default=False,
        description="Download the spaCy model on first use when it is not installed.",
    )

    worker_mode: str = Field(
        default="process",
        description="Where the recognizer runs: 'process' or 'thread'.",
    )

    chunk_size: int = Field(
        default=400,
        ge=50,
        description="Maximum characters per recognizer chunk.",
    )

    detection_timeout: float = Field(
        default=30.0, gt=0.0, description="Seconds before a detect call is abandoned."
    )

    init_timeout: float = Field(
        default=300.0, gt=0.0, description="Seconds allowed for model loading."
    )

    # Confidence thresholds
    min_entity_confidence: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Minimum recognizer score for any span.",
    )

    org_min_confidence: float = Field(
        default=0.75,
        ge=0.0,
        le=1.0,
        description="Minimum recognizer score for organization spans.",
    )

    org_trusted_confidence: float = Field(
        default=0.9,
        ge=0.0,
        le=1.0,
        description="Multi-word organizations above this score skip the floor.",
    )

    # Context heuristics
    context_window: int = Field(
        default=200, ge=0, description="Characters scanned around an entity for contacts."
    )

    label_window: int = Field(
        default=50, ge=0, description="Characters before a name checked for labels."
    )

    personal_section_span: int = Field(
        default=5, ge=0, description="Lines after a heading treated as personal."
    )

    header_ratio: float = Field(
        default=0.1,
        gt=0.0,
        le=1.0,
        description="Fraction of lines that may form the document header.",
    )

    log_level: str = Field(default="INFO", description="Root logging level.")

    @field_validator("spacy_model")
    @classmethod
    def validate_model_name(cls, v: str) -> str:
        """Ensure model name is not empty."""
        if not v.strip():
            raise ValueError("SpaCy model name cannot be empty")
        return v

    @field_validator("worker_mode")
    @classmethod
    def validate_worker_mode(cls, v: str) -> str:
        mode = v.strip().lower()
        if mode not in ("process", "thread"):
            raise ValueError("worker_mode must be 'process' or 'thread'")
        return mode


# Singleton settings instance
settings = Settings()
