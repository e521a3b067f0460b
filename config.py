"""Configuration management for the Stancecheck analysis pipeline.

This module provides centralized configuration for all pipeline components.
All settings are loaded from environment variables with sensible defaults.

Environment Variables:
    Backend (optional - without a key the pipeline runs in fallback mode):
        OPENROUTER_API_KEY: API key for the OpenRouter text-generation service
        OPENROUTER_BASE_URL: OpenAI-compatible endpoint base URL

    Models (OpenRouter model ids):
        SUMMARIZER_MODEL: Free-tier model for statement summarization
        SUMMARIZER_MODEL_PREMIUM: Paid model used while budget allows
        CONTRADICTION_MODEL: Free-tier model for contradiction detection
        CONTRADICTION_MODEL_PREMIUM: Paid model used while budget allows

    Budget:
        BUDGET_MAX_DOLLARS: Spend cap for the ledger window
        BUDGET_WARNING_PERCENT: Percentage at which status reports a warning
        LEDGER_PATH: JSON file holding the usage ledger
        LEDGER_WINDOW_HOURS: Entries older than this are dropped on load

    Cache:
        CACHE_PATH: JSON file holding cached reports
        CACHE_TTL_HOURS: Report lifetime (default: 168 = 7 days)
        CACHE_MAX_ENTRIES: Oldest entries are evicted beyond this count

    Pipeline Behavior:
        MAX_RELEVANT_STATEMENTS: Top-K statements kept by relevance
        MAX_CANDIDATE_PAIRS: Candidate pairs kept for heuristic detection
        MIN_PAIR_GAP_HOURS: Minimum time between two statements of a pair
        BATCH_TOKEN_LIMIT: Estimated token budget per summarization batch
        BATCH_DELAY_SECONDS: Delay between backend calls
        MAX_CONCURRENT_BATCHES: Summarization worker pool size
        BACKEND_TIMEOUT_SECONDS: Deadline for a single backend call
        MAX_OUTPUT_TOKENS: Completion token limit per call
        MAX_FINDINGS: Maximum findings kept in a report

    Source:
        SOURCE_MAX_ITEMS: Maximum comments/posts fetched per listing
        SOURCE_MAX_AGE_DAYS: Skip items older than this
        MAX_RETRIES: HTTP retry attempts
        RETRY_BASE_DELAY: Base delay for exponential backoff

    Optional Features:
        ENABLE_LOGFIRE: Enable Logfire/OpenTelemetry tracing

    Logging:
        LOG_LEVEL: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_BACKUP_COUNT: Number of rotated log files to keep
        LOG_MAX_BYTES: Max log file size in bytes (0 = time-based rotation)
        LOG_FORMAT: Log format ('text' or 'json' for structured logging)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default.

    Args:
        key: Environment variable name
        default: Value to return if not set

    Returns:
        Environment variable value or default
    """
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

# Model tiers: free-tier models are used once the remaining budget drops
# below the stage's premium threshold.
FREE_SUMMARIZER_MODEL = "mistralai/mistral-7b-instruct:free"
PREMIUM_SUMMARIZER_MODEL = "mistralai/mixtral-8x7b-instruct"
FREE_CONTRADICTION_MODEL = "mistralai/mistral-7b-instruct:free"
PREMIUM_CONTRADICTION_MODEL = "anthropic/claude-3.5-sonnet"


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    All settings can be overridden via environment variables. Use Config.load()
    to create an instance with values from the environment.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Backend ===
    openrouter_api_key: str = ""  # OPENROUTER_API_KEY - empty = fallback mode
    openrouter_base_url: str = DEFAULT_BASE_URL  # OPENROUTER_BASE_URL

    # === AI Models ===
    summarizer_model: str = FREE_SUMMARIZER_MODEL
    summarizer_model_premium: str = PREMIUM_SUMMARIZER_MODEL
    contradiction_model: str = FREE_CONTRADICTION_MODEL
    contradiction_model_premium: str = PREMIUM_CONTRADICTION_MODEL

    # === Budget ===
    budget_max_dollars: float = 5.0  # BUDGET_MAX_DOLLARS - spend cap
    budget_warning_percent: float = 80.0  # BUDGET_WARNING_PERCENT
    ledger_path: Path = field(default_factory=lambda: Path("data/budget.json"))  # LEDGER_PATH
    ledger_window_hours: int = 24  # LEDGER_WINDOW_HOURS - rolling window applied on load

    # === Cache ===
    cache_path: Path = field(default_factory=lambda: Path("data/cache.json"))  # CACHE_PATH
    cache_ttl_hours: int = 168  # CACHE_TTL_HOURS - 7 days
    cache_max_entries: int = 100  # CACHE_MAX_ENTRIES

    # === Pipeline Behavior ===
    max_relevant_statements: int = 80  # MAX_RELEVANT_STATEMENTS - top-K by relevance
    max_candidate_pairs: int = 25  # MAX_CANDIDATE_PAIRS
    min_pair_gap_hours: float = 24.0  # MIN_PAIR_GAP_HOURS
    batch_token_limit: int = 3000  # BATCH_TOKEN_LIMIT
    batch_delay_seconds: float = 2.0  # BATCH_DELAY_SECONDS - pause between calls
    max_concurrent_batches: int = 1  # MAX_CONCURRENT_BATCHES
    backend_timeout_seconds: float = 60.0  # BACKEND_TIMEOUT_SECONDS
    max_output_tokens: int = 1500  # MAX_OUTPUT_TOKENS
    max_findings: int = 12  # MAX_FINDINGS

    # === Source ===
    source_max_items: int = 500  # SOURCE_MAX_ITEMS - per listing
    source_max_age_days: int = 1825  # SOURCE_MAX_AGE_DAYS - 5 years
    source_timeout_seconds: int = 15  # SOURCE_TIMEOUT_SECONDS

    # === Retry Behavior ===
    max_retries: int = 3  # MAX_RETRIES - HTTP retry attempts
    retry_base_delay: float = 1.0  # RETRY_BASE_DELAY - Base delay for exponential backoff

    # === Output Directories ===
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL - DEBUG, INFO, WARNING, ERROR
    log_backup_count: int = 30  # LOG_BACKUP_COUNT - Number of rotated logs to keep
    log_max_bytes: int = 0  # LOG_MAX_BYTES - Max file size (0 = time-based rotation)
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json' for structured logging

    # === Optional: Observability ===
    # Requires: pip install logfire
    enable_logfire: bool = False  # ENABLE_LOGFIRE - Enable distributed tracing
    logfire_token: str = ""  # LOGFIRE_TOKEN - Authentication token

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls(
            openrouter_api_key=_env("OPENROUTER_API_KEY"),
            openrouter_base_url=_env("OPENROUTER_BASE_URL", DEFAULT_BASE_URL),
            summarizer_model=_env("SUMMARIZER_MODEL", FREE_SUMMARIZER_MODEL),
            summarizer_model_premium=_env("SUMMARIZER_MODEL_PREMIUM", PREMIUM_SUMMARIZER_MODEL),
            contradiction_model=_env("CONTRADICTION_MODEL", FREE_CONTRADICTION_MODEL),
            contradiction_model_premium=_env("CONTRADICTION_MODEL_PREMIUM", PREMIUM_CONTRADICTION_MODEL),
            budget_max_dollars=_env_float("BUDGET_MAX_DOLLARS", 5.0),
            budget_warning_percent=_env_float("BUDGET_WARNING_PERCENT", 80.0),
            ledger_path=Path(_env("LEDGER_PATH", "data/budget.json")),
            ledger_window_hours=_env_int("LEDGER_WINDOW_HOURS", 24),
            cache_path=Path(_env("CACHE_PATH", "data/cache.json")),
            cache_ttl_hours=_env_int("CACHE_TTL_HOURS", 168),
            cache_max_entries=_env_int("CACHE_MAX_ENTRIES", 100),
            max_relevant_statements=_env_int("MAX_RELEVANT_STATEMENTS", 80),
            max_candidate_pairs=_env_int("MAX_CANDIDATE_PAIRS", 25),
            min_pair_gap_hours=_env_float("MIN_PAIR_GAP_HOURS", 24.0),
            batch_token_limit=_env_int("BATCH_TOKEN_LIMIT", 3000),
            batch_delay_seconds=_env_float("BATCH_DELAY_SECONDS", 2.0),
            max_concurrent_batches=_env_int("MAX_CONCURRENT_BATCHES", 1),
            backend_timeout_seconds=_env_float("BACKEND_TIMEOUT_SECONDS", 60.0),
            max_output_tokens=_env_int("MAX_OUTPUT_TOKENS", 1500),
            max_findings=_env_int("MAX_FINDINGS", 12),
            source_max_items=_env_int("SOURCE_MAX_ITEMS", 500),
            source_max_age_days=_env_int("SOURCE_MAX_AGE_DAYS", 1825),
            source_timeout_seconds=_env_int("SOURCE_TIMEOUT_SECONDS", 15),
            max_retries=_env_int("MAX_RETRIES", 3),
            retry_base_delay=_env_float("RETRY_BASE_DELAY", 1.0),
            log_dir=Path(_env("LOG_DIR", "log")),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
        )

    @property
    def backend_configured(self) -> bool:
        """Whether a text-generation backend can be used at all."""
        return bool(self.openrouter_api_key)

    @property
    def min_pair_gap_seconds(self) -> int:
        return int(self.min_pair_gap_hours * 3600)

    def validate(self) -> str | None:
        """Validate configuration for valid values.

        A missing OPENROUTER_API_KEY is not an error: the pipeline then
        produces reports with the deterministic fallback detectors.

        Returns:
            Error message string if invalid, None if valid.
        """
        if self.budget_max_dollars < 0:
            return "BUDGET_MAX_DOLLARS must be non-negative"
        if not 0 < self.budget_warning_percent <= 100:
            return "BUDGET_WARNING_PERCENT must be between 0 and 100"
        if self.cache_ttl_hours <= 0:
            return "CACHE_TTL_HOURS must be positive"
        if self.cache_max_entries <= 0:
            return "CACHE_MAX_ENTRIES must be positive"
        if self.max_relevant_statements <= 0:
            return "MAX_RELEVANT_STATEMENTS must be positive"
        if self.max_candidate_pairs <= 0:
            return "MAX_CANDIDATE_PAIRS must be positive"
        if self.min_pair_gap_hours < 0:
            return "MIN_PAIR_GAP_HOURS must be non-negative"
        if self.batch_token_limit <= 0:
            return "BATCH_TOKEN_LIMIT must be positive"
        if self.batch_delay_seconds < 0:
            return "BATCH_DELAY_SECONDS must be non-negative"
        if self.max_concurrent_batches <= 0:
            return "MAX_CONCURRENT_BATCHES must be positive"
        if self.backend_timeout_seconds <= 0:
            return "BACKEND_TIMEOUT_SECONDS must be positive"
        if self.max_findings <= 0:
            return "MAX_FINDINGS must be positive"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
