"""Configuration loading and management for Kotlin Insight.

Configuration sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.kotlin-insight.toml)
    3. Project config (./kotlin-insight.toml)
    4. Explicit config file
    5. Environment variables (KOTLIN_INSIGHT_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(verbose=True, workers=2)
    >>> config.verbosity
    'verbose'
    >>> config.thresholds.max_function_lines
    50
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError
from .models import Layer

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

Verbosity = Literal["quiet", "normal", "verbose"]
ParserMode = Literal["auto", "tree-sitter", "structural"]

ENV_PREFIX = "KOTLIN_INSIGHT_"
PARSER_MODES = ("auto", "tree-sitter", "structural")
REPORT_FORMATS = ("markdown", "json", "rich")


@dataclass(frozen=True)
class ThresholdConfig:
    """Analyzer thresholds.

    A declaration is flagged when its measured value is strictly greater
    than the threshold.

    Attributes:
        max_function_lines: Non-blank lines allowed in a function body
        max_class_lines: Non-blank lines allowed in a class body
        max_complexity: Cyclomatic complexity allowed per function
        max_nesting_depth: Nested control-flow depth allowed per function
        max_parameters: Value parameters allowed per function
        doc_complexity_threshold: Complexity above which a function needs inline comments
        min_secret_length: Minimum length of a quoted value considered a password
        generic_secret_length: Minimum length for the generic secret/token/key rule
        snippet_max_lines: Lines kept in a finding's code snippet
    """

    max_function_lines: int = 50
    max_class_lines: int = 300
    max_complexity: int = 15
    max_nesting_depth: int = 4
    max_parameters: int = 5

    doc_complexity_threshold: int = 10

    min_secret_length: int = 8
    generic_secret_length: int = 32

    snippet_max_lines: int = 10

    def __post_init__(self) -> None:
        """Validate threshold configuration."""
        for field_name in self.__dataclass_fields__:
            value = getattr(self, field_name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{field_name} must be an integer")
            if value < 1:
                raise ValueError(f"{field_name} must be at least 1")


DEFAULT_THRESHOLDS = ThresholdConfig()

DEFAULT_LAYER_RULES: tuple[tuple[str, str], ...] = (
    ("/data/", Layer.DATA.value),
    ("/domain/", Layer.DOMAIN.value),
    ("/ui/", Layer.PRESENTATION.value),
    ("/presentation/", Layer.PRESENTATION.value),
    ("/di/", Layer.DI.value),
    ("/test/", Layer.TEST.value),
    ("/androidTest/", Layer.TEST.value),
)


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for one analysis run.

    Attributes:
        Execution:
            workers: Parallel file workers (None = CPU count, capped at 8)
            parser: "auto" (tree-sitter, structural on syntax errors),
                "tree-sitter" or "structural"
            analyzers: Allowlist of analyzer ids (None = all registered)

        File discovery:
            extensions: Source extensions to analyze
            exclude_patterns: Glob patterns skipped during discovery
            layer_rules: Ordered (path substring, layer) pairs, first match wins
            header_lines: Lines read per file to find the package declaration
            max_file_size_mb: Larger files are skipped with a diagnostic
            allow_hidden_files: Descend into dot-directories
            follow_symlinks: Follow symbolic links while walking

        Output:
            output_dir: Directory for the report, baseline and history
            baseline_file: Baseline filename inside output_dir
            report_format: markdown, json or rich
            enable_history: Keep timestamped snapshots next to the baseline
            verbosity: Logging verbosity level

        thresholds: Analyzer thresholds (see ThresholdConfig)
    """

    workers: Optional[int] = None
    parser: ParserMode = "auto"
    analyzers: Optional[list[str]] = None

    extensions: list[str] = field(default_factory=lambda: [".kt", ".kts"])
    exclude_patterns: list[str] = field(
        default_factory=lambda: [
            "**/build/**",
            "**/.gradle/**",
            "**/generated/**",
            "**/.idea/**",
            "**/.git/**",
            "**/bin/**",
            "**/out/**",
        ]
    )
    layer_rules: list[tuple[str, str]] = field(default_factory=lambda: list(DEFAULT_LAYER_RULES))
    header_lines: int = 50
    max_file_size_mb: float = 5.0
    allow_hidden_files: bool = False
    follow_symlinks: bool = False

    output_dir: str = "build/reports/analysis"
    baseline_file: str = "baseline.json"
    report_format: str = "markdown"
    enable_history: bool = False
    verbosity: Verbosity = "normal"

    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.workers is not None and self.workers < 1:
            raise ValueError("workers must be at least 1")
        if self.parser not in PARSER_MODES:
            raise ValueError(f"parser must be one of {', '.join(PARSER_MODES)}")
        if self.report_format not in REPORT_FORMATS:
            raise ValueError(f"report_format must be one of {', '.join(REPORT_FORMATS)}")
        if self.header_lines < 1:
            raise ValueError("header_lines must be at least 1")
        if self.max_file_size_mb <= 0:
            raise ValueError("max_file_size_mb must be positive")
        if not self.extensions:
            raise ValueError("extensions must not be empty")

        layers = {layer.value for layer in Layer}
        for rule in self.layer_rules:
            if len(rule) != 2 or rule[1] not in layers:
                raise ValueError(f"invalid layer rule {rule!r}")

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)

    @property
    def baseline_path(self) -> Path:
        return Path(self.output_dir) / self.baseline_file

    @property
    def history_dir(self) -> Path:
        return Path(self.output_dir) / "history"


def load_config(config_file: Optional[Path] = None, **overrides) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). ``None``
            values are ignored so unset CLI options keep file values.

    Returns:
        Validated AnalysisConfig instance

    Raises:
        ConfigurationError: If a config file is invalid or missing, or a
            value fails validation
    """
    merged: dict = {}

    global_config = Path.home() / ".kotlin-insight.toml"
    if global_config.exists():
        merged.update(_read_config_file(global_config, "global config"))

    project_config = Path.cwd() / "kotlin-insight.toml"
    if project_config.exists():
        merged.update(_read_config_file(project_config, "project config"))

    if config_file is not None:
        if not Path(config_file).exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        merged.update(_read_config_file(Path(config_file), "config file"))

    merged.update(_load_env_vars())

    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides.pop("verbose", False):
        overrides["verbosity"] = "verbose"
    if overrides.pop("quiet", False):
        overrides["verbosity"] = "quiet"
    merged.update(overrides)

    thresholds = merged.pop("thresholds", None)
    if isinstance(thresholds, dict):
        try:
            merged["thresholds"] = ThresholdConfig(**thresholds)
        except (TypeError, ValueError) as e:
            raise InvalidConfigError("thresholds", thresholds, str(e))
    elif isinstance(thresholds, ThresholdConfig):
        merged["thresholds"] = thresholds

    if "layer_rules" in merged:
        merged["layer_rules"] = [tuple(rule) for rule in merged["layer_rules"]]

    try:
        return AnalysisConfig(**merged)
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _read_config_file(path: Path, label: str) -> dict:
    try:
        data = _load_toml_file(path)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid {label} '{path}': {e}")
    # Allow settings under a [kotlin-insight] table or at top level
    return dict(data.get("kotlin-insight", data))


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from KOTLIN_INSIGHT_* environment variables.

    Scalar fields only, e.g. KOTLIN_INSIGHT_WORKERS=4,
    KOTLIN_INSIGHT_PARSER=structural, KOTLIN_INSIGHT_ENABLE_HISTORY=true.
    KOTLIN_INSIGHT_ANALYZERS takes a comma-separated id list.
    """
    type_hints = get_type_hints(AnalysisConfig)

    result: dict[str, Any] = {}

    for field_name in AnalysisConfig.__dataclass_fields__:
        env_key = f"{ENV_PREFIX}{field_name.upper()}"
        env_value = os.environ.get(env_key)

        if env_value is None:
            continue

        if field_name == "analyzers":
            result[field_name] = parse_id_list(env_value)
            continue

        type_hint = type_hints.get(field_name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint)
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))
        if parsed is not None:
            result[field_name] = parsed

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse an environment variable string to the field's type.

    Returns None for types that cannot come from the environment.

    Raises:
        ValueError: If value can't be parsed to the expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin is list or type_hint is list:
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def parse_id_list(raw: Optional[str]) -> Optional[list[str]]:
    """Split a comma-separated analyzer allowlist; empty input means "all"."""
    if raw is None:
        return None
    ids = [part.strip() for part in raw.split(",") if part.strip()]
    return ids or None


def _load_toml_file(path: Path) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)
