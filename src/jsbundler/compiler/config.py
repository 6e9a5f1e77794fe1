"""
Build Configuration

Typed configuration for one build. Unknown keys are rejected so a typo in a
config file fails loudly instead of being silently ignored.

Files are YAML (`.yml`/`.yaml`) or JSON. Relative paths are taken against
`root_dir`, which defaults to the directory holding the config file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..shared.errors import ConfigError
from ..utils.config import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_DROP_CONSOLE_METHODS,
    DEFAULT_MAX_CONSOLE_CALLS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MODULE_EXTENSION,
)
from ..utils.io_utils import normalize_path, read_source_file

logger = logging.getLogger(__name__)

SourceMapMode = Literal["off", "external", "inline"]
SyntaxCheckMode = Literal["auto", "node", "builtin", "off"]


class MetadataConfig(BaseModel):
    """Fields of the `// ==UserScript==` header."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    namespace: Optional[str] = None
    version: Optional[str] = None
    description: Optional[str] = None
    author: Optional[str] = None
    match: List[str] = Field(default_factory=list)
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    grant: List[str] = Field(default_factory=list)
    run_at: Optional[str] = None
    homepage: Optional[str] = None
    support_url: Optional[str] = None
    update_url: Optional[str] = None
    download_url: Optional[str] = None
    icon: Optional[str] = None
    require: List[str] = Field(default_factory=list)
    resource: List[str] = Field(default_factory=list)
    noframes: bool = False
    custom: Dict[str, Union[str, List[str]]] = Field(default_factory=dict)

    @field_validator("match", "include", "exclude", "grant", "require", "resource", mode="before")
    @classmethod
    def _single_value_as_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class BuildOptions(BaseModel):
    model_config = ConfigDict(extra="forbid")

    minify: bool = False
    sourcemap: SourceMapMode = "off"
    preserve_console: bool = False
    drop_console_methods: List[str] = Field(
        default_factory=lambda: list(DEFAULT_DROP_CONSOLE_METHODS)
    )
    generate_report: bool = False
    syntax_check: SyntaxCheckMode = "auto"
    max_console_calls: int = Field(default=DEFAULT_MAX_CONSOLE_CALLS, ge=0)
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1)

    @field_validator("sourcemap", mode="before")
    @classmethod
    def _boolean_sourcemap(cls, value: Any) -> Any:
        # `sourcemap: true` in older configs means a sidecar file
        if value is True:
            return "external"
        if value is False or value is None:
            return "off"
        return value


class WatchConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    debounce_ms: int = Field(default=DEFAULT_DEBOUNCE_MS, ge=0)


class DevelopmentConfig(BaseModel):
    """Partial overrides applied by `--dev`."""
    model_config = ConfigDict(extra="forbid")

    output: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BundleConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    entry: str
    output: str
    source_root: str = "src"
    root_dir: Optional[str] = None
    aliases: Dict[str, str] = Field(default_factory=dict)
    extensions: List[str] = Field(default_factory=lambda: [DEFAULT_MODULE_EXTENSION])
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    options: BuildOptions = Field(default_factory=BuildOptions)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    development: Optional[DevelopmentConfig] = None

    @field_validator("extensions")
    @classmethod
    def _dotted_extensions(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("at least one extension is required")
        for extension in value:
            if not extension.startswith("."):
                raise ValueError(f"extension '{extension}' must start with '.'")
        return value

    @property
    def project_root(self) -> str:
        return normalize_path(self.root_dir or os.getcwd())

    def resolve_path(self, path: str) -> str:
        if os.path.isabs(path):
            return normalize_path(path)
        return normalize_path(os.path.join(self.project_root, path))

    @property
    def entry_path(self) -> str:
        return self.resolve_path(self.entry)

    @property
    def output_path(self) -> str:
        return self.resolve_path(self.output)

    @property
    def source_root_path(self) -> str:
        return self.resolve_path(self.source_root)

    def with_development(self) -> "BundleConfig":
        """Copy with the `development` overrides merged in."""
        if self.development is None:
            return self
        dev = self.development
        data = self.model_dump()
        if dev.output:
            data["output"] = dev.output
        data["options"].update(dev.options)
        data["metadata"].update(dev.metadata)
        return _validate(data)

    def with_overrides(
        self,
        output: Optional[str] = None,
        minify: Optional[bool] = None,
        sourcemap: Optional[str] = None,
        generate_report: Optional[bool] = None,
    ) -> "BundleConfig":
        """Copy with command-line overrides applied; None leaves a value alone."""
        data = self.model_dump()
        if output is not None:
            data["output"] = output
        if minify is not None:
            data["options"]["minify"] = minify
        if sourcemap is not None:
            data["options"]["sourcemap"] = sourcemap
        if generate_report is not None:
            data["options"]["generate_report"] = generate_report
        return _validate(data)

    def summary(self) -> Dict[str, Any]:
        return {
            "entry": self.entry,
            "output": self.output,
            "source_root": self.source_root,
            "minify": self.options.minify,
            "sourcemap": self.options.sourcemap,
            "syntax_check": self.options.syntax_check,
        }


def _validate(data: Dict[str, Any], origin: str = "configuration") -> BundleConfig:
    try:
        return BundleConfig.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"invalid {origin}: {problems}") from e


def load_config(path: Union[Path, str], development: bool = False) -> BundleConfig:
    """
    Load a YAML or JSON build configuration.

    Args:
        path: Config file
        development: Apply the `development` section's overrides

    Raises:
        ConfigError: unreadable file, malformed document or invalid fields
    """
    config_path = Path(path)
    try:
        text = read_source_file(config_path)
    except OSError as e:
        raise ConfigError(f"cannot read config file {config_path}: {e.strerror or e}") from e

    try:
        if config_path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"config file {config_path} must contain a mapping at the top level")

    config_dir = normalize_path(config_path.parent)
    root_dir = data.get("root_dir")
    if root_dir is None:
        data["root_dir"] = config_dir
    elif isinstance(root_dir, str) and not os.path.isabs(root_dir):
        data["root_dir"] = normalize_path(os.path.join(config_dir, root_dir))

    config = _validate(data, origin=f"config file {config_path}")
    if development:
        config = config.with_development()
        logger.debug("Applied development overrides")
    logger.debug(f"Loaded config {config_path}: {config.summary()}")
    return config
