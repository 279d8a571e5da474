"""Build configuration: defaults, optional YAML file, environment overrides."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from iconfont_errors import InputError

DEFAULT_INPUT_DIR = "icon"
DEFAULT_OUTPUT_DIR = "build/iconfont"
DEFAULT_FONT_NAME = "iconfont"
DEFAULT_CONFIG_FILE = "iconfont.yaml"

SUPPORTED_FORMATS = ("ttf", "woff", "woff2")

# YAML key -> BuildConfig field
_YAML_KEYS = {
    "inputDir": "input_dir",
    "outputDir": "output_dir",
    "fontName": "font_name",
    "inPlace": "in_place",
    "formats": "formats",
}

# environment variable -> BuildConfig field
_ENV_KEYS = {
    "ICONFONTIFY_INPUT_DIR": "input_dir",
    "ICONFONTIFY_OUTPUT_DIR": "output_dir",
    "ICONFONTIFY_FONT_NAME": "font_name",
}


@dataclass(frozen=True)
class BuildConfig:
    input_dir: str = DEFAULT_INPUT_DIR
    output_dir: str = DEFAULT_OUTPUT_DIR
    font_name: str = DEFAULT_FONT_NAME
    cwd: Path = field(default_factory=Path.cwd)
    in_place: bool = False
    formats: tuple[str, ...] = ("ttf",)

    @property
    def input_path(self) -> Path:
        return Path(self.cwd) / self.input_dir

    @property
    def output_path(self) -> Path:
        return Path(self.cwd) / self.output_dir

    @property
    def input_pattern(self) -> str:
        """Glob of the icons the font is built from, with forward slashes."""
        return (self.input_path / "*.svg").as_posix()


def _validate(config: BuildConfig) -> BuildConfig:
    if not config.font_name.strip():
        raise InputError("font name must not be empty", "set fontName in iconfont.yaml or ICONFONTIFY_FONT_NAME")
    if not config.formats:
        raise InputError("at least one output format is required", f"choose from {', '.join(SUPPORTED_FORMATS)}")
    unknown = [f for f in config.formats if f not in SUPPORTED_FORMATS]
    if unknown:
        raise InputError(
            f"unsupported font format(s): {', '.join(unknown)}",
            f"choose from {', '.join(SUPPORTED_FORMATS)}",
        )
    return config


def load_yaml_config(path: Path) -> dict:
    """Read a YAML config file and translate its keys to BuildConfig fields."""
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise InputError(f"{path}: expected a mapping at the top level")

    unknown = sorted(set(data) - set(_YAML_KEYS))
    if unknown:
        raise InputError(
            f"{path}: unknown option(s): {', '.join(unknown)}",
            f"recognized options are {', '.join(_YAML_KEYS)}",
        )

    values = {}
    for key, value in data.items():
        name = _YAML_KEYS[key]
        if name == "formats":
            if isinstance(value, str):
                value = [value]
            value = tuple(str(v).lower() for v in value)
        elif name == "in_place":
            value = bool(value)
        else:
            value = str(value)
        values[name] = value
    return values


def load_config(environ=None) -> BuildConfig:
    """
    Resolve the build configuration for one invocation.

    Precedence, lowest first: defaults, YAML file (ICONFONTIFY_CONFIG or
    iconfont.yaml in the working directory), environment variables.
    """
    if environ is None:
        environ = os.environ

    cwd = Path(environ.get("ICONFONTIFY_CWD") or Path.cwd())
    config = BuildConfig(cwd=cwd)

    explicit = environ.get("ICONFONTIFY_CONFIG")
    config_path = Path(explicit) if explicit else cwd / DEFAULT_CONFIG_FILE
    if not config_path.is_absolute():
        config_path = cwd / config_path
    if config_path.exists():
        config = replace(config, **load_yaml_config(config_path))
    elif explicit:
        raise InputError(f"config file not found: {config_path}")

    overrides = {name: environ[var] for var, name in _ENV_KEYS.items() if environ.get(var)}
    if overrides:
        config = replace(config, **overrides)

    return _validate(config)
