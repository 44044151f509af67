"""
Configuration loader for the phrase engine.
Loads settings from config.yaml and provides defaults.
Supports environment variable overrides.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ENV_CONFIG_PATH = "WALKBASS_CONFIG"
ENV_PREFIX = "WALKBASS_"

# Default configuration - matches config.yaml structure
DEFAULT_CONFIG: Dict[str, Any] = {
    'logging': {
        'level': 'INFO',
        'format': '%(asctime)s %(levelname)-7s %(name)s: %(message)s',
    },
    'extraction': {
        'disallow_non_root_start': False,
        'disallow_non_chord_tone_end': False,
    },
    'velocity': {
        'target_mean': 80.0,
        'target_std': 8.0,
        'strength': 0.5,
    },
    'consistency': {
        'short_note_limit': 0.06,
        'base_chords': ['C', 'C+', 'Cm', 'Csus'],
    },
    'corpus': {
        'WalkingBassMidiDB': {'prefix': '', 'tag': 'walking'},
        'WalkingBass2feelAMidiDB': {'prefix': '2FA', 'tag': '2feel-a'},
        'WalkingBass2feelBMidiDB': {'prefix': '2FB', 'tag': '2feel-b'},
    },
    'progress': {
        'show_progress': True,
    },
}


# =============================================================================
# CONFIG SECTIONS
# =============================================================================

class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = DEFAULT_CONFIG['logging']['format']


class ExtractionConfig(BaseModel):
    disallow_non_root_start: bool = False
    disallow_non_chord_tone_end: bool = False


class VelocityConfig(BaseModel):
    """Target distribution of the phrase velocities."""
    target_mean: float = Field(default=80.0, ge=1, le=127)
    target_std: float = Field(default=8.0, ge=0)
    strength: float = Field(default=0.5, ge=0, le=1)


class ConsistencyConfig(BaseModel):
    short_note_limit: float = Field(default=0.06, gt=0)
    base_chords: List[str] = Field(default_factory=lambda: list(DEFAULT_CONFIG['consistency']['base_chords']))


class CorpusEntry(BaseModel):
    """How to load the sessions of one recording."""
    prefix: str = ""
    tag: str = ""


class ProgressConfig(BaseModel):
    show_progress: bool = True


class EngineConfig(BaseModel):
    """Validated configuration of the engine."""
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    velocity: VelocityConfig = Field(default_factory=VelocityConfig)
    consistency: ConsistencyConfig = Field(default_factory=ConsistencyConfig)
    corpus: Dict[str, CorpusEntry] = Field(default_factory=dict)
    progress: ProgressConfig = Field(default_factory=ProgressConfig)
    config_path: Optional[Path] = None


# =============================================================================
# LOADING
# =============================================================================

_config: Optional[EngineConfig] = None


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Deep merge two dictionaries, override takes precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _cast_like(value: str, reference: Any) -> Any:
    if isinstance(reference, bool):
        return value.lower() in ('true', '1', 'yes')
    if isinstance(reference, list):
        return [v.strip() for v in value.split(',') if v.strip()]
    return type(reference)(value)


def apply_env_overrides(config_data: Dict, environ: Optional[Dict[str, str]] = None) -> Dict:
    """
    Apply environment variable overrides.

    Format: WALKBASS_<SECTION>__<KEY>=value
    Example: WALKBASS_VELOCITY__STRENGTH=0.3
    """
    environ = os.environ if environ is None else environ
    for env_key, env_value in environ.items():
        if not env_key.startswith(ENV_PREFIX) or '__' not in env_key:
            continue
        section, key = env_key[len(ENV_PREFIX):].lower().split('__', 1)
        if section in config_data and isinstance(config_data[section], dict) and key in config_data[section]:
            try:
                config_data[section][key] = _cast_like(env_value, config_data[section][key])
            except (ValueError, TypeError):
                logger.warning("Ignoring invalid value for %s: %r", env_key, env_value)
    return config_data


def load_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Load configuration from YAML file.

    Search order:
    1. Explicit path if provided
    2. WALKBASS_CONFIG environment variable
    3. config.yaml at the project root
    4. Default config

    Args:
        config_path: Optional explicit path to config file

    Returns:
        EngineConfig instance
    """
    global _config

    if config_path:
        cfg_path = Path(config_path)
    elif os.environ.get(ENV_CONFIG_PATH):
        cfg_path = Path(os.environ[ENV_CONFIG_PATH])
    else:
        cfg_path = Path(__file__).parent.parent / 'config.yaml'

    config_data = copy.deepcopy(DEFAULT_CONFIG)

    if cfg_path.exists():
        try:
            with open(cfg_path, 'r', encoding='utf-8') as f:
                user_config = yaml.safe_load(f) or {}
            config_data = copy.deepcopy(deep_merge(DEFAULT_CONFIG, user_config))
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Could not load config from %s: %s. Using default configuration.", cfg_path, e)

    config_data = apply_env_overrides(config_data)

    _config = EngineConfig(**config_data, config_path=cfg_path if cfg_path.exists() else None)
    return _config


def get_config() -> EngineConfig:
    """Get the current config instance, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config(config_path: Optional[str] = None) -> EngineConfig:
    """Force reload the configuration."""
    global _config
    _config = None
    return load_config(config_path)


def setup_logging(config: Optional[EngineConfig] = None) -> None:
    """Configure the root logger from the logging section."""
    config = config or get_config()
    logging.basicConfig(level=config.logging.level.upper(), format=config.logging.format)
