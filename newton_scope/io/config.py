"""
Configuration file handling.

Configuration files are YAML or JSON (chosen by suffix). A file holds a
``render`` section with ``RenderConfig`` fields and an optional
``presets`` mapping of named overrides for that section.
"""

import json
import logging
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..api import RenderConfig
from ..core.functions import FunctionRegistry

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """Raised for unreadable or invalid configuration."""


DEFAULT_PRESETS: Dict[str, Dict[str, Any]] = {
    'preview': {
        '_description': 'Fast low-resolution preview',
        'size': 256,
        'max_iterations': 64,
    },
    'high_quality': {
        '_description': 'Large canvas with a high iteration bound',
        'size': 2048,
        'max_iterations': 512,
        'tile_size': 256,
    },
    'relaxed': {
        '_description': 'Under-relaxed Newton steps',
        'coeff': [0.5, 0.0],
        'max_iterations': 256,
    },
}

_RENDER_FIELDS = {f.name for f in fields(RenderConfig)}
_TUPLE_FIELDS = {'center', 'coeff', 'inside_color'}


class ConfigManager:
    """Loads, validates and writes configuration files."""

    def __init__(self):
        self.defaults = {
            'render': RenderConfig().to_dict(),
            'presets': {name: dict(values) for name, values in DEFAULT_PRESETS.items()},
        }

    def load_config(self, filepath: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
        """
        Load a configuration file merged over the defaults.

        Args:
            filepath: YAML or JSON file; None returns the defaults

        Returns:
            Configuration dictionary with ``render`` and ``presets`` sections
        """
        config = {
            'render': dict(self.defaults['render']),
            'presets': {name: dict(values) for name, values in self.defaults['presets'].items()},
        }
        if filepath is None:
            return config

        filepath = Path(filepath)
        data = self._read_file(filepath)
        if not isinstance(data, dict):
            raise ConfigError(f"{filepath}: top level must be a mapping")

        for key, value in data.items():
            if key in ('render', 'presets'):
                if not isinstance(value, dict):
                    raise ConfigError(f"{filepath}: '{key}' must be a mapping")
                config[key].update(value)
            else:
                config[key] = value

        logger.info(f"Loaded configuration: {filepath}")
        return config

    def _read_file(self, filepath: Path) -> Any:
        try:
            text = filepath.read_text(encoding='utf-8')
        except OSError as e:
            raise ConfigError(f"Cannot read {filepath}: {e}") from e

        try:
            if filepath.suffix.lower() == '.json':
                return json.loads(text)
            return yaml.safe_load(text) or {}
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot parse {filepath}: {e}") from e

    def list_presets(self, config: Dict[str, Any]) -> List[str]:
        return sorted(config.get('presets', {}))

    def apply_preset(self, config: Dict[str, Any], preset: str) -> Dict[str, Any]:
        """Return a copy of ``config`` with a preset merged into ``render``."""
        presets = config.get('presets', {})
        if preset not in presets:
            available = ', '.join(sorted(presets))
            raise ConfigError(f"Unknown preset '{preset}'. Available: {available}")

        merged = dict(config)
        merged['render'] = dict(config['render'])
        merged['render'].update({k: v for k, v in presets[preset].items()
                                 if not k.startswith('_')})
        return merged

    def create_render_config(self, config: Dict[str, Any]) -> RenderConfig:
        """Build and validate a RenderConfig from the ``render`` section."""
        render = config.get('render', {})
        unknown = sorted(set(render) - _RENDER_FIELDS)
        if unknown:
            raise ConfigError(f"Unknown render option(s): {', '.join(unknown)}")

        kwargs = {}
        for key, value in render.items():
            if key in _TUPLE_FIELDS and value is not None:
                value = tuple(value)
            kwargs[key] = value

        render_config = RenderConfig(**kwargs)
        try:
            render_config.validate()
        except ValueError as e:
            raise ConfigError(str(e)) from e
        return render_config

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Check a configuration dictionary.

        Returns:
            List of error messages, empty when the configuration is valid
        """
        errors = []

        try:
            render_config = self.create_render_config(config)
        except (ConfigError, TypeError) as e:
            errors.append(str(e))
        else:
            try:
                FunctionRegistry.create(render_config.formula)
            except ValueError as e:
                errors.append(str(e))

        for name in self.list_presets(config):
            try:
                self.create_render_config(self.apply_preset(config, name))
            except (ConfigError, TypeError) as e:
                errors.append(f"preset '{name}': {e}")

        return errors

    def export_config_template(self, filepath: Union[str, Path]) -> Path:
        """Write the default configuration as YAML or JSON."""
        filepath = Path(filepath)
        template = {
            'render': {k: list(v) if isinstance(v, tuple) else v
                       for k, v in self.defaults['render'].items()},
            'presets': self.defaults['presets'],
        }

        if filepath.suffix.lower() == '.json':
            filepath.write_text(json.dumps(template, indent=2), encoding='utf-8')
        else:
            filepath.write_text(yaml.safe_dump(template, sort_keys=False), encoding='utf-8')

        logger.info(f"Wrote configuration template: {filepath}")
        return filepath


def load_config_from_args(config_file: Optional[str] = None,
                          preset: Optional[str] = None) -> Tuple[RenderConfig, Dict[str, Any]]:
    """
    Resolve the CLI's ``--config`` and ``--preset`` options.

    Returns:
        Tuple of (RenderConfig, full configuration dictionary)
    """
    manager = ConfigManager()
    config = manager.load_config(config_file)
    if preset:
        config = manager.apply_preset(config, preset)
    return manager.create_render_config(config), config
