"""
acipatch Configuration
Single source of truth for all settings.
Load once at startup, pass to all components.
"""
import copy
import json
import os
from pathlib import Path
from .utils.logger import logger


# Default config values
DEFAULTS = {
    "stream": {
        "chunk_size_kb": 64,
        "output_compression": "auto"
    },
    "compression": {
        "gzip_level": 9,
        "zstd_level": 19,
        "bzip2_level": 9,
        "xz_preset": 6
    },
    "manifest": {
        "require": False,
        "indent": None  # None = compact JSON
    }
}


class AcipatchConfig:
    ENV_VAR = "ACIPATCH_CONFIG"

    def __init__(self, config_path: str = None):
        self._config = self._deep_copy(DEFAULTS)

        if config_path:
            self.config_path = Path(config_path)
        elif os.environ.get(self.ENV_VAR):
            self.config_path = Path(os.environ[self.ENV_VAR])
        else:
            # Look for config in project root
            self.config_path = Path(__file__).parent.parent / 'acipatch.config.json'

        if self.config_path.exists():
            self._load()
        else:
            logger.debug(f"No config file found at {self.config_path} — using defaults")

    def _load(self):
        """Load and merge config file over defaults"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                user_config = json.load(f)
            if not isinstance(user_config, dict):
                raise ValueError("top level must be an object")
            self._deep_merge(self._config, user_config)
            logger.debug(f"Loaded config from {self.config_path}")
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in config file: {e} — using defaults")
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load config: {e} — using defaults")

    def get(self, *keys, default=None):
        """
        Get a nested config value by key path.
        e.g. config.get('stream', 'chunk_size_kb')
        """
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, *keys_and_value):
        """
        Set a nested config value.
        e.g. config.set('manifest', 'require', True)
        """
        *keys, value = keys_and_value
        target = self._config
        for key in keys[:-1]:
            target = target.setdefault(key, {})
        target[keys[-1]] = value

    # ── Convenience properties ─────────────────────────────────────────────

    @property
    def chunk_size(self) -> int:
        return self.get('stream', 'chunk_size_kb', default=64) * 1024

    @property
    def output_compression(self) -> str:
        return self.get('stream', 'output_compression', default='auto')

    @property
    def require_manifest(self) -> bool:
        return bool(self.get('manifest', 'require', default=False))

    @property
    def manifest_indent(self):
        return self.get('manifest', 'indent', default=None)

    def compression_level(self, codec: str):
        """Level for a codec name, None when the codec takes no level"""
        key = {
            'gzip': 'gzip_level',
            'zstd': 'zstd_level',
            'bzip2': 'bzip2_level',
            'xz': 'xz_preset',
        }.get(codec)
        if key is None:
            return None
        return self.get('compression', key, default=DEFAULTS['compression'][key])

    # ── Helpers ────────────────────────────────────────────────────────────

    @staticmethod
    def _deep_copy(d: dict) -> dict:
        return copy.deepcopy(d)

    @staticmethod
    def _deep_merge(base: dict, override: dict):
        """Merge override into base recursively — modifies base in place"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                AcipatchConfig._deep_merge(base[key], value)
            else:
                base[key] = value


# Singleton — import this everywhere
config = AcipatchConfig()

__all__ = ["AcipatchConfig", "config"]
