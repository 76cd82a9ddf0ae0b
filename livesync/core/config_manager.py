import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Mapping
from dataclasses import dataclass, fields

logger = logging.getLogger(__name__)

SETTINGS_NAMESPACE = "livePreview"
CONFIG_FILES = (".livepreviewrc", ".livepreviewrc.json", "livepreview.config.json")

# config file keys allowed to override editor settings
OVERRIDE_KEYS = {
    'root': 'root',
    'injectBody': 'inject_body',
    'highlight': 'highlight',
    'debug': 'debug',
}

# camelCase setting names as they appear in editor settings
SETTING_ALIASES = {
    'injectBody': 'inject_body',
    'injectCss': 'inject_css',
}

@dataclass
class PreviewConfig:
    root: str = ""
    navigate: Optional[bool] = None
    highlight: Optional[bool] = None
    inject_body: Optional[bool] = None
    inject_css: Optional[bool] = None
    debug: bool = False
    host: str = "localhost"
    port: int = 5555

    def as_options(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

class ConfigManager:
    def __init__(self, settings: Optional[Mapping[str, Any]] = None):
        self.settings: Dict[str, Any] = dict(settings or {})
        self.config = PreviewConfig()

    def load(self, workspace: Optional[str] = None) -> PreviewConfig:
        """Rebuild the configuration from editor settings and the project config file"""
        config = self._from_settings()
        if workspace:
            overrides = self._load_config_file(Path(workspace))
            for key, attr in OVERRIDE_KEYS.items():
                if key in overrides:
                    setattr(config, attr, overrides[key])
        self.config = config
        return config

    def reset(self) -> PreviewConfig:
        self.config = PreviewConfig()
        return self.config

    def _from_settings(self) -> PreviewConfig:
        config = PreviewConfig()
        known = {f.name for f in fields(config)}
        prefix = f"{SETTINGS_NAMESPACE}."
        for raw_key, value in self.settings.items():
            key = raw_key[len(prefix):] if raw_key.startswith(prefix) else raw_key
            attr = SETTING_ALIASES.get(key, key)
            if attr in known:
                setattr(config, attr, value)
        return config

    def _load_config_file(self, workspace: Path) -> Dict[str, Any]:
        """Load the first project config file found in the workspace"""
        for name in CONFIG_FILES:
            config_path = workspace / name
            if not config_path.is_file():
                continue
            try:
                with open(config_path) as f:
                    data = json.load(f)
            except json.JSONDecodeError as e:
                logger.error(f"Invalid config file {config_path}: {e}")
                return {}
            if not isinstance(data, dict):
                logger.error(f"Config file {config_path} must contain an object")
                return {}
            logger.debug(f"Loaded config file {config_path}")
            return data
        return {}

    def get(self, key: str) -> Any:
        """Get configuration value"""
        if not hasattr(self.config, key):
            raise KeyError(f"Unknown configuration key: {key}")
        return getattr(self.config, key)

    def update(self, key: str, value: Any):
        """Update configuration value"""
        if hasattr(self.config, key):
            setattr(self.config, key, value)
        else:
            raise KeyError(f"Unknown configuration key: {key}")
