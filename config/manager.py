from pathlib import Path
from typing import Dict, Any, Optional, List
from config.types import GenerationSettings, HistorySettings, LogSettings, ToolSettings
import logging
import os

ENV_PREFIX = "AGENTFLOW_"


class EnvironmentManager:
    """
    Environment manager holding the settings of the workflow engine.

    Values come from defaults, then the first .env file found, then the OS
    environment (``load()``).
    """

    _instance = None

    ENV_PREFIX = ENV_PREFIX

    # Default settings with their types
    DEFAULT_SETTINGS = {
        # Generation service
        "llm_api_key": (None, str),
        "llm_base_url": ("https://api.groq.com/openai/v1", str),
        "llm_model": ("llama-3.1-8b-instant", str),
        "llm_max_tool_rounds": (3, int),
        # Logging
        "log_level": ("INFO", str),
        "execution_log_enabled": (True, bool),
        "execution_log_path": ("logs", str),
        "network_log_path": ("logs", str),
        "log_max_bytes": (10 * 1024 * 1024, int),
        "log_max_files": (5, int),
        # Run history
        "history_enabled": (True, bool),
        "history_path": (".agentflow/history", str),
        # Tools
        "web_search_max_results": (10, int),
        "web_search_region": ("us-en", str),
        "filesystem_root": (".", str),
    }

    # Every setting can be set via AGENTFLOW_<NAME>; a few well-known names too
    ENV_MAPPING = {
        **{f"{ENV_PREFIX}{setting.upper()}": setting for setting in DEFAULT_SETTINGS},
        "GROQ_API_KEY": "llm_api_key",
        "OPENAI_API_KEY": "llm_api_key",
        "CURRENT_AI_MODEL": "llm_model",
    }

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize environment with default values"""
        self.env_variables: Dict[str, str] = {}
        self.settings: Dict[str, Any] = {}
        self.env_file: Optional[Path] = None
        self.logger = logging.getLogger(__name__)

        # Initialize settings with default values
        for key, (default_value, _) in self.DEFAULT_SETTINGS.items():
            self.settings[key] = default_value

        self._load_from_env_file()

    def _convert_value(self, value: str, target_type: type) -> Any:
        """Convert string value to target type"""
        if target_type == bool:
            return value.lower() in ("true", "1", "yes", "on")
        return target_type(value)

    def _apply_variable(self, key: str, value: str):
        """Store a variable and update the setting it maps to, if any"""
        self.env_variables[key] = value

        setting_name = self.ENV_MAPPING.get(key)
        if setting_name is None:
            return

        _, target_type = self.DEFAULT_SETTINGS[setting_name]
        try:
            self.settings[setting_name] = self._convert_value(value, target_type)
        except ValueError:
            self.logger.warning(
                f"Ignoring {key}={value!r}: expected {target_type.__name__}"
            )

    def _env_file_candidates(self) -> List[Path]:
        paths = [Path.cwd() / ".env"]
        try:
            paths.append(Path.home() / ".env")
        except (RuntimeError, OSError):
            # Skip home directory if it can't be determined
            pass
        return paths

    def _load_from_env_file(self):
        """Find and load variables from a .env file"""
        for env_path in self._env_file_candidates():
            if env_path.exists() and env_path.is_file():
                self.logger.debug(f"Loading environment from: {env_path}")
                self._parse_env_file(env_path)
                self.env_file = env_path
                return

        self.logger.debug(
            "No .env file found in: "
            + ", ".join(str(p) for p in self._env_file_candidates())
        )

    def _parse_env_file(self, env_file_path: Path):
        """Parse a .env file and load variables into environment"""
        try:
            with open(env_file_path, "r") as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        key = key.strip()
                        value = value.strip()

                        # Remove quotes if present
                        if (value.startswith('"') and value.endswith('"')) or (
                            value.startswith("'") and value.endswith("'")
                        ):
                            value = value[1:-1]

                        self._apply_variable(key, value)
        except OSError as e:
            self.logger.error(f"Error parsing .env file {env_file_path}: {e}")

    def load(self):
        """Load all environment information"""
        self._load_from_env_file()

        # OS environment wins over the .env file
        for key, value in os.environ.items():
            self._apply_variable(key, value)

        return self

    def get_setting(self, name: str, default: Any = None) -> Any:
        """Get a setting value by name"""
        return self.settings.get(name, default)

    def get_path(self, name: str) -> Optional[str]:
        """Get a path setting resolved against the current directory"""
        value = self.get_setting(name)
        if value is None:
            return None
        p = Path(value).expanduser()
        if not p.is_absolute():
            p = Path.cwd() / p
        return str(p.resolve())

    def get_generation_settings(self) -> GenerationSettings:
        return GenerationSettings(
            api_key=self.get_setting("llm_api_key"),
            base_url=self.get_setting("llm_base_url"),
            model=self.get_setting("llm_model"),
            max_tool_rounds=self.get_setting("llm_max_tool_rounds"),
        )

    def get_log_settings(self) -> LogSettings:
        return LogSettings(
            level=self.get_setting("log_level"),
            execution_log_enabled=self.get_setting("execution_log_enabled"),
            execution_log_path=self.get_path("execution_log_path"),
            network_log_path=self.get_path("network_log_path"),
            max_bytes=self.get_setting("log_max_bytes"),
            max_files=self.get_setting("log_max_files"),
        )

    def get_history_settings(self) -> HistorySettings:
        return HistorySettings(
            enabled=self.get_setting("history_enabled"),
            path=self.get_path("history_path"),
        )

    def get_tool_settings(self) -> ToolSettings:
        return ToolSettings(
            web_search_max_results=self.get_setting("web_search_max_results"),
            web_search_region=self.get_setting("web_search_region"),
            filesystem_root=self.get_path("filesystem_root"),
        )


env_manager = EnvironmentManager()
