"""
Settings repository.

Loads GatewaySettings from a JSON file. A missing file yields defaults.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from chainresync.domain.settings import GatewaySettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "chainresync.json"


class SettingsRepository:
    """
    Repository for the settings file.

    Handles loading and saving of ``chainresync.json``.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else Path.cwd() / DEFAULT_CONFIG_FILE

    def load_json_file(self) -> Dict[str, Any]:
        """
        Load the raw settings document.

        Raises:
            ValueError: If the file cannot be parsed
        """
        if not self.path.exists():
            logger.debug("No settings file at %s, using defaults", self.path)
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a JSON object")
        return data

    def load(self) -> GatewaySettings:
        """
        Load and validate settings.

        Raises:
            ValueError: If the file is invalid
        """
        data = self.load_json_file()
        try:
            settings = GatewaySettings.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Invalid settings in {self.path}: {e}") from e
        logger.debug("Loaded settings from %s: method=%s", self.path, settings.default_method.value)
        return settings

    def save(self, settings: GatewaySettings) -> None:
        """Write settings as formatted JSON."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(settings.model_dump(mode="json"), indent=2, ensure_ascii=False)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(content)
