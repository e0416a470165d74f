import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from keyenv.errors import KeyEnvError
from keyenv.models import ClientConfig


class ConfigManager:

    DEFAULT_CONFIG_DIR = ".keyenv"
    DEFAULT_CONFIG_FILE = "config.yaml"

    def __init__(
        self,
        config_dir: str = DEFAULT_CONFIG_DIR,
        config_path: Optional[Union[str, Path]] = None,
    ) -> None:
        self.config_dir = config_dir
        self._explicit_path = Path(config_path) if config_path is not None else None

    @property
    def config_path(self) -> Optional[Path]:
        if self._explicit_path is not None:
            return self._explicit_path
        root = self.find_root()
        if root is None:
            return None
        return root / self.config_dir / self.DEFAULT_CONFIG_FILE

    def find_root(self) -> Optional[Path]:
        current = Path.cwd()
        while True:
            if (current / self.config_dir).is_dir():
                return current
            if current == current.parent:
                return None
            current = current.parent

    def load_config(self) -> ClientConfig:
        path = self.config_path
        if path is None or not os.path.exists(path):
            return ClientConfig()

        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise KeyEnvError(f"Invalid config file {path}: {e}") from e

        if not data:
            return ClientConfig()
        if not isinstance(data, dict):
            raise KeyEnvError(f"Invalid config file {path}: expected a mapping")

        try:
            config = ClientConfig(**data)
        except ValidationError as e:
            raise KeyEnvError(f"Invalid config file {path}: {e}") from e

        return self._resolve_audit_path(config, path)

    def _resolve_audit_path(self, config: ClientConfig, path: Path) -> ClientConfig:
        # Relative audit paths live next to the config file
        audit_path = config.audit.path
        if not os.path.isabs(audit_path):
            audit_path = os.path.join(path.parent, os.path.basename(audit_path))
        audit = config.audit.model_copy(update={"path": audit_path})
        return config.model_copy(update={"audit": audit})
