"""Stack declaration loading and scaffolding."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from stackgen.lib.errors import ConfigNotFoundError, ConfigParseError
from stackgen.models.config import Credentials, StackFile, StackSettings
from stackgen.models.declaration import RawDeclaration

logger = logging.getLogger(__name__)

EXAMPLE_CONFIG: Dict[str, Any] = {
    "stack": {
        "deploymentId": "local",
        "baseDomain": "localhost",
        "environment": "local",
        "keycloakRealm": "stackgen",
        "keycloakDevMode": True,
        "useHttps": False,
        "descriptorInjection": "file",
    },
    "roles": ["admin", "dev"],
    "services": {
        "demo": {
            "displayName": "Demo App",
            "requiredRoles": ["admin", "dev"],
            "group": "apps",
            "icon": "rocket",
            "description": "Demo application with OAuth2 protection",
        },
        "docs": {
            "group": "docs",
            "icon": "book",
            "description": "Public documentation",
        },
        "dozzle": {
            "displayName": "Container Logs",
            "requiredRoles": ["admin"],
            "group": "admin",
            "icon": "terminal",
        },
        "logs": {
            "displayName": "Logs",
            "requiredRoles": ["admin"],
            "group": "admin",
            "icon": "chart",
        },
    },
    "credentials": {
        "keycloakAdminUsername": "admin",
        "keycloakAdminPassword": "",
        "users": [
            {"username": "admin", "password": "", "roles": ["admin", "dev"]},
            {"username": "dev", "password": "", "roles": "dev"},
        ],
    },
}


class ConfigService:
    """Reads and scaffolds `config.<stack>.yaml` files."""

    def __init__(self, project_root: Optional[Path] = None, stack: str = "local"):
        """Initialize config service.

        Args:
            project_root: Root directory of the project (defaults to cwd)
            stack: Stack name selecting the config and secrets files
        """
        self.project_root = project_root or Path.cwd()
        self.stack = stack
        self.config_file = self.project_root / f"config.{stack}.yaml"
        self.secrets_file = self.project_root / ".secrets" / f"secrets.{stack}.yaml"
        self.output_dir = self.project_root / "generated" / stack

    def load(self) -> StackFile:
        """Load and parse the stack file.

        Returns:
            StackFile with settings, credentials and the raw declaration

        Raises:
            ConfigNotFoundError: If the config file doesn't exist
            ConfigParseError: If YAML or model parsing fails
        """
        if not self.config_file.exists():
            raise ConfigNotFoundError(
                f"Config file not found: {self.config_file}. Run 'stackgen init' first."
            )

        try:
            with open(self.config_file) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigParseError(f"Invalid YAML in {self.config_file}: {e}") from e

        return self.parse(data, source=str(self.config_file))

    @staticmethod
    def parse(data: Dict[str, Any], source: str = "<memory>") -> StackFile:
        if not isinstance(data, dict):
            raise ConfigParseError(
                f"Invalid configuration in {source}: expected a mapping, got {type(data).__name__}"
            )
        for section in ("stack", "credentials"):
            if not isinstance(data.get(section) or {}, dict):
                raise ConfigParseError(f"Invalid configuration in {source}: '{section}' must be a mapping")
        credentials = dict(data.get("credentials") or {})
        users = credentials.pop("users", None) or data.get("users")

        try:
            stack_file = StackFile(
                stack=StackSettings(**(data.get("stack") or {})),
                credentials=Credentials(**credentials),
                declaration=RawDeclaration(
                    roles=data.get("roles"),
                    users=users,
                    services=data.get("services"),
                ),
            )
        except ValidationError as e:
            raise ConfigParseError(f"Invalid configuration in {source}:\n{e}") from e

        logger.debug(
            f"Loaded {len(stack_file.declaration.services)} services from {source}"
        )
        return stack_file

    def init(self, force: bool = False) -> Path:
        """Write an example stack file.

        Args:
            force: Overwrite an existing file

        Returns:
            Path of the config file
        """
        if self.config_file.exists() and not force:
            logger.info(f"Skipping existing config file: {self.config_file}")
            return self.config_file

        example = dict(EXAMPLE_CONFIG)
        example["stack"] = {**EXAMPLE_CONFIG["stack"], "deploymentId": self.stack}
        with open(self.config_file, "w") as f:
            yaml.safe_dump(example, f, sort_keys=False)
        logger.info(f"Wrote example config to {self.config_file}")
        return self.config_file
