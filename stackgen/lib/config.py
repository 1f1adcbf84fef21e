"""Runtime settings for the portal logout surface.

Values come from the process environment, with a `.env` file loaded first
for local runs.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from stackgen.lib.constants import PORTAL_CLIENT_ID, PRODUCTION_ENVIRONMENT
from stackgen.lib.errors import SettingsError
from stackgen.models.config import StackSettings

logger = logging.getLogger(__name__)

DEFAULT_PROBE_CONNECT_TIMEOUT_MS = 300
DEFAULT_PROBE_REQUEST_TIMEOUT_MS = 750


class PortalSettings(BaseModel):
    """
    Settings the logout coordinator needs at request time.

    Attributes:
        portal_public_url (str): Browser-visible portal URL.
        keycloak_public_url (str): Browser-visible Keycloak URL.
        realm (str): Keycloak realm name.
        environment (str): Deployment environment name.
        traefik_internal_url (Optional[str]): Internal proxy URL used for probes.
        descriptor_json (Optional[str]): Inline descriptor.
        descriptor_path (Optional[str]): Descriptor file path.
    """

    portal_public_url: str
    keycloak_public_url: str
    realm: str
    environment: str
    client_id: str = PORTAL_CLIENT_ID
    traefik_internal_url: Optional[str] = None
    probe_connect_timeout_ms: int = DEFAULT_PROBE_CONNECT_TIMEOUT_MS
    probe_request_timeout_ms: int = DEFAULT_PROBE_REQUEST_TIMEOUT_MS
    cookie_domain: Optional[str] = None
    cookie_secure: bool = False
    descriptor_json: Optional[str] = None
    descriptor_path: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment == PRODUCTION_ENVIRONMENT

    @classmethod
    def from_stack(cls, stack: StackSettings, **overrides) -> "PortalSettings":
        values = {
            "portal_public_url": stack.portal_url,
            "keycloak_public_url": stack.keycloak_url,
            "realm": stack.realm,
            "environment": stack.environment,
            "cookie_secure": stack.use_https,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "PortalSettings":
        """Load settings from environment variables.

        Raises:
            SettingsError: If a required variable is missing
        """
        load_dotenv(env_file)

        required = {
            "portal_public_url": "PORTAL_PUBLIC_URL",
            "keycloak_public_url": "KEYCLOAK_PUBLIC_URL",
            "realm": "KEYCLOAK_REALM",
            "environment": "ENVIRONMENT",
        }
        values = {}
        missing = []
        for field, var in required.items():
            value = os.getenv(var)
            if not value:
                missing.append(var)
            values[field] = value
        if missing:
            raise SettingsError(f"Missing environment variables: {', '.join(missing)}")

        values.update(
            client_id=os.getenv("PORTAL_CLIENT_ID", PORTAL_CLIENT_ID),
            traefik_internal_url=os.getenv("TRAEFIK_INTERNAL_URL") or None,
            probe_connect_timeout_ms=int(
                os.getenv("LOGOUT_PROBE_CONNECT_TIMEOUT_MS", DEFAULT_PROBE_CONNECT_TIMEOUT_MS)
            ),
            probe_request_timeout_ms=int(
                os.getenv("LOGOUT_PROBE_REQUEST_TIMEOUT_MS", DEFAULT_PROBE_REQUEST_TIMEOUT_MS)
            ),
            cookie_domain=os.getenv("COOKIE_DOMAIN") or None,
            cookie_secure=os.getenv("COOKIE_SECURE", "false").lower() == "true",
            descriptor_json=os.getenv("PORTAL_DESCRIPTOR_JSON") or None,
            descriptor_path=os.getenv("PORTAL_DESCRIPTOR_PATH") or None,
        )
        logger.debug(f"Loaded portal settings for environment {values['environment']}")
        return cls(**values)
