"""Fixed names and patterns shared across the compiler."""

import re

# Hostnames owned by the core stack; services may not claim them.
PORTAL_HOST = "portal"
KEYCLOAK_HOST = "keycloak"
RESERVED_HOSTS = (PORTAL_HOST, KEYCLOAK_HOST)

SLUG_PATTERN = re.compile(r"^[a-z][a-z0-9-]*[a-z0-9]$|^[a-z]$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Bootstrap users are only accepted for this environment name.
USERS_ENVIRONMENT = "local"
PRODUCTION_ENVIRONMENT = "prod"
INTERNAL_ISSUER_ENVIRONMENT = "dev"

DEFAULT_PROJECT_NAME = "stackgen"
PORTAL_CLIENT_ID = "portal"
SIDECAR_CLIENT_PREFIX = "oauth2-proxy-"
SIDECAR_PORT = 4180
SIDECAR_IMAGE = "quay.io/oauth2-proxy/oauth2-proxy:v7.6.0"
PORTAL_PORT = 3000
KEYCLOAK_PORT = 8080

DESCRIPTOR_VERSION = "1"
DESCRIPTOR_ENV_MAX_BYTES = 64 * 1024

_DIGITS = re.compile(r"(\d+)")


def is_slug(value: str) -> bool:
    return bool(SLUG_PATTERN.match(value or ""))


def id_sort_key(value: str) -> tuple:
    """Sort key for ids, hosts, roles and client ids.

    Letters compare case-insensitively with lowercase first on ties; digits
    compare one character at a time, so `app10` sorts before `app2`.
    """
    return value.casefold(), value.swapcase()


def collation_key(value: str) -> tuple:
    """Display-name sort key with case-insensitive, numeric-aware ordering.

    Independent of the process locale so artifact ordering is identical on
    every machine. The raw value breaks ties between case variants.
    """
    parts = _DIGITS.split(value.casefold())
    return tuple(int(p) if i % 2 else p for i, p in enumerate(parts)), value


def short_name(deployment_id: str, project_name: str, service_id: str) -> str:
    """Container name used for in-network addressing."""
    return f"{deployment_id}-{project_name}-{service_id}"
