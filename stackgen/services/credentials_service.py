"""Secret generation and bootstrap password hashing."""

import base64
import json
import logging
import os
import secrets
import string
from pathlib import Path
from typing import Dict, Iterable, Optional

import yaml
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from stackgen.lib.errors import ConfigParseError, MissingSecretError
from stackgen.models.declaration import RawDeclaration
from stackgen.models.realm import UserCredential
from stackgen.models.secrets import SecretsBundle

logger = logging.getLogger(__name__)

# Keycloak's pbkdf2-sha256 provider defaults
HASH_ALGORITHM = "pbkdf2-sha256"
HASH_ITERATIONS = 27500
HASH_KEY_BYTES = 32
SALT_BYTES = 16


def generate_secret_value(length=32):
    return "".join(
        secrets.choice(string.ascii_letters + string.digits) for _ in range(length)
    )


def hash_password(
    password: str, salt: Optional[bytes] = None, iterations: int = HASH_ITERATIONS
) -> UserCredential:
    """Hash a bootstrap password into Keycloak's stored-credential format.

    Args:
        password: Plain-text password
        salt: Salt bytes (random when omitted)
        iterations: PBKDF2 iteration count

    Returns:
        UserCredential with secretData/credentialData JSON strings
    """
    salt = salt if salt is not None else os.urandom(SALT_BYTES)
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=HASH_KEY_BYTES,
        salt=salt,
        iterations=iterations,
    )
    derived = kdf.derive(password.encode("utf-8"))

    secret_data = {
        "value": base64.b64encode(derived).decode("ascii"),
        "salt": base64.b64encode(salt).decode("ascii"),
        "additionalParameters": {},
    }
    credential_data = {
        "hashIterations": iterations,
        "algorithm": HASH_ALGORITHM,
        "additionalParameters": {},
    }
    return UserCredential(
        secret_data=json.dumps(secret_data),
        credential_data=json.dumps(credential_data),
    )


def build_user_credentials(raw: RawDeclaration) -> Dict[str, UserCredential]:
    """Hash every bootstrap user's password.

    Raises:
        MissingSecretError: If a user has no password
    """
    credentials = {}
    for user in raw.users:
        if not user.password:
            raise MissingSecretError(f"Missing password for user {user.username}")
        credentials[user.username] = hash_password(user.password)
    return credentials


class CredentialsService:
    """Creates generated secrets once and reuses them on later runs."""

    def __init__(self, secrets_file: Path) -> None:
        """Initialize credentials service.

        Args:
            secrets_file: YAML file holding generated secrets
        """
        self.secrets_file = secrets_file

    def load(self) -> SecretsBundle:
        if not self.secrets_file.exists():
            return SecretsBundle()

        try:
            with open(self.secrets_file) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigParseError(f"Failed to parse {self.secrets_file}: {e}") from e
        return SecretsBundle(**data)

    def save(self, bundle: SecretsBundle) -> None:
        self.secrets_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.secrets_file, "w") as f:
            yaml.safe_dump(bundle.model_dump(), f, sort_keys=True)
        # Secrets file must not be world readable
        os.chmod(self.secrets_file, 0o600)
        logger.info(f"Saved secrets to {self.secrets_file}")

    def ensure(self, service_ids: Iterable[str]) -> SecretsBundle:
        """Fill in any missing secret for the portal and the given services.

        Args:
            service_ids: Protected service ids that need sidecar secrets

        Returns:
            The complete bundle (written back only if something was generated)
        """
        bundle = self.load()
        changed = False

        if not bundle.portal_client_secret:
            bundle.portal_client_secret = generate_secret_value()
            changed = True

        for service_id in service_ids:
            if not bundle.client_secrets.get(service_id):
                bundle.client_secrets[service_id] = generate_secret_value()
                changed = True
            if not bundle.cookie_secrets.get(service_id):
                bundle.cookie_secrets[service_id] = generate_secret_value()
                changed = True

        if changed:
            self.save(bundle)
        else:
            logger.debug(f"Reusing existing secrets from {self.secrets_file}")
        return bundle

    def rotate(self, service_id: Optional[str] = None) -> SecretsBundle:
        """Regenerate the secrets of one service, or of everything."""
        bundle = self.load()
        if service_id is None:
            bundle.portal_client_secret = generate_secret_value()
            targets = list(bundle.client_secrets)
        else:
            targets = [service_id]

        for target in targets:
            bundle.client_secrets[target] = generate_secret_value()
            bundle.cookie_secrets[target] = generate_secret_value()

        self.save(bundle)
        logger.info(f"Rotated secrets for {service_id or 'all services'}")
        return bundle
