"""End-to-end compile: declaration in, four artifacts out."""

import logging
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field

from stackgen.lib.errors import DeploymentConfigError
from stackgen.models.config import StackFile
from stackgen.models.realm import RealmContext
from stackgen.models.resolved import ResolvedDeploymentConfig
from stackgen.models.secrets import SecretsBundle
from stackgen.services import descriptor_service, realm_service
from stackgen.services.authorization_service import get_protected_service_ids
from stackgen.services.credentials_service import build_user_credentials
from stackgen.services.descriptor_service import DescriptorService
from stackgen.services.realm_service import RealmService
from stackgen.services.routing_service import RoutingService
from stackgen.services.sidecar_service import SidecarService
from stackgen.services.validation_service import ValidationService, validate_user_passwords

logger = logging.getLogger(__name__)


class CompiledArtifacts(BaseModel):
    """Serialized artifacts for one stack."""

    routing_yaml: str
    realm_json: str
    sidecar_envs: Dict[str, str] = Field(default_factory=dict)
    descriptor_json: str
    descriptor_compact: Optional[str] = None


class CompilerService:
    """Runs validation then every generator against one resolved model."""

    def __init__(self, stack_file: StackFile, validation_service: Optional[ValidationService] = None):
        """Initialize compiler service.

        Args:
            stack_file: Parsed stack file
            validation_service: Validator (defaults to the service catalog)
        """
        self.stack_file = stack_file
        self.settings = stack_file.stack
        self.validation_service = validation_service or ValidationService()

    def resolve(self) -> ResolvedDeploymentConfig:
        """Validate the declaration; raises DeploymentConfigError with every problem."""
        declaration = self.stack_file.declaration
        result = self.validation_service.validate(self.settings.environment, declaration)
        errors = list(result.errors) + validate_user_passwords(declaration)
        if errors:
            raise DeploymentConfigError(errors)
        return result.config

    def protected_service_ids(self):
        return get_protected_service_ids(self.resolve())

    def compile(self, secrets: SecretsBundle) -> CompiledArtifacts:
        """Compile every artifact. Nothing is returned unless all generators succeed.

        Args:
            secrets: Client and cookie secrets for the portal and protected services

        Returns:
            CompiledArtifacts with serialized documents
        """
        config = self.resolve()

        routing = RoutingService(self.settings)
        routing_yaml = routing.generate_yaml(config, routing.build_route_requests(config))

        realm = RealmService(self.settings).build(
            config,
            RealmContext(
                portal_client_secret=secrets.portal_client_secret,
                client_secrets=secrets.client_secrets,
                user_credentials=build_user_credentials(self.stack_file.declaration),
            ),
        )

        sidecars = SidecarService(self.settings).build_all(config, secrets)

        descriptor = DescriptorService(self.settings).generate(config)
        compact = None
        if self.settings.descriptor_injection == "json":
            compact = descriptor_service.serialize_compact(descriptor)

        logger.info(
            f"Compiled stack {self.settings.deployment_id}: {len(config.services)} services, "
            f"{len(sidecars)} sidecars"
        )
        return CompiledArtifacts(
            routing_yaml=routing_yaml,
            realm_json=realm_service.to_json(realm),
            sidecar_envs={env.service_id: env.to_env_file() for env in sidecars},
            descriptor_json=descriptor_service.serialize(descriptor),
            descriptor_compact=compact,
        )

    def write(self, artifacts: CompiledArtifacts, output_dir: Path) -> Dict[str, Path]:
        """Write artifacts below `output_dir`.

        Returns:
            Mapping of artifact name to written path
        """
        paths = {
            "routing": output_dir / "traefik" / "dynamic.yml",
            "realm": output_dir / "keycloak" / f"realm-{self.settings.realm}.json",
            "descriptor": output_dir / "portal" / "descriptor.json",
        }
        contents = {
            "routing": artifacts.routing_yaml,
            "realm": artifacts.realm_json,
            "descriptor": artifacts.descriptor_json,
        }
        for service_id, env_text in artifacts.sidecar_envs.items():
            key = f"sidecar:{service_id}"
            paths[key] = output_dir / "oauth2-proxy" / f"{service_id}.env"
            contents[key] = env_text
        if artifacts.descriptor_compact is not None:
            paths["descriptor-env"] = output_dir / "portal" / "descriptor.env"
            contents["descriptor-env"] = f"PORTAL_DESCRIPTOR_JSON={artifacts.descriptor_compact}\n"

        for key, path in paths.items():
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(contents[key])
            if key == "realm" or key.startswith("sidecar:"):
                # Carries client secrets
                path.chmod(0o600)
            logger.debug(f"Wrote {key} to {path}")
        return paths
