"""UI descriptor generator, schema validation and delivery."""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator

from stackgen.lib.constants import DESCRIPTOR_ENV_MAX_BYTES, DESCRIPTOR_VERSION, collation_key
from stackgen.lib.errors import ConfigNotFoundError, DescriptorSchemaError, DescriptorTooLargeError
from stackgen.models.config import StackSettings
from stackgen.models.descriptor import (
    FrontendEndpoint,
    IdentityProviderEndpoint,
    ServiceEntry,
    UIDescriptor,
)
from stackgen.models.resolved import ResolvedDeploymentConfig, ResolvedServiceConfig

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "ui-descriptor.v1.schema.json"


@lru_cache(maxsize=1)
def _validator() -> Draft202012Validator:
    with open(SCHEMA_PATH) as f:
        schema = json.load(f)
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def _pointer(path) -> str:
    parts = [str(p) for p in path]
    return "/" + "/".join(parts) if parts else "(root)"


def validate_descriptor(document: Dict[str, Any]) -> None:
    """Validate a descriptor dict against the versioned schema.

    Raises:
        DescriptorSchemaError: With every schema violation, not just the first
    """
    errors = sorted(_validator().iter_errors(document), key=lambda e: [str(p) for p in e.absolute_path])
    if errors:
        problems = [f"{_pointer(error.absolute_path)}: {error.message}" for error in errors]
        raise DescriptorSchemaError(problems)


def sort_service_entries(entries: List[ServiceEntry]) -> List[ServiceEntry]:
    """Order by (group, name); ungrouped entries come after every group."""
    return sorted(
        entries,
        key=lambda e: (e.group is None, collation_key(e.group or ""), collation_key(e.name)),
    )


class DescriptorService:
    """Builds the public service catalog consumed by the portal."""

    def __init__(self, settings: StackSettings) -> None:
        self.settings = settings

    def build_entry(self, service: ResolvedServiceConfig) -> ServiceEntry:
        return ServiceEntry(
            id=service.service_id,
            name=service.display_name,
            url=self.settings.build_url(service.host),
            protected=service.is_protected,
            auth_type=service.auth_type,
            group=service.group,
            icon=service.icon,
            description=service.description,
            required_roles=list(service.required_roles) if service.is_protected else None,
        )

    def generate(self, config: ResolvedDeploymentConfig) -> UIDescriptor:
        """Generate and schema-validate the descriptor.

        Args:
            config: Resolved deployment config

        Returns:
            UIDescriptor with services sorted by (group, name)

        Raises:
            DescriptorSchemaError: If the document violates the schema
        """
        descriptor = UIDescriptor(
            version=DESCRIPTOR_VERSION,
            deployment_id=self.settings.deployment_id,
            environment=self.settings.environment,
            base_domain=self.settings.base_domain,
            frontend=FrontendEndpoint(public_url=self.settings.portal_url),
            identity_provider=IdentityProviderEndpoint(
                public_url=self.settings.keycloak_url,
                issuer_url=self.settings.issuer_url,
                realm=self.settings.realm,
            ),
            services=sort_service_entries([self.build_entry(s) for s in config.services]),
        )
        validate_descriptor(descriptor.to_dict())
        return descriptor


def serialize(descriptor: UIDescriptor) -> str:
    """Indented form for file delivery."""
    return json.dumps(descriptor.to_dict(), indent=2)


def serialize_compact(descriptor: UIDescriptor) -> str:
    """Single-line form for environment-variable delivery.

    Raises:
        DescriptorTooLargeError: Above the inline ceiling; use file delivery instead
    """
    text = json.dumps(descriptor.to_dict(), separators=(",", ":"))
    size = len(text.encode("utf-8"))
    if size > DESCRIPTOR_ENV_MAX_BYTES:
        raise DescriptorTooLargeError(
            f"Descriptor is {size} bytes; inline delivery allows at most "
            f"{DESCRIPTOR_ENV_MAX_BYTES}. Use descriptorInjection: file"
        )
    return text


def load_descriptor(json_text: Optional[str] = None, path: Optional[Path] = None) -> UIDescriptor:
    """Read a descriptor from inline JSON or from a file; inline wins.

    Raises:
        ConfigNotFoundError: If neither source is available
        DescriptorSchemaError: If the document violates the schema
    """
    if json_text:
        data = json.loads(json_text)
    elif path is not None:
        if not path.exists():
            raise ConfigNotFoundError(f"Descriptor file not found: {path}")
        with open(path) as f:
            data = json.load(f)
    else:
        raise ConfigNotFoundError("No descriptor source configured")

    validate_descriptor(data)
    descriptor = UIDescriptor(**data)
    logger.info(f"Loaded descriptor for {descriptor.deployment_id} with {len(descriptor.services)} services")
    return descriptor
