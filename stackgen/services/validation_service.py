"""Exhaustive validation of a declaration against the resolved model."""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from stackgen.lib.catalog import available_service_ids
from stackgen.lib.constants import (
    EMAIL_PATTERN,
    RESERVED_HOSTS,
    USERS_ENVIRONMENT,
    id_sort_key,
    is_slug,
)
from stackgen.lib.errors import DeploymentConfigError
from stackgen.models.declaration import AuthType, RawDeclaration
from stackgen.models.resolved import (
    ErrorCode,
    ResolvedDeploymentConfig,
    ValidationIssue,
    ValidationResult,
)
from stackgen.services.inference_service import resolve_declaration

logger = logging.getLogger(__name__)

PLACEHOLDER_PASSWORDS = frozenset({"changeme", "change-me", "password", "<password>", "todo"})


class ValidationService:
    """Runs every declaration rule and reports all failures together."""

    def __init__(self, known_services: Optional[Iterable[str]] = None) -> None:
        """Initialize validation service.

        Args:
            known_services: Service ids that may be declared (defaults to the catalog)
        """
        self.known_services = sorted(
            known_services if known_services is not None else available_service_ids(),
            key=id_sort_key,
        )

    def validate(self, environment_name: str, raw: RawDeclaration) -> ValidationResult:
        """Resolve and validate a declaration.

        Args:
            environment_name: Environment the declaration targets
            raw: Raw declaration

        Returns:
            ValidationResult carrying either the resolved config or every error
        """
        config = resolve_declaration(environment_name, raw)

        errors: List[ValidationIssue] = []
        errors.extend(self._check_catalog(config))
        errors.extend(self._check_slugs(config))
        errors.extend(self._check_reserved_hosts(config))
        errors.extend(self._check_auth_consistency(config))
        errors.extend(self._check_allowlist(config))
        errors.extend(self._check_users(config))
        errors.extend(self._check_role_format(raw))
        errors.extend(self._check_duplicate_hosts(config))

        if errors:
            logger.debug(f"Declaration for {environment_name} failed {len(errors)} checks")
            return ValidationResult(valid=False, errors=errors)
        return ValidationResult(valid=True, config=config)

    def assert_valid(self, environment_name: str, raw: RawDeclaration) -> ResolvedDeploymentConfig:
        """Validate and return the resolved config.

        Raises:
            DeploymentConfigError: With every failed rule
        """
        result = self.validate(environment_name, raw)
        if not result.valid:
            raise DeploymentConfigError(result.errors)
        return result.config

    def _check_catalog(self, config: ResolvedDeploymentConfig) -> List[ValidationIssue]:
        errors = []
        for service in config.services:
            if service.service_id not in self.known_services:
                errors.append(ValidationIssue(
                    code=ErrorCode.UNKNOWN_SERVICE,
                    message=(
                        f"Unknown service {service.service_id}. "
                        f"Available services: {', '.join(self.known_services)}"
                    ),
                    path=f"services.{service.service_id}",
                ))
        return errors

    def _check_slugs(self, config: ResolvedDeploymentConfig) -> List[ValidationIssue]:
        errors = []
        for service in config.services:
            if not is_slug(service.service_id):
                errors.append(ValidationIssue(
                    code=ErrorCode.INVALID_SERVICE_ID,
                    message=f"Service id '{service.service_id}' is not a valid slug",
                    path=f"services.{service.service_id}",
                ))
            if not is_slug(service.host):
                errors.append(ValidationIssue(
                    code=ErrorCode.INVALID_HOST,
                    message=f"Host '{service.host}' for service {service.service_id} is not a valid slug",
                    path=f"services.{service.service_id}.host",
                ))
        return errors

    def _check_reserved_hosts(self, config: ResolvedDeploymentConfig) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                code=ErrorCode.RESERVED_HOST,
                message=(
                    f"Host '{service.host}' for service {service.service_id} is reserved "
                    f"(reserved: {', '.join(RESERVED_HOSTS)})"
                ),
                path=f"services.{service.service_id}.host",
            )
            for service in config.services
            if service.host in RESERVED_HOSTS
        ]

    def _check_auth_consistency(self, config: ResolvedDeploymentConfig) -> List[ValidationIssue]:
        errors = []
        for service in config.services:
            path = f"services.{service.service_id}.authType"
            if service.auth_type == AuthType.NONE and service.required_roles:
                errors.append(ValidationIssue(
                    code=ErrorCode.AUTH_NONE_WITH_ROLES,
                    message=f"Service {service.service_id} has authType none but declares requiredRoles",
                    path=path,
                ))
            elif service.auth_type == AuthType.PROXY_AUTH and not service.required_roles:
                errors.append(ValidationIssue(
                    code=ErrorCode.PROXY_AUTH_WITHOUT_ROLES,
                    message=f"Service {service.service_id} uses proxy-auth but has no requiredRoles",
                    path=path,
                ))
            elif service.auth_type == AuthType.UI_AUTH and not service.required_roles:
                errors.append(ValidationIssue(
                    code=ErrorCode.UI_AUTH_WITHOUT_ROLES,
                    message=f"Service {service.service_id} uses ui-auth but has no requiredRoles",
                    path=path,
                ))
        return errors

    def _check_allowlist(self, config: ResolvedDeploymentConfig) -> List[ValidationIssue]:
        if not config.roles_explicit:
            return []

        allowed = set(config.roles)
        errors = []
        for index, user in enumerate(config.users):
            for role in user.roles:
                if role not in allowed:
                    errors.append(ValidationIssue(
                        code=ErrorCode.ROLE_NOT_IN_ALLOWLIST,
                        message=f"User {user.username} references undeclared role '{role}'",
                        path=f"users[{index}].roles",
                    ))
        for service in config.services:
            for role in service.required_roles:
                if role not in allowed:
                    errors.append(ValidationIssue(
                        code=ErrorCode.ROLE_NOT_IN_ALLOWLIST,
                        message=f"Service {service.service_id} references undeclared role '{role}'",
                        path=f"services.{service.service_id}.requiredRoles",
                    ))
        return errors

    def _check_users(self, config: ResolvedDeploymentConfig) -> List[ValidationIssue]:
        if not config.users:
            return []

        errors = []
        if config.environment_name != USERS_ENVIRONMENT:
            errors.append(ValidationIssue(
                code=ErrorCode.USERS_NOT_ALLOWED,
                message=(
                    f"Bootstrap users are only allowed in the '{USERS_ENVIRONMENT}' environment, "
                    f"not '{config.environment_name}'"
                ),
                path="users",
            ))

        for index, user in enumerate(config.users):
            if not is_slug(user.username):
                errors.append(ValidationIssue(
                    code=ErrorCode.INVALID_USERNAME,
                    message=f"Username '{user.username}' is not a valid slug",
                    path=f"users[{index}].username",
                ))
            if not EMAIL_PATTERN.match(user.email):
                errors.append(ValidationIssue(
                    code=ErrorCode.INVALID_EMAIL,
                    message=f"Email '{user.email}' for user {user.username} is not valid",
                    path=f"users[{index}].email",
                ))
            if not user.roles:
                errors.append(ValidationIssue(
                    code=ErrorCode.USER_NO_ROLES,
                    message=f"User {user.username} has no roles",
                    path=f"users[{index}].roles",
                ))
            for role_index, role in enumerate(user.roles):
                if not is_slug(role):
                    errors.append(ValidationIssue(
                        code=ErrorCode.INVALID_ROLE_FORMAT,
                        message=f"Role '{role}' for user {user.username} is not a valid slug",
                        path=f"users[{index}].roles[{role_index}]",
                    ))
        return errors

    def _check_role_format(self, raw: RawDeclaration) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                code=ErrorCode.INVALID_ROLE_FORMAT,
                message=f"Role '{role}' is not a valid slug",
                path=f"roles[{index}]",
            )
            for index, role in enumerate(raw.explicit_roles or [])
            if not is_slug(role)
        ]

    def _check_duplicate_hosts(self, config: ResolvedDeploymentConfig) -> List[ValidationIssue]:
        owners: Dict[str, List[str]] = defaultdict(list)
        for service in config.services:
            owners[service.host].append(service.service_id)

        return [
            ValidationIssue(
                code=ErrorCode.DUPLICATE_HOST,
                message=f"Host '{host}' is used by multiple services: {', '.join(service_ids)}",
                path="services",
            )
            for host, service_ids in sorted(owners.items(), key=lambda item: id_sort_key(item[0]))
            if len(service_ids) > 1
        ]


def validate_user_passwords(raw: RawDeclaration) -> List[ValidationIssue]:
    """Check that every bootstrap user carries a usable password."""
    errors = []
    for index, user in enumerate(raw.users):
        password = (user.password or "").strip()
        if not password:
            errors.append(ValidationIssue(
                code=ErrorCode.MISSING_USER_PASSWORD,
                message=f"User {user.username} has no password",
                path=f"users[{index}].password",
            ))
        elif password.lower() in PLACEHOLDER_PASSWORDS:
            errors.append(ValidationIssue(
                code=ErrorCode.PLACEHOLDER_PASSWORD,
                message=f"User {user.username} still uses a placeholder password",
                path=f"users[{index}].password",
            ))
    return errors


def assert_user_passwords_provided(raw: RawDeclaration) -> None:
    errors = validate_user_passwords(raw)
    if errors:
        raise DeploymentConfigError(errors, header="Bootstrap user credentials are incomplete")
