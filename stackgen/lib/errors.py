"""Exception hierarchy for the compiler and the logout surface."""

from typing import Iterable, List


class StackgenError(Exception):
    """Base class for every error raised by stackgen."""


class SettingsError(StackgenError):
    """Stack settings are missing or inconsistent."""


class ConfigNotFoundError(StackgenError):
    """A declaration or secrets file does not exist."""


class ConfigParseError(StackgenError):
    """A declaration file could not be parsed into the raw model."""


class DeploymentConfigError(StackgenError):
    """One or more validation rules failed.

    Attributes:
        errors: Every validation error found, in rule order
    """

    def __init__(self, errors: Iterable, header: str = "Deployment configuration validation failed"):
        self.errors: List = list(errors)
        lines = [f"  - {e.message} (at {e.path})" for e in self.errors]
        super().__init__(f"{header}:\n" + "\n".join(lines))


class RouteValidationError(StackgenError):
    """Route requests contain duplicate, invalid, or reserved hosts."""

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__(
            "Invalid route requests:\n" + "\n".join(f"  - {p}" for p in self.problems)
        )


class DescriptorSchemaError(StackgenError):
    """The generated descriptor does not satisfy its JSON schema."""

    def __init__(self, problems: Iterable[str]):
        self.problems = list(problems)
        super().__init__(
            "Descriptor schema validation failed:\n"
            + "\n".join(f"  - {p}" for p in self.problems)
        )


class DescriptorTooLargeError(StackgenError):
    """The compact descriptor exceeds the inline delivery ceiling."""


class MissingSecretError(StackgenError):
    """Secret material required by a generator was not supplied."""
