"""oauth2-proxy environment models."""

from typing import List, Optional, Tuple

from pydantic import BaseModel

from stackgen.models.resolved import Upstream


class SidecarContext(BaseModel):
    """Per-service secrets and upstream address for one sidecar."""

    client_secret: str
    cookie_secret: str
    upstream: Upstream


class SidecarEnvironment(BaseModel):
    """Ordered settings for one protected service's sidecar."""

    service_id: str
    settings: List[Tuple[str, str]]

    def get(self, key: str) -> Optional[str]:
        for name, value in self.settings:
            if name == key:
                return value
        return None

    def to_env_lines(self) -> List[str]:
        return [f"{name}={value}" for name, value in self.settings]

    def to_env_file(self) -> str:
        return "\n".join(self.to_env_lines()) + "\n"
