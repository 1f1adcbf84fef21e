"""Generated secret material stored in `secrets.<stack>.yaml`."""

from typing import Dict

from pydantic import BaseModel, Field


class SecretsBundle(BaseModel):
    portal_client_secret: str = ""
    client_secrets: Dict[str, str] = Field(default_factory=dict)
    cookie_secrets: Dict[str, str] = Field(default_factory=dict)

    class Config:
        """Pydantic config."""
        validate_assignment = True
