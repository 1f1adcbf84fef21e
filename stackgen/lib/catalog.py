"""Registry of service modules that can be deployed.

Whether a service is deployed is decided by the declaration; a declared
service must exist here.
"""

from typing import Dict, List

from pydantic import BaseModel


class CatalogEntry(BaseModel):
    """A deployable service module."""

    service_id: str
    port: int
    description: str = ""


SERVICE_CATALOG: Dict[str, CatalogEntry] = {
    "demo": CatalogEntry(
        service_id="demo", port=80, description="Demo application with OAuth2 protection"
    ),
    "docs": CatalogEntry(
        service_id="docs", port=80, description="Public documentation (no auth required)"
    ),
    "dozzle": CatalogEntry(
        service_id="dozzle", port=8080, description="Container log viewer (admin only)"
    ),
    "logs": CatalogEntry(
        service_id="logs", port=3000, description="Centralized logs (Grafana + Loki)"
    ),
}


def available_service_ids(catalog: Dict[str, CatalogEntry] = SERVICE_CATALOG) -> List[str]:
    return sorted(catalog)
