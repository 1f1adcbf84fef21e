"""Deployment configuration compiler for Traefik, Keycloak and oauth2-proxy stacks."""

__version__ = "0.1.0"
