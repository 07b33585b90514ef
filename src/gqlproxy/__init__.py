"""
gqlproxy - GraphQL gateway for external REST/JSON APIs.

Each gateway instance exposes one GraphQL endpoint whose fields are each
backed by a single outbound call to an upstream API.

This package provides:
- graphql: Context, upstream client, error normalization, FastAPI integration
- instances: The pokemon and chat gateways
- config: Environment-bound settings
"""

from gqlproxy._version import get_version as _get_version

__version__ = _get_version()

from gqlproxy.graphql import create_app, print_schema

__all__ = ["__version__", "create_app", "print_schema"]
