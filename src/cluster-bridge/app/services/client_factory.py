"""Derives connection parameters and API clients from a kubeconfig.

Configuration is loaded into a private ``Configuration`` object so the
kubernetes module's global default is never touched and every bundle is
independent of the others.
"""

from __future__ import annotations

from typing import Any

import yaml
from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException
from pydantic import ConfigDict, Field

from shared.models import BridgeBaseModel, ConnectionSummary
from shared.observability import get_logger

from .exceptions import ClusterConnectionError, CredentialParseError
from .resources import FunctionClient, SubscriptionClient

logger = get_logger(__name__)


class ConnectionParameters(BridgeBaseModel):
    """API endpoint and auth material of one cluster."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    api_server: str
    context: str | None = None
    verify_ssl: bool = True
    configuration: client.Configuration = Field(exclude=True, repr=False)

    def new_api_client(self) -> client.ApiClient:
        """Create a fresh ApiClient for these parameters."""
        return client.ApiClient(configuration=self.configuration)

    def summary(self) -> ConnectionSummary:
        return ConnectionSummary(
            api_server=self.api_server,
            context=self.context,
            verify_ssl=self.verify_ssl,
        )


class ClientBundle:
    """Resource clients bound to a single cluster."""

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client
        self.subscription_client = SubscriptionClient(api_client)
        self.function_client = FunctionClient(api_client)


class ClientFactory:
    """Turns a raw kubeconfig into connection parameters and a client bundle."""

    def derive(self, raw: str) -> tuple[ConnectionParameters, ClientBundle]:
        """Derive connection parameters and a new client bundle.

        Clients are created lazily; no request is sent to the cluster here.

        Raises:
            CredentialParseError: The document is not a kubeconfig mapping
            ClusterConnectionError: The kubeconfig cannot produce a usable connection
        """
        document = self._parse(raw)
        context = document.get("current-context") or None

        configuration = client.Configuration()
        try:
            config.load_kube_config_from_dict(
                document,
                context=context,
                client_configuration=configuration,
                persist_config=False,
            )
        except ConfigException as e:
            raise ClusterConnectionError(f"Cannot derive cluster connection: {e}") from e
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CredentialParseError(f"Malformed kubeconfig: {e}") from e

        connection = ConnectionParameters(
            api_server=configuration.host,
            context=context,
            verify_ssl=bool(configuration.verify_ssl),
            configuration=configuration,
        )
        bundle = ClientBundle(connection.new_api_client())

        logger.debug(
            "Derived cluster clients",
            api_server=connection.api_server,
            context=connection.context,
        )
        return connection, bundle

    def _parse(self, raw: str) -> dict[str, Any]:
        try:
            document = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise CredentialParseError(f"Credential is not valid YAML: {e}") from e

        if not isinstance(document, dict):
            raise CredentialParseError("Credential is not a kubeconfig mapping")
        return document
