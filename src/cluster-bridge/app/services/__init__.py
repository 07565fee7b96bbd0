"""Business logic services: the cluster connectivity core."""

from .client_factory import ClientBundle, ClientFactory, ConnectionParameters
from .cluster_directory import ClusterDirectory, ClusterEntry
from .cluster_service import ClusterService
from .credential_registry import CredentialRegistry
from .event_relay import EventRelay, RelayResult
from .exceptions import (
    ClusterAPIError,
    ClusterBridgeError,
    ClusterConnectionError,
    ClusterNotFoundError,
    CredentialNotFoundError,
    CredentialParseError,
    InvalidCredentialError,
    InvalidInputError,
    NoActiveClusterError,
    NotFoundError,
    RelayFailedError,
    ResourceNotFoundError,
    TunnelError,
)
from .resources import FunctionClient, SubscriptionClient
from .tunnel import TunnelHandle, TunnelSupervisor, open_port_forward

__all__ = [
    "ClientBundle",
    "ClientFactory",
    "ClusterAPIError",
    "ClusterBridgeError",
    "ClusterConnectionError",
    "ClusterDirectory",
    "ClusterEntry",
    "ClusterNotFoundError",
    "ClusterService",
    "ConnectionParameters",
    "CredentialNotFoundError",
    "CredentialParseError",
    "CredentialRegistry",
    "EventRelay",
    "FunctionClient",
    "InvalidCredentialError",
    "InvalidInputError",
    "NoActiveClusterError",
    "NotFoundError",
    "RelayFailedError",
    "RelayResult",
    "ResourceNotFoundError",
    "SubscriptionClient",
    "TunnelError",
    "TunnelHandle",
    "TunnelSupervisor",
    "open_port_forward",
]
