"""Error taxonomy for the cluster connectivity core.

Every error carries a machine-readable code and the HTTP status routers
answer with when it reaches the API boundary.
"""

from __future__ import annotations


class ClusterBridgeError(Exception):
    """Base class for all bridge errors."""

    error_code = "CLUSTER_BRIDGE_ERROR"
    status_code = 500


class InvalidInputError(ClusterBridgeError):
    """Raised for an empty or malformed request body."""

    error_code = "INVALID_INPUT"
    status_code = 400


class InvalidCredentialError(InvalidInputError):
    """Raised when a credential payload is rejected before parsing."""

    error_code = "INVALID_CREDENTIAL"


class CredentialParseError(InvalidCredentialError):
    """Raised when a credential is not a well-formed kubeconfig document."""

    error_code = "CREDENTIAL_PARSE_ERROR"


class NotFoundError(ClusterBridgeError):
    """Raised when a named object does not exist."""

    error_code = "NOT_FOUND"
    status_code = 404


class CredentialNotFoundError(NotFoundError):
    error_code = "CREDENTIAL_NOT_FOUND"


class ClusterNotFoundError(NotFoundError):
    error_code = "CLUSTER_NOT_FOUND"


class NoActiveClusterError(NotFoundError):
    """Raised when no cluster has been registered yet."""

    error_code = "NO_ACTIVE_CLUSTER"


class ResourceNotFoundError(NotFoundError):
    error_code = "RESOURCE_NOT_FOUND"


class ClusterConnectionError(ClusterBridgeError):
    """Raised when connection parameters cannot be derived from a credential."""

    error_code = "CLUSTER_CONNECTION_ERROR"
    status_code = 400


class ClusterAPIError(ClusterBridgeError):
    """Raised when a call to the cluster API fails."""

    error_code = "CLUSTER_API_ERROR"
    status_code = 500


class TunnelError(ClusterBridgeError):
    """Raised when the tunnel into the cluster cannot be opened."""

    error_code = "TUNNEL_ERROR"
    status_code = 502


class RelayFailedError(ClusterBridgeError):
    """Raised when an event could not be forwarded after reopening the tunnel."""

    error_code = "RELAY_FAILED"
    status_code = 500
