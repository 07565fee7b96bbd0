"""Request/response schemas for the Cluster Bridge API."""

from .clusters import ClusterRegistered
from .resources import FunctionData, SubscriptionData, TinyFunction

__all__ = [
    "ClusterRegistered",
    "FunctionData",
    "SubscriptionData",
    "TinyFunction",
]
