"""API routers for Cluster Bridge."""

from . import events, functions, health, kubeconfigs, subscriptions

__all__ = ["events", "functions", "health", "kubeconfigs", "subscriptions"]
