"""Subscription CRUD endpoints.

All operations run against the active cluster.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status

from shared.observability import get_logger

from ..schemas.resources import SubscriptionData
from ..services.client_factory import ClientBundle
from ..services.exceptions import ClusterBridgeError
from ..services.resources import event_type_for, subscription_manifest
from .dependencies import get_active_clients, get_namespace, http_error

logger = get_logger(__name__)

router = APIRouter()


def _manifest(name: str, namespace: str, data: SubscriptionData) -> dict[str, Any]:
    event_type = event_type_for(data.app_name, data.event_name, data.event_version)
    return subscription_manifest(name, namespace, data.sink, [event_type])


@router.get("/subs", summary="List subscriptions")
async def list_subscriptions(
    namespace: str = Depends(get_namespace),
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        return await clients.subscription_client.list(namespace)
    except ClusterBridgeError as e:
        raise http_error(e)


@router.get(
    "/cleaneventtypes",
    response_model=list[str],
    summary="List clean event types",
    description="Distinct clean event types across all subscriptions in the namespace.",
)
async def list_clean_event_types(
    namespace: str = Depends(get_namespace),
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        return await clients.subscription_client.clean_event_types(namespace)
    except ClusterBridgeError as e:
        raise http_error(e)


@router.post(
    "/{ns}/subs/{name}",
    status_code=status.HTTP_201_CREATED,
    summary="Create a subscription",
)
async def create_subscription(
    ns: str,
    name: str,
    data: SubscriptionData,
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        created = await clients.subscription_client.create(_manifest(name, ns, data))
    except ClusterBridgeError as e:
        raise http_error(e)

    logger.info("Subscription created", name=name, namespace=ns)
    return created


@router.get("/{ns}/subs/{name}", summary="Get a subscription")
async def get_subscription(
    ns: str,
    name: str,
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        return await clients.subscription_client.get(name, ns)
    except ClusterBridgeError as e:
        raise http_error(e)


@router.put("/{ns}/subs/{name}", summary="Update a subscription")
async def update_subscription(
    ns: str,
    name: str,
    data: SubscriptionData,
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        updated = await clients.subscription_client.update(_manifest(name, ns, data))
    except ClusterBridgeError as e:
        raise http_error(e)

    logger.info("Subscription updated", name=name, namespace=ns)
    return updated


@router.delete("/{ns}/subs/{name}", summary="Delete a subscription")
async def delete_subscription(
    ns: str,
    name: str,
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        await clients.subscription_client.delete(name, ns)
    except ClusterBridgeError as e:
        raise http_error(e)

    logger.info("Subscription deleted", name=name, namespace=ns)
    return {"status": "deleted", "name": name, "namespace": ns}
