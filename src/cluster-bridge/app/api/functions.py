"""Function CRUD endpoints.

All operations run against the active cluster.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from shared.observability import get_logger

from ..schemas.resources import FunctionData, TinyFunction
from ..services.client_factory import ClientBundle
from ..services.exceptions import ClusterBridgeError
from ..services.resources import function_manifest
from .dependencies import get_active_clients, get_namespace, http_error

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/funcs",
    response_model=list[TinyFunction],
    summary="List functions",
    description="Functions reduced to name, namespace and source.",
)
async def list_functions(
    namespace: str = Depends(get_namespace),
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        return await clients.function_client.tiny_list(namespace)
    except ClusterBridgeError as e:
        raise http_error(e)


@router.post("/{ns}/funcs/{name}", summary="Create a function")
async def create_function(
    ns: str,
    name: str,
    clients: ClientBundle = Depends(get_active_clients),
):
    """Create a function from the default Node.js template."""
    try:
        created = await clients.function_client.create(function_manifest(name, ns))
    except ClusterBridgeError as e:
        raise http_error(e)

    logger.info("Function created", name=name, namespace=ns)
    return created


@router.get("/{ns}/funcs/{name}", summary="Get a function")
async def get_function(
    ns: str,
    name: str,
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        return await clients.function_client.get(name, ns)
    except ClusterBridgeError as e:
        raise http_error(e)


@router.put("/{ns}/funcs/{name}", summary="Update a function")
async def update_function(
    ns: str,
    name: str,
    data: FunctionData,
    clients: ClientBundle = Depends(get_active_clients),
):
    """Update the source, dependencies or runtime of a function."""
    function_client = clients.function_client
    try:
        function = await function_client.get(name, ns)
        spec = function.setdefault("spec", {})
        spec.update(data.model_dump(exclude_none=True))
        updated = await function_client.update(function)
    except ClusterBridgeError as e:
        raise http_error(e)

    logger.info("Function updated", name=name, namespace=ns)
    return updated


@router.delete("/{ns}/funcs/{name}", summary="Delete a function")
async def delete_function(
    ns: str,
    name: str,
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        await clients.function_client.delete(name, ns)
    except ClusterBridgeError as e:
        raise http_error(e)

    logger.info("Function deleted", name=name, namespace=ns)
    return {"status": "deleted", "name": name, "namespace": ns}


@router.get(
    "/{ns}/funcs/{name}/logs",
    response_model=list[str],
    summary="Get function logs",
    description="Logs of every running pod of the function.",
)
async def get_function_logs(
    ns: str,
    name: str,
    clients: ClientBundle = Depends(get_active_clients),
):
    try:
        return await clients.function_client.get_logs(name, ns)
    except ClusterBridgeError as e:
        raise http_error(e)
