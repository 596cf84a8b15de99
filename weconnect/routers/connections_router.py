# weconnect/routers/connections_router.py
from typing import Optional

from fastapi import APIRouter, Depends, status

from ..dependencies.auth import get_current_user
from ..dependencies.services import get_connection_service
from ..errors import success_body
from ..schemas.connection_schema import ConnectionCreate, ConnectionRead, ConnectionUpdate, ReconnectRequest
from ..services.connection_service import ConnectionService

router = APIRouter(prefix="/api/connections", tags=["connections"])


@router.get("")
async def list_connections(svc: ConnectionService = Depends(get_connection_service), current_user=Depends(get_current_user)):
    connections = await svc.list_connections(current_user.id)
    return success_body([ConnectionRead.from_model(c).to_api() for c in connections])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_connection(
    payload: ConnectionCreate,
    svc: ConnectionService = Depends(get_connection_service),
    current_user=Depends(get_current_user),
):
    connection = await svc.create_connection(current_user.id, payload)
    return success_body(ConnectionRead.from_model(connection).to_api(), f"{connection.platform} connected.")


@router.put("/{connection_id}")
async def update_connection(
    connection_id: str,
    payload: ConnectionUpdate,
    svc: ConnectionService = Depends(get_connection_service),
    current_user=Depends(get_current_user),
):
    connection = await svc.update_connection(connection_id, current_user.id, payload)
    return success_body(ConnectionRead.from_model(connection).to_api(), "Connection updated.")


@router.delete("/{connection_id}")
async def delete_connection(
    connection_id: str,
    svc: ConnectionService = Depends(get_connection_service),
    current_user=Depends(get_current_user),
):
    await svc.delete_connection(connection_id, current_user.id)
    return success_body(None, "Connection removed.")


@router.post("/{connection_id}/reconnect")
async def reconnect(
    connection_id: str,
    payload: Optional[ReconnectRequest] = None,
    svc: ConnectionService = Depends(get_connection_service),
    current_user=Depends(get_current_user),
):
    connection = await svc.reconnect(connection_id, current_user.id, payload)
    return success_body(ConnectionRead.from_model(connection).to_api(), "Connection restored.")
