from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from helpers.utils.relay_coordinator import RelayCoordinator
from helpers.utils.signaling_connection import SignalingConnection
from core.coordinator import get_relay_coordinator
import logging

logger = logging.getLogger(__name__)

router = APIRouter()

@router.websocket("/")
async def signaling_endpoint(
  websocket: WebSocket,
  coordinator: RelayCoordinator = Depends(get_relay_coordinator),
):
  await websocket.accept()

  connection = SignalingConnection(websocket)
  coordinator.on_connect(connection)
  logger.info(f"Client {connection.id[:8]} connected. Waiting for role announcement.")

  try:
    # The coordinator may close the socket itself on a protocol violation
    while connection.is_open:
      message = await websocket.receive()
      if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

      # Text and binary frames carry the same messages
      raw = message.get("text")
      if raw is None:
        raw = message.get("bytes") or b""
      await coordinator.on_message(connection, raw)
  except WebSocketDisconnect:
    pass
  except Exception as e:
    logger.error(f"WebSocket error from {connection!r}: {e}")
    await connection.close(code=1011, reason="Internal server error")
  finally:
    await coordinator.on_disconnect(connection)

@router.get("/api/room", status_code=200)
async def room_status(coordinator: RelayCoordinator = Depends(get_relay_coordinator)):
  return coordinator.status()
