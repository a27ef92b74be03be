from fastapi import WebSocket
from starlette.websockets import WebSocketState
from schemas.calls.call_schema import Role
from typing import Optional
from uuid import uuid4
import time

# WebSocket close code for protocol/policy violations
POLICY_VIOLATION = 1008

class SignalingConnection:
  """One participant's WebSocket, plus the role the coordinator gave it."""

  def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
    self.websocket = websocket
    self.id = connection_id or str(uuid4())
    self.assigned_role: Optional[Role] = None
    self.last_activity = time.monotonic()

  @property
  def is_open(self) -> bool:
    return (
      self.websocket.client_state == WebSocketState.CONNECTED
      and self.websocket.application_state == WebSocketState.CONNECTED
    )

  def touch(self):
    self.last_activity = time.monotonic()

  async def send_text(self, text: str):
    await self.websocket.send_text(text)

  async def close(self, code: int = POLICY_VIOLATION, reason: str = ""):
    if self.websocket.application_state != WebSocketState.DISCONNECTED:
      await self.websocket.close(code=code, reason=reason)

  def __repr__(self):
    role = self.assigned_role.value if self.assigned_role else "unassigned"
    return f"<SignalingConnection {self.id[:8]} {role}>"
