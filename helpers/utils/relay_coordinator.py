from fastapi import WebSocketDisconnect
from dataclasses import dataclass
from typing import Dict, Optional, Union
from typing_extensions import assert_never
from schemas.calls.call_schema import (
  PONG,
  RELAYED_MESSAGES,
  InitiateMessage,
  JoinMessage,
  KeepalivePing,
  KeepalivePong,
  ProtocolViolation,
  Role,
  decode_message,
  encode_message,
)
from .signaling_connection import POLICY_VIOLATION, SignalingConnection
import asyncio
import logging

logger = logging.getLogger(__name__)

@dataclass
class Room:
  initiator: Optional[SignalingConnection] = None
  responder: Optional[SignalingConnection] = None

  def occupant(self, role: Role) -> Optional[SignalingConnection]:
    return self.initiator if role is Role.INITIATOR else self.responder

  def occupy(self, role: Role, connection: SignalingConnection):
    if role is Role.INITIATOR:
      self.initiator = connection
    else:
      self.responder = connection

  def vacate(self, role: Role):
    self.occupy(role, None)

  @property
  def is_full(self) -> bool:
    return self.initiator is not None and self.responder is not None

  def reset(self):
    self.initiator = None
    self.responder = None

class RelayCoordinator:
  """
  Pairs one initiator and one responder in a single room and relays
  signaling traffic between them. Payloads are forwarded as received.
  """

  def __init__(self, room: Optional[Room] = None):
    self.room = room if room is not None else Room()
    # Every open connection, assigned or not: {connection_id: connection}
    self.connections: Dict[str, SignalingConnection] = {}
    self._lock = asyncio.Lock()

  def on_connect(self, connection: SignalingConnection):
    self.connections[connection.id] = connection

  async def on_message(self, connection: SignalingConnection, raw: Union[str, bytes]):
    connection.touch()

    try:
      message = decode_message(raw)
    except ProtocolViolation as e:
      # A broken join is a join violation whether or not a role is already held
      if connection.assigned_role is None or e.message_type == "join":
        logger.warning(f"[Assignment] Malformed message from {connection!r}, disconnecting: {e}")
        await connection.close(code=POLICY_VIOLATION, reason="Malformed signaling message")
      else:
        logger.warning(f"Dropping malformed message from {connection!r}: {e}")
      return

    if isinstance(message, KeepalivePing):
      await self._deliver(connection, PONG)
    elif isinstance(message, KeepalivePong):
      pass
    elif isinstance(message, JoinMessage):
      await self._join(connection, message.role)
    elif isinstance(message, RELAYED_MESSAGES):
      await self._relay(connection, message, raw)
    else:
      assert_never(message)

  async def on_disconnect(self, connection: SignalingConnection):
    async with self._lock:
      self.connections.pop(connection.id, None)
      role = connection.assigned_role
      if role is not None and self.room.occupant(role) is connection:
        self.room.vacate(role)

    logger.info(f"Client ({role.value if role else 'unknown'}) disconnected.")

  def status(self) -> Dict[str, bool]:
    return {
      Role.INITIATOR.value: self.room.initiator is not None,
      Role.RESPONDER.value: self.room.responder is not None,
    }

  async def _join(self, connection: SignalingConnection, role: Role):
    initiator = None

    async with self._lock:
      if connection.assigned_role is not None:
        rejection = f"Connection already joined as {connection.assigned_role.value}"
      elif self.room.occupant(role) is not None:
        rejection = f"Role {role.value} is already taken"
      else:
        rejection = None
        connection.assigned_role = role
        self.room.occupy(role, connection)
        # Only the join that fills the room gets here with is_full set
        if self.room.is_full:
          initiator = self.room.initiator

    if rejection:
      logger.info(f"[Assignment] {rejection}. Disconnecting {connection!r}.")
      await connection.close(code=POLICY_VIOLATION, reason=rejection)
      return

    logger.info(f"[Assignment] Client registered as: {role.value}")

    if initiator is not None:
      logger.info("[Notification] Both peers present. Notifying initiator to start negotiation.")
      await self._deliver(initiator, encode_message(InitiateMessage()))

  async def _relay(self, sender: SignalingConnection, message, raw: Union[str, bytes]):
    if sender.assigned_role is None:
      logger.warning(f"Dropping {message.type} from {sender!r}: no role assigned")
      return

    async with self._lock:
      target = self.room.occupant(sender.assigned_role.other)

    if target is None or target is sender or not target.is_open:
      logger.debug(f"Dropping {message.type} from {sender.assigned_role.value}: peer not available")
      return

    logger.debug(f"Relaying {message.type} from {sender.assigned_role.value} to {target.assigned_role.value}")
    await self._deliver(target, raw if isinstance(raw, str) else raw.decode("utf-8"))

  async def _deliver(self, connection: SignalingConnection, text: str):
    try:
      await connection.send_text(text)
    except (WebSocketDisconnect, RuntimeError, OSError) as e:
      # Relay is best effort, the sender never hears about a failed delivery
      logger.info(f"Could not deliver to {connection!r}: {e!r}")
