from core.settings import settings
from schemas.calls.call_schema import (
  PING,
  PONG,
  JoinMessage,
  KeepalivePing,
  KeepalivePong,
  ProtocolViolation,
  Role,
  SignalingMessage,
  decode_message,
  encode_message,
)
from .negotiation_agent import NegotiationAgent, NegotiationPhase
from .negotiation_engine import NegotiationEngine
from typing import Optional, Union
import websockets
import asyncio
import logging
import ssl

logger = logging.getLogger(__name__)

class SignalingClient:
  """
  One participant's connection to the relay.

  Announces the role as soon as the socket opens, pings the relay every
  keepalive_interval seconds so idle transports stay up, and feeds every
  relayed message to a NegotiationAgent. A missing pong is not treated as a
  disconnect; only the transport closing ends the session.
  """

  def __init__(
    self,
    url: str,
    role: Role,
    engine: NegotiationEngine,
    keepalive_interval: float = settings.KEEPALIVE_INTERVAL,
    ssl_context: Optional[ssl.SSLContext] = None,
  ):
    self.url = url
    self.role = role
    self.engine = engine
    self.keepalive_interval = keepalive_interval
    self.ssl_context = ssl_context
    self.agent: Optional[NegotiationAgent] = None
    self._websocket = None

  async def run(self) -> NegotiationPhase:
    """Connect, negotiate, and return the agent's phase once the relay connection closes."""
    options = {"ssl": self.ssl_context} if self.ssl_context is not None else {}
    logger.info(f"Attempting to connect WebSocket to {self.url}")

    async with websockets.connect(self.url, **options) as websocket:
      self._websocket = websocket
      self.agent = NegotiationAgent(self.role, self.engine, self.send)
      logger.info("Connected to signaling server")

      await self.send(JoinMessage(role=self.role))
      keepalive = asyncio.ensure_future(self._keepalive())

      try:
        async for raw in websocket:
          await self._dispatch(raw)
      except websockets.ConnectionClosed as exc:
        logger.warning(f"Signaling connection closed: {exc}")
      finally:
        keepalive.cancel()
        await asyncio.gather(keepalive, return_exceptions=True)
        await self.agent.close()
        self._websocket = None

    logger.info(f"Signaling connection ended in phase {self.agent.phase.value}")
    return self.agent.phase

  async def send(self, message: SignalingMessage):
    if self._websocket is None:
      raise ConnectionError("signaling connection is not open")
    await self._websocket.send(encode_message(message))

  async def _dispatch(self, raw: Union[str, bytes]):
    try:
      message = decode_message(raw)
    except ProtocolViolation as e:
      logger.warning(f"Ignoring malformed message from relay: {e}")
      return

    if isinstance(message, KeepalivePong):
      return
    if isinstance(message, KeepalivePing):
      await self._websocket.send(PONG)
      return
    self.agent.deliver(message)

  async def _keepalive(self):
    while True:
      await asyncio.sleep(self.keepalive_interval)
      try:
        await self._websocket.send(PING)
      except websockets.ConnectionClosed:
        return
