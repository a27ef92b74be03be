import asyncio
import pytest
from fastapi.testclient import TestClient
from core.coordinator import create_relay_coordinator
from helpers.utils.signaling_connection import SignalingConnection
from peer.negotiation_engine import SessionDescriptor
from routes.main import app

class FakeConnection(SignalingConnection):
  """In-memory stand-in for a WebSocket-backed connection."""

  def __init__(self, name: str):
    super().__init__(websocket=None, connection_id=name)
    self.open = True
    self.received = []
    self.close_code = None
    self.close_reason = None
    self.fail_sends = False

  @property
  def is_open(self) -> bool:
    return self.open

  async def send_text(self, text: str):
    if self.fail_sends:
      raise RuntimeError("Cannot call \"send\" once a close message has been sent.")
    self.received.append(text)

  async def close(self, code: int = 1008, reason: str = ""):
    self.open = False
    self.close_code = code
    self.close_reason = reason

class FakeEngine:
  """Negotiation engine that records calls instead of negotiating."""

  def __init__(self):
    self.on_local_candidate = None
    self.on_session_live = None
    self.on_session_failed = None
    self.calls = []
    self.local = None
    self.remote = None
    self.remote_candidates = []
    self.closed = False
    self.fail_on = set()
    # Cleared to hold create_offer/create_answer until the test releases them
    self.gate = asyncio.Event()
    self.gate.set()

  @property
  def local_description(self):
    return self.local

  def _record(self, name):
    self.calls.append(name)
    if name in self.fail_on:
      raise ValueError(f"{name} failed")

  async def create_offer(self):
    self._record("create_offer")
    await self.gate.wait()
    return SessionDescriptor(type="offer", sdp="v=0 offer")

  async def create_answer(self):
    self._record("create_answer")
    await self.gate.wait()
    return SessionDescriptor(type="answer", sdp="v=0 answer")

  async def set_local_description(self, descriptor):
    self._record("set_local_description")
    self.local = descriptor

  async def set_remote_description(self, descriptor):
    self._record("set_remote_description")
    self.remote = descriptor

  async def add_remote_candidate(self, payload):
    self._record("add_remote_candidate")
    self.remote_candidates.append(payload)

  async def close(self):
    self.closed = True

@pytest.fixture
def coordinator():
  coordinator = create_relay_coordinator()
  app.state.relay_coordinator = coordinator
  return coordinator

@pytest.fixture
def client(coordinator):
  with TestClient(app) as client:
    yield client

@pytest.fixture
def make_connection():
  return FakeConnection

@pytest.fixture
def engine():
  return FakeEngine()
