import asyncio
import json
import pytest
import websockets
from peer.negotiation_agent import NegotiationPhase
from peer.signaling_client import SignalingClient
from schemas.calls.call_schema import InitiateMessage, Role

class FakeWebSocket:
  """Scripted relay side: tests push incoming frames, None closes the socket."""

  def __init__(self):
    self.incoming = asyncio.Queue()
    self.sent = []

  async def send(self, text):
    self.sent.append(text)

  def __aiter__(self):
    return self

  async def __anext__(self):
    item = await self.incoming.get()
    if item is None:
      raise StopAsyncIteration
    return item

  async def __aenter__(self):
    return self

  async def __aexit__(self, *args):
    return False

  def records(self):
    return [json.loads(text) for text in self.sent if text not in ("ping", "pong")]

@pytest.fixture
def relay(monkeypatch):
  websocket = FakeWebSocket()
  monkeypatch.setattr(websockets, "connect", lambda url, **kwargs: websocket)
  return websocket

async def wait_for(predicate, timeout=1.0):
  async def poll():
    while not predicate():
      await asyncio.sleep(0.001)
  await asyncio.wait_for(poll(), timeout)

async def test_joins_with_role_on_open(relay, engine):
  client = SignalingClient("ws://relay/", Role.RESPONDER, engine, keepalive_interval=60)
  relay.incoming.put_nowait(None)

  phase = await client.run()

  assert relay.records()[0] == {"type": "join", "role": "responder"}
  assert phase is NegotiationPhase.IDLE
  assert engine.closed

async def test_initiate_produces_offer(relay, engine):
  client = SignalingClient("ws://relay/", Role.INITIATOR, engine, keepalive_interval=60)
  task = asyncio.ensure_future(client.run())

  relay.incoming.put_nowait('{"type": "initiate"}')
  await wait_for(lambda: len(relay.records()) == 2)
  relay.incoming.put_nowait('{"type": "answer", "sdp": "v=0 answer"}')
  await wait_for(lambda: client.agent.phase is NegotiationPhase.HAVE_REMOTE_DESCRIPTION)
  relay.incoming.put_nowait(None)
  phase = await task

  assert relay.records()[1] == {"type": "offer", "sdp": "v=0 offer"}
  assert phase is NegotiationPhase.HAVE_REMOTE_DESCRIPTION

async def test_sends_keepalive_pings(relay, engine):
  client = SignalingClient("ws://relay/", Role.RESPONDER, engine, keepalive_interval=0.01)
  task = asyncio.ensure_future(client.run())

  await wait_for(lambda: relay.sent.count("ping") >= 2)
  relay.incoming.put_nowait(None)
  await task

async def test_keepalive_traffic_and_garbage_skip_the_agent(relay, engine):
  client = SignalingClient("ws://relay/", Role.RESPONDER, engine, keepalive_interval=60)
  task = asyncio.ensure_future(client.run())

  relay.incoming.put_nowait("pong")
  relay.incoming.put_nowait("ping")
  relay.incoming.put_nowait("{broken")
  relay.incoming.put_nowait('{"type": "offer", "sdp": "v=0 remote offer"}')
  await wait_for(lambda: any(r["type"] == "answer" for r in relay.records()))
  relay.incoming.put_nowait(None)
  await task

  assert "pong" in relay.sent
  assert engine.remote.sdp == "v=0 remote offer"

async def test_send_after_close_raises(relay, engine):
  client = SignalingClient("ws://relay/", Role.INITIATOR, engine, keepalive_interval=60)
  relay.incoming.put_nowait(None)
  await client.run()

  with pytest.raises(ConnectionError):
    await client.send(InitiateMessage())
