from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Set
from typing_extensions import assert_never
from schemas.calls.call_schema import (
  AnswerMessage,
  CandidateMessage,
  InitiateMessage,
  JoinMessage,
  KeepalivePing,
  KeepalivePong,
  OfferMessage,
  Role,
  SignalingMessage,
)
from .negotiation_engine import NegotiationEngine, SessionDescriptor
import asyncio
import logging

logger = logging.getLogger(__name__)

class NegotiationPhase(str, Enum):
  IDLE = "idle"
  AWAITING_REMOTE_DESCRIPTION = "awaiting-remote-description"
  HAVE_REMOTE_DESCRIPTION = "have-remote-description"
  CONNECTED = "connected"
  FAILED = "failed"

SendMessage = Callable[[SignalingMessage], Awaitable[None]]

class NegotiationAgent:
  """
  Drives one participant's side of the offer/answer exchange.

  Relayed messages are handed over with deliver(), which only enqueues them;
  a single worker applies them to the engine in arrival order, so slow engine
  calls never hold up the receiving side. Remote candidates that arrive before
  any remote description are kept and applied once one is set.
  """

  def __init__(self, role: Role, engine: NegotiationEngine, send: SendMessage):
    self.role = role
    self.engine = engine
    self.phase = NegotiationPhase.IDLE
    self._send = send
    self._inbox: asyncio.Queue = asyncio.Queue()
    self._worker: Optional[asyncio.Task] = None
    self._outgoing: Set[asyncio.Task] = set()
    self._pending_candidates: List[Any] = []
    self._has_remote_description = False
    self._settled = asyncio.Event()
    self._closed = False

    engine.on_local_candidate = self._on_local_candidate
    engine.on_session_live = self._on_session_live
    engine.on_session_failed = self._on_session_failed

  @property
  def closed(self) -> bool:
    return self._closed

  def deliver(self, message: SignalingMessage):
    if self._closed:
      return
    if self._worker is None:
      self._worker = asyncio.ensure_future(self._run())
    self._inbox.put_nowait(message)

  async def join(self):
    """Wait until every delivered message has been handled."""
    await self._inbox.join()

  async def wait_settled(self) -> NegotiationPhase:
    """Wait for the session to become live or fail."""
    await self._settled.wait()
    return self.phase

  async def close(self):
    if self._closed:
      return
    self._closed = True

    tasks = list(self._outgoing)
    if self._worker is not None:
      tasks.append(self._worker)
    for task in tasks:
      task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    self._outgoing.clear()

    try:
      await self.engine.close()
    except Exception as e:
      logger.warning(f"Error while closing negotiation engine: {e!r}")

  async def _run(self):
    while True:
      message = await self._inbox.get()
      try:
        await self._handle(message)
      except Exception:
        logger.exception(f"Error during signaling (type {message.type})")
      finally:
        self._inbox.task_done()

  async def _handle(self, message: SignalingMessage):
    if self.phase is NegotiationPhase.FAILED:
      logger.info(f"[{self.role.value}] Session failed, ignoring {message.type}")
      return

    if isinstance(message, CandidateMessage):
      await self._on_remote_candidate(message.candidate)
      return

    logger.info(f"[{self.role.value}] Received message: {message.type}")

    if isinstance(message, InitiateMessage):
      await self._on_initiate()
    elif isinstance(message, OfferMessage):
      await self._on_offer(message.sdp)
    elif isinstance(message, AnswerMessage):
      await self._on_answer(message.sdp)
    elif isinstance(message, (JoinMessage, KeepalivePing, KeepalivePong)):
      logger.debug(f"[{self.role.value}] Ignoring non-negotiation message {message.type}")
    else:
      assert_never(message)

  async def _on_initiate(self):
    if not self._expect(Role.INITIATOR, NegotiationPhase.IDLE, "initiate"):
      return

    try:
      offer = await self.engine.create_offer()
      await self.engine.set_local_description(offer)
    except Exception as e:
      logger.error(f"[{self.role.value}] Could not create offer: {e!r}")
      return

    local = self.engine.local_description or offer
    await self._send(OfferMessage(sdp=local.sdp))
    self._set_phase(NegotiationPhase.AWAITING_REMOTE_DESCRIPTION)

  async def _on_offer(self, sdp: str):
    if not self._expect(Role.RESPONDER, NegotiationPhase.IDLE, "offer"):
      return

    try:
      await self.engine.set_remote_description(SessionDescriptor(type="offer", sdp=sdp))
      self._has_remote_description = True
      await self._flush_pending_candidates()
      answer = await self.engine.create_answer()
      await self.engine.set_local_description(answer)
    except Exception as e:
      logger.error(f"[{self.role.value}] Could not answer offer: {e!r}")
      return

    local = self.engine.local_description or answer
    await self._send(AnswerMessage(sdp=local.sdp))
    self._set_phase(NegotiationPhase.HAVE_REMOTE_DESCRIPTION)

  async def _on_answer(self, sdp: str):
    if not self._expect(Role.INITIATOR, NegotiationPhase.AWAITING_REMOTE_DESCRIPTION, "answer"):
      return

    try:
      await self.engine.set_remote_description(SessionDescriptor(type="answer", sdp=sdp))
    except Exception as e:
      logger.error(f"[{self.role.value}] Could not apply answer: {e!r}")
      return

    self._has_remote_description = True
    self._set_phase(NegotiationPhase.HAVE_REMOTE_DESCRIPTION)
    await self._flush_pending_candidates()

  async def _on_remote_candidate(self, payload: Any):
    # Empty payload marks the end of the remote side's candidates
    if not payload:
      return
    if not self._has_remote_description:
      self._pending_candidates.append(payload)
      return
    await self._add_remote_candidate(payload)

  async def _flush_pending_candidates(self):
    pending, self._pending_candidates = self._pending_candidates, []
    for payload in pending:
      await self._add_remote_candidate(payload)

  async def _add_remote_candidate(self, payload: Any):
    try:
      await self.engine.add_remote_candidate(payload)
    except Exception as e:
      logger.warning(f"[{self.role.value}] Rejected remote candidate: {e!r}")

  def _expect(self, role: Role, phase: NegotiationPhase, kind: str) -> bool:
    if self.role is not role or self.phase is not phase:
      logger.warning(f"[{self.role.value}] Ignoring {kind} in phase {self.phase.value}")
      return False
    return True

  def _set_phase(self, phase: NegotiationPhase):
    if phase is not self.phase:
      logger.info(f"[{self.role.value}] {self.phase.value} -> {phase.value}")
      self.phase = phase

  def _on_local_candidate(self, payload: Any):
    if self._closed or not payload:
      return
    task = asyncio.ensure_future(self._send(CandidateMessage(candidate=payload)))
    self._outgoing.add(task)
    task.add_done_callback(self._on_outgoing_done)

  def _on_outgoing_done(self, task: asyncio.Task):
    self._outgoing.discard(task)
    if not task.cancelled() and task.exception() is not None:
      logger.warning(f"[{self.role.value}] Could not send local candidate: {task.exception()!r}")

  def _on_session_live(self):
    if self.phase is NegotiationPhase.FAILED:
      return
    self._set_phase(NegotiationPhase.CONNECTED)
    self._settled.set()

  def _on_session_failed(self):
    self._set_phase(NegotiationPhase.FAILED)
    self._settled.set()
