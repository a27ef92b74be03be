"""Interface the negotiation agent drives.

An engine wraps one peer-to-peer session attempt. It computes offers and
answers, applies descriptions, accepts remote path candidates and reports
what it discovers through the listener attributes below. The agent assigns
the listeners; the engine calls them from its own event handlers.
"""

from pydantic import BaseModel
from typing import Any, Callable, Literal, Optional, Protocol

class SessionDescriptor(BaseModel):
  type: Literal["offer", "answer"]
  sdp: str

LocalCandidateListener = Callable[[Any], None]
SessionListener = Callable[[], None]

class NegotiationEngine(Protocol):
  on_local_candidate: Optional[LocalCandidateListener]
  on_session_live: Optional[SessionListener]
  on_session_failed: Optional[SessionListener]

  @property
  def local_description(self) -> Optional[SessionDescriptor]:
    """The local description as applied, including any gathered candidates."""
    ...

  async def create_offer(self) -> SessionDescriptor:
    ...

  async def create_answer(self) -> SessionDescriptor:
    ...

  async def set_local_description(self, descriptor: SessionDescriptor) -> None:
    ...

  async def set_remote_description(self, descriptor: SessionDescriptor) -> None:
    ...

  async def add_remote_candidate(self, payload: Any) -> None:
    ...

  async def close(self) -> None:
    ...
