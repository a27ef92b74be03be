from aiortc import (
  MediaStreamTrack,
  RTCConfiguration,
  RTCIceCandidate,
  RTCIceServer,
  RTCPeerConnection,
  RTCSessionDescription,
)
from aiortc.sdp import candidate_from_sdp, candidate_to_sdp
from typing import Any, Dict, Iterable, Optional
from .negotiation_engine import LocalCandidateListener, SessionDescriptor, SessionListener
import logging

logger = logging.getLogger(__name__)

CANDIDATE_PREFIX = "candidate:"

def candidate_from_payload(payload: Any) -> Optional[RTCIceCandidate]:
  """Browser-style {candidate, sdpMid, sdpMLineIndex} (or a bare string) to aiortc."""
  if isinstance(payload, str):
    payload = {"candidate": payload}

  sdp = payload.get("candidate") or ""
  if sdp.startswith(CANDIDATE_PREFIX):
    sdp = sdp[len(CANDIDATE_PREFIX):]
  if not sdp:
    return None

  candidate = candidate_from_sdp(sdp)
  candidate.sdpMid = payload.get("sdpMid")
  candidate.sdpMLineIndex = payload.get("sdpMLineIndex")
  return candidate

def candidate_to_payload(candidate: RTCIceCandidate) -> Dict[str, Any]:
  return {
    "candidate": CANDIDATE_PREFIX + candidate_to_sdp(candidate),
    "sdpMid": candidate.sdpMid,
    "sdpMLineIndex": candidate.sdpMLineIndex,
  }

class AiortcNegotiationEngine:
  """
  Negotiation engine backed by an aiortc RTCPeerConnection.

  aiortc gathers its own candidates while the local description is set and
  embeds them in the SDP, so local_description carries them; remote
  candidates trickled by browsers are still accepted one by one.
  """

  def __init__(self, ice_servers: Iterable[str] = (), tracks: Iterable[MediaStreamTrack] = ()):
    servers = [RTCIceServer(urls=url) for url in ice_servers]
    self.pc = RTCPeerConnection(configuration=RTCConfiguration(iceServers=servers))
    self.on_local_candidate: Optional[LocalCandidateListener] = None
    self.on_session_live: Optional[SessionListener] = None
    self.on_session_failed: Optional[SessionListener] = None

    for track in tracks:
      self.pc.addTrack(track)

    self.pc.on("connectionstatechange", self._on_connection_state_change)
    self.pc.on("icecandidate", self._on_icecandidate)
    self.pc.on("track", self._on_track)

  @property
  def local_description(self) -> Optional[SessionDescriptor]:
    description = self.pc.localDescription
    if description is None:
      return None
    return SessionDescriptor(type=description.type, sdp=description.sdp)

  async def create_offer(self) -> SessionDescriptor:
    # Without any media section the offer has nothing to negotiate
    if not self.pc.getTransceivers():
      self.pc.addTransceiver("video", direction="recvonly")
    offer = await self.pc.createOffer()
    return SessionDescriptor(type=offer.type, sdp=offer.sdp)

  async def create_answer(self) -> SessionDescriptor:
    answer = await self.pc.createAnswer()
    return SessionDescriptor(type=answer.type, sdp=answer.sdp)

  async def set_local_description(self, descriptor: SessionDescriptor) -> None:
    await self.pc.setLocalDescription(RTCSessionDescription(sdp=descriptor.sdp, type=descriptor.type))

  async def set_remote_description(self, descriptor: SessionDescriptor) -> None:
    await self.pc.setRemoteDescription(RTCSessionDescription(sdp=descriptor.sdp, type=descriptor.type))

  async def add_remote_candidate(self, payload: Any) -> None:
    candidate = candidate_from_payload(payload)
    if candidate is not None:
      await self.pc.addIceCandidate(candidate)

  async def close(self) -> None:
    await self.pc.close()

  def _on_connection_state_change(self):
    state = self.pc.connectionState
    logger.info(f"Connection state change: {state}")
    if state == "connected" and self.on_session_live:
      self.on_session_live()
    elif state == "failed" and self.on_session_failed:
      self.on_session_failed()

  def _on_icecandidate(self, candidate: Optional[RTCIceCandidate]):
    if candidate is not None and self.on_local_candidate:
      self.on_local_candidate(candidate_to_payload(candidate))

  def _on_track(self, track: MediaStreamTrack):
    logger.info(f"Received remote {track.kind} track")
