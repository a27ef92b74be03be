from peer.aiortc_engine import AiortcNegotiationEngine, candidate_from_payload, candidate_to_payload

def test_browser_candidate_payload():
  candidate = candidate_from_payload({
    "candidate": "candidate:842163049 1 udp 1677729535 203.0.113.7 46154 typ srflx raddr 0.0.0.0 rport 0",
    "sdpMid": "0",
    "sdpMLineIndex": 0,
  })

  assert candidate.ip == "203.0.113.7"
  assert candidate.port == 46154
  assert candidate.type == "srflx"
  assert candidate.sdpMid == "0"
  assert candidate.sdpMLineIndex == 0

def test_bare_candidate_string():
  candidate = candidate_from_payload("candidate:1 1 udp 2122260223 10.0.0.2 54321 typ host")

  assert candidate.ip == "10.0.0.2"
  assert candidate.sdpMid is None

def test_end_of_candidates_marker():
  assert candidate_from_payload({"candidate": "", "sdpMid": "0"}) is None

def test_local_candidate_payload_is_browser_shaped():
  candidate = candidate_from_payload({"candidate": "candidate:1 1 udp 2122260223 10.0.0.2 54321 typ host", "sdpMid": "0", "sdpMLineIndex": 0})
  payload = candidate_to_payload(candidate)

  assert payload["candidate"].startswith("candidate:1 1 udp 2122260223 10.0.0.2 54321 typ host")
  assert payload["sdpMid"] == "0"
  assert payload["sdpMLineIndex"] == 0

async def test_offer_without_tracks_still_has_media_section():
  engine = AiortcNegotiationEngine()
  try:
    offer = await engine.create_offer()

    assert offer.type == "offer"
    assert "m=video" in offer.sdp
    assert engine.local_description is None
  finally:
    await engine.close()

async def test_closing_is_neither_live_nor_failed():
  engine = AiortcNegotiationEngine()
  events = []
  engine.on_session_live = lambda: events.append("live")
  engine.on_session_failed = lambda: events.append("failed")

  await engine.close()

  assert events == []
