from aiortc.contrib.media import MediaPlayer
from core.settings import settings
from peer.aiortc_engine import AiortcNegotiationEngine
from peer.signaling_client import SignalingClient
from schemas.calls.call_schema import Role
import websockets
import argparse
import asyncio
import logging
import ssl

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

def parse_args():
  ap = argparse.ArgumentParser(description="Join the signaling relay as one side of a call")
  ap.add_argument("--role", choices=[role.value for role in Role], required=True,
                  help="initiator sends the offer, responder answers it")
  ap.add_argument("--url", default=settings.SIGNALING_URL,
                  help="Signaling relay URL, e.g. wss://192.168.0.10:8080/")
  ap.add_argument("--media", default=None,
                  help="Optional media source for MediaPlayer (file, device or URL)")
  ap.add_argument("--media-format", default=None,
                  help="Optional MediaPlayer format, e.g. v4l2 or avfoundation")
  ap.add_argument("--insecure", action="store_true",
                  help="Skip TLS certificate checks (self-signed development certificates)")
  return ap.parse_args()

def make_ssl_context(url: str, insecure: bool):
  if not url.startswith("wss://"):
    return None
  context = ssl.create_default_context()
  if insecure:
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
  return context

async def run(args):
  tracks = []
  if args.media:
    player = MediaPlayer(args.media, format=args.media_format)
    tracks = [track for track in (player.audio, player.video) if track is not None]

  engine = AiortcNegotiationEngine(ice_servers=settings.ICE_SERVERS, tracks=tracks)
  client = SignalingClient(
    args.url,
    Role(args.role),
    engine,
    ssl_context=make_ssl_context(args.url, args.insecure),
  )
  try:
    phase = await client.run()
  except (OSError, websockets.WebSocketException) as e:
    logger.error(f"Could not reach signaling server at {args.url}: {e}")
    await engine.close()
    return
  logger.info(f"Call ended in phase {phase.value}")

if __name__ == "__main__":
  try:
    asyncio.run(run(parse_args()))
  except KeyboardInterrupt:
    logger.info("Stopped via KeyboardInterrupt.")
