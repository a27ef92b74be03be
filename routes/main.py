from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from core.coordinator import create_relay_coordinator
from core.settings import settings
from .calls.call_route import router as call_router

app = FastAPI(
  title="Two-party signaling relay",
  description="Pairs an initiator and a responder and relays their WebRTC signaling",
)

app.state.relay_coordinator = create_relay_coordinator()

app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.CORS_ORIGINS,
  allow_credentials=True,
  allow_methods=["*"],  # Allow all HTTP methods
  allow_headers=["*"],  # Allow all headers
)

@app.get('/')
async def get_homepage():
  return "signaling relay"

app.include_router(call_router, tags=["signaling"])
