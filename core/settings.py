from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
  HOST: str = "0.0.0.0"
  PORT: int = 8080
  SSL_CERTFILE: Optional[str] = None
  SSL_KEYFILE: Optional[str] = None
  CORS_ORIGINS: List[str] = ["*"]
  LOG_LEVEL: str = "INFO"

  # Client side
  SIGNALING_URL: str = "ws://localhost:8080/"
  KEEPALIVE_INTERVAL: float = 10.0
  ICE_SERVERS: List[str] = [
    "stun:stun.l.google.com:19302",
    "stun:global.stun.twilio.com:3478",
  ]

  class Config:
    env_file = ".env"

settings = Settings()
