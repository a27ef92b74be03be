from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from typing import Any, Literal, Optional, Union
from typing_extensions import Annotated
from enum import Enum
import json

# Keepalive probes travel as bare literals, outside the JSON record format.
PING = "ping"
PONG = "pong"

class Role(str, Enum):
  INITIATOR = "initiator"
  RESPONDER = "responder"

  @property
  def other(self) -> "Role":
    return Role.RESPONDER if self is Role.INITIATOR else Role.INITIATOR

class ProtocolViolation(Exception):
  """Raised when text received on a signaling connection is not a known message."""

  def __init__(self, message: str, message_type: Optional[str] = None):
    super().__init__(message)
    # The "type" the sender claimed, when the text got that far
    self.message_type = message_type

class JoinMessage(BaseModel):
  type: Literal["join"] = "join"
  role: Role

class InitiateMessage(BaseModel):
  type: Literal["initiate"] = "initiate"

class OfferMessage(BaseModel):
  type: Literal["offer"] = "offer"
  sdp: str

class AnswerMessage(BaseModel):
  type: Literal["answer"] = "answer"
  sdp: str

class CandidateMessage(BaseModel):
  type: Literal["candidate"] = "candidate"
  candidate: Any = None  # opaque to the relay

class KeepalivePing(BaseModel):
  type: Literal["keepalive-ping"] = "keepalive-ping"

class KeepalivePong(BaseModel):
  type: Literal["keepalive-pong"] = "keepalive-pong"

RecordMessage = Annotated[
  Union[JoinMessage, InitiateMessage, OfferMessage, AnswerMessage, CandidateMessage],
  Field(discriminator="type"),
]

SignalingMessage = Union[
  JoinMessage, InitiateMessage, OfferMessage, AnswerMessage, CandidateMessage,
  KeepalivePing, KeepalivePong,
]

# Messages that only make sense between two paired connections.
RELAYED_MESSAGES = (InitiateMessage, OfferMessage, AnswerMessage, CandidateMessage)

_record_adapter = TypeAdapter(RecordMessage)

def decode_message(raw: Union[str, bytes]) -> SignalingMessage:
  if isinstance(raw, bytes):
    try:
      raw = raw.decode("utf-8")
    except UnicodeDecodeError as e:
      raise ProtocolViolation(f"message is not valid UTF-8: {e}") from e

  if raw == PING:
    return KeepalivePing()
  if raw == PONG:
    return KeepalivePong()

  try:
    data = json.loads(raw)
  except json.JSONDecodeError as e:
    raise ProtocolViolation(f"message is not valid JSON: {e}") from e

  try:
    return _record_adapter.validate_python(data)
  except ValidationError as e:
    message_type = data.get("type") if isinstance(data, dict) else None
    raise ProtocolViolation(
      f"unknown or malformed message: {e.errors()[0]['msg']}",
      message_type=message_type if isinstance(message_type, str) else None,
    ) from e

def encode_message(message: SignalingMessage) -> str:
  if isinstance(message, KeepalivePing):
    return PING
  if isinstance(message, KeepalivePong):
    return PONG
  return json.dumps(message.model_dump(mode="json"))
