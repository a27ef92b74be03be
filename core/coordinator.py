from fastapi.requests import HTTPConnection
from helpers.utils.relay_coordinator import RelayCoordinator, Room

def create_relay_coordinator() -> RelayCoordinator:
  # One room per process; a multi-room server would key these by room id
  return RelayCoordinator(Room())

def get_relay_coordinator(connection: HTTPConnection) -> RelayCoordinator:
  return connection.app.state.relay_coordinator
