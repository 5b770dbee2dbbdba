from voice_relay.realtime.frames import BinaryFrame, TextFrame, classify
from voice_relay.realtime.gateway import ClientState, SessionGateway
from voice_relay.realtime.upstream import UpstreamSession, UpstreamState

__all__ = [
    "BinaryFrame",
    "ClientState",
    "SessionGateway",
    "TextFrame",
    "UpstreamSession",
    "UpstreamState",
    "classify",
]
