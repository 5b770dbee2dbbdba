"""Centralized constants for the voice relay.

All magic numbers, protocol event names and close codes live here for easy maintenance.
"""

# Audio
PCM_AUDIO_FORMAT: str = "pcm16"
PCM_SAMPLE_WIDTH: int = 2  # 16-bit samples → every valid chunk has even length

# Upstream realtime protocol: events we consume
EVENT_SESSION_CREATED: str = "session.created"
EVENT_SESSION_UPDATED: str = "session.updated"
EVENT_ERROR: str = "error"
AUDIO_DELTA_EVENTS: frozenset[str] = frozenset({
    "response.audio.delta",
    "response.output_audio.delta",
})
OUTPUT_TEXT_DONE_EVENT: str = "response.output_text.done"
AUDIO_TRANSCRIPT_DONE_EVENTS: frozenset[str] = frozenset({
    "response.audio_transcript.done",
    "response.output_audio_transcript.done",
})

# Upstream realtime protocol: events we produce
EVENT_SESSION_UPDATE: str = "session.update"
EVENT_INPUT_AUDIO_APPEND: str = "input_audio_buffer.append"

# Client-facing convenience message
ASSISTANT_TEXT_MESSAGE: str = "assistant.text"

# Upstream session
PENDING_EVENTS_MAX: int = 256  # client events held until the session is configured
UPSTREAM_MAX_MESSAGE_BYTES: int = 16 * 1024 * 1024
REALTIME_BETA_HEADER: str = "realtime=v1"

# WebSocket close codes
CLOSE_NORMAL: int = 1000
CLOSE_UPSTREAM_ERROR: int = 1011
CLOSE_REASON_CONNECT_FAILED: str = "Failed to connect to upstream"
CLOSE_REASON_UPSTREAM_ERROR: str = "Upstream connection error"

# Session config
SPEED_MIN: float = 0.25
SPEED_MAX: float = 4.0
TOOL_CHOICE_MODES: frozenset[str] = frozenset({"auto", "none", "required"})
TURN_DETECTION_MODES: frozenset[str] = frozenset({"server_vad", "semantic_vad", "none"})

# Segmentation (streaming synthesis)
SEGMENT_PUNCTUATION: str = ".,!?;:"
SEGMENT_MIN_CHARS: int = 8
SEGMENT_FIRST_MIN_CHARS: int = 6  # lower for the first segment to cut time-to-first-audio
SEGMENT_MAX_CHARS: int = 30
SYNTHESIS_MAX_IN_FLIGHT: int = 3

# Conversation history
HISTORY_MAX_TURNS: int = 10

# HTTP provider timeouts (seconds)
STT_TIMEOUT: float = 30.0
LLM_TIMEOUT: float = 60.0
TTS_TIMEOUT: float = 30.0
AUTOMATION_FETCH_TIMEOUT: float = 10.0

# Session identifiers
DEFAULT_SESSION_ID: str = "default"
SESSION_ID_HEADER: str = "x-session-id"
