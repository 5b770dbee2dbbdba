from voice_relay.audio.llm import ChatStreamer
from voice_relay.audio.stt import OpenAITranscriber
from voice_relay.audio.tts import OpenAISpeech

__all__ = ["ChatStreamer", "OpenAISpeech", "OpenAITranscriber"]
