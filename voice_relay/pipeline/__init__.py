"""HTTP speech pipeline phases.

Each phase is a standalone module with a focused responsibility:
  - history:    bounded per-session conversation log
  - segmenter:  token stream → synthesis-sized segments
  - synthesis:  concurrent TTS with ordered output
  - stt_phase:  uploaded audio → transcript
  - routes:     ``POST /voice`` wiring the phases together
"""

from voice_relay.pipeline.history import ConversationHistory
from voice_relay.pipeline.segmenter import TextSegmenter
from voice_relay.pipeline.synthesis import StreamingSynthesisPipeline

__all__ = ["ConversationHistory", "StreamingSynthesisPipeline", "TextSegmenter"]
