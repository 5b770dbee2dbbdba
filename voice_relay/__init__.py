"""Voice Relay — realtime voice proxy and streaming speech pipeline."""

__version__ = "0.1.0"
