"""
Regen

Audio regeneration workflow: transcribe, enhance and re-synthesize audio files
through external speech services.
"""

__version__ = "0.1.0"
