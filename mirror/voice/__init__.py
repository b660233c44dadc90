"""
Voice activation pipeline for the mirror kiosk

This package turns a speech recognition engine into a two-phase listener:

- Wake word: continuous recognition session scanned for the wake phrase
- Command: single-shot recognition session that captures one utterance
- Dispatch: the utterance is POSTed to the mirror ``/chat`` endpoint and the
  returned audio is played back
- Recovery: every terminal path (error, completion, dispatch) returns the
  pipeline to passive wake-word listening

Key modules:
- models: Session, transcript, command and pipeline state types
- matcher: Wake phrase matching over transcript batches
- listeners: Wake-word and command listener state machines
- dispatcher: Command dispatch and audio response playback
- recovery: Restart scheduling back to passive listening
- controller: Event loop that owns the pipeline state
- engine: Recognition engine contract and the Wyoming/arecord engine
"""

from __future__ import annotations

__all__ = [
    "audio",
    "controller",
    "dispatcher",
    "engine",
    "listeners",
    "matcher",
    "models",
    "recovery",
    "wyoming",
]
