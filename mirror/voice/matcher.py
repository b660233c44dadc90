"""Wake phrase matching over recognition results."""

from __future__ import annotations

from collections.abc import Sequence

from .models import TranscriptEvent


def normalize_transcript(text: str | None) -> str:
    return (text or "").strip().casefold()


def match_wake_phrase(
    transcripts: Sequence[TranscriptEvent],
    wake_phrase: str,
    start_index: int = 0,
) -> bool:
    """Return True when a finalized transcript at or after ``start_index`` contains the wake phrase.

    Earlier entries were already scanned by a previous batch and are skipped.
    Scanning stops at the first hit.
    """
    needle = normalize_transcript(wake_phrase)
    if not needle:
        return False
    for event in transcripts[max(0, start_index) :]:
        if not event.is_final:
            continue
        if needle in normalize_transcript(event.text):
            return True
    return False
