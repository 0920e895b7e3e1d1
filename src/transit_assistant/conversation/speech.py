"""Speech output: text clean-up before synthesis and error policy."""

import logging
import re
import sys
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)

# Error codes raised when speech is cut short on purpose
BENIGN_SPEECH_ERRORS = frozenset({"interrupted", "canceled"})

_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_EMPHASIS = re.compile(r"(\*\*|\*|~~|`)(.+?)\1", re.DOTALL)
# Underscores only delimit at word edges, so snake_case names survive
_UNDERSCORE_EMPHASIS = re.compile(r"(?<!\w)(__|_)(.+?)\1(?!\w)", re.DOTALL)
_HEADING = re.compile(r"^\s{0,3}#{1,6}\s*", re.MULTILINE)
_BULLET = re.compile(r"^\s*(?:[-*+]|\d+\.)\s+", re.MULTILINE)


class SpeechError(Exception):
    """Speech synthesis failed."""

    def __init__(self, code: str, message: str | None = None):
        super().__init__(message or f"Speech synthesis error: {code}")
        self.code = code


class SpeechOutput(Protocol):
    async def speak(self, text: str) -> None: ...

    def stop(self) -> None: ...


def prepare_for_speech(text: str) -> str:
    """Strip markdown emphasis, headings, bullets and links so it is not read aloud.

    Example: "**Bus 12** leaves at *14h30*" -> "Bus 12 leaves at 14h30"
    """
    text = _LINK.sub(r"\1", text)
    previous = None
    while previous != text:
        previous = text
        text = _EMPHASIS.sub(r"\2", text)
        text = _UNDERSCORE_EMPHASIS.sub(r"\2", text)
    text = _HEADING.sub("", text)
    text = _BULLET.sub("", text)
    return text.strip()


async def speak_safely(output: SpeechOutput, text: str) -> None:
    """Speak text, treating interruptions as a normal end of speech.

    Raises:
        SpeechError: For any non-benign synthesis failure.
    """
    try:
        await output.speak(prepare_for_speech(text))
    except SpeechError as e:
        if e.code in BENIGN_SPEECH_ERRORS:
            logger.debug(f"Speech stopped: {e.code}")
            return
        raise


class ConsoleSpeechOutput:
    """Writes answers to a stream in place of a speech synthesizer."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream or sys.stdout

    async def speak(self, text: str) -> None:
        print(text, file=self._stream, flush=True)

    def stop(self) -> None:
        pass
