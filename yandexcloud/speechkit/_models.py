"""
Models for the SpeechKit SDK.

This module contains the enums, data classes and configuration objects used
throughout the SDK. Enum values are the wire tokens expected by the SpeechKit
v1 REST API, so a member can be passed to a request as is.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ._exceptions import InvalidArgumentError

SUPPORTED_SAMPLE_RATES = frozenset({8000, 16000, 48000})
"""Sample rates accepted by the API for linear PCM audio."""


class AudioFormat(str, Enum):
    """
    Audio format of recognized or synthesized speech.

    Attributes:
        PCM: Raw linear PCM data without a WAV header.
        OGG_OPUS: OPUS-encoded audio wrapped into an Ogg container.
    """

    PCM = "lpcm"
    OGG_OPUS = "oggopus"


class Language(str, Enum):
    """Recognition and synthesis language."""

    RUSSIAN = "ru-RU"
    ENGLISH = "en-US"
    TURKISH = "tr-TR"


class Topic(str, Enum):
    """
    Language model used for recognition.

    Attributes:
        GENERAL: Short phrases.
        MAPS: Addresses and organization names.
        DATES: Dates.
        NAMES: First and last names.
        NUMBERS: Numbers.
    """

    GENERAL = "general"
    MAPS = "maps"
    DATES = "dates"
    NAMES = "names"
    NUMBERS = "numbers"


class Voice(str, Enum):
    """Synthesis voice."""

    OKSANA = "oksana"
    JANE = "jane"
    OMAZH = "omazh"
    ZAHAR = "zahar"
    ERMIL = "ermil"
    ALYSS = "alyss"
    FILIPP = "filipp"
    ALENA = "alena"


class Emotion(str, Enum):
    """Emotional tone of the synthesized voice."""

    GOOD = "good"
    EVIL = "evil"
    NEUTRAL = "neutral"


@dataclass
class ConnectionConfig:
    """
    Configuration for HTTP connection parameters.

    Attributes:
        connect_timeout: Timeout in seconds for connection establishment.
        operation_timeout: Default timeout in seconds for a whole API call.
    """

    connect_timeout: float = 30.0
    operation_timeout: float = 300.0


@dataclass(frozen=True)
class WaveFormat:
    """
    Layout of linear PCM samples.

    Attributes:
        sample_rate: Samples per second.
        sample_width: Bytes per sample, 2 for 16-bit audio.
        channels: Number of interleaved channels.
    """

    sample_rate: int = 48000
    sample_width: int = 2
    channels: int = 1

    def __post_init__(self) -> None:
        if self.sample_rate <= 0 or self.sample_width <= 0 or self.channels <= 0:
            raise InvalidArgumentError("Sample rate, sample width and channels must be positive")


@dataclass(frozen=True)
class AudioPayload:
    """
    Audio bytes tagged with their format.

    Linear PCM has no header, so a PCM payload must carry its WaveFormat.

    Attributes:
        data: Audio bytes.
        format: Format of ``data``.
        wave_format: Sample layout, required for PCM.
    """

    data: bytes
    format: AudioFormat
    wave_format: Optional[WaveFormat] = None

    def __post_init__(self) -> None:
        if self.format == AudioFormat.PCM and self.wave_format is None:
            raise InvalidArgumentError("PCM audio requires a wave format")


@dataclass(frozen=True)
class Credential:
    """
    Short-lived bearer token and the moment it was obtained.

    Attributes:
        token: Token value.
        obtained_at: Clock reading (seconds) at which the token was received.
    """

    token: str
    obtained_at: float

    def is_expired(self, now: float, lifetime: float) -> bool:
        return now - self.obtained_at >= lifetime
