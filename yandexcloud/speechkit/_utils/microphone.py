from __future__ import annotations

import asyncio
import logging
from typing import Any
from typing import Optional

from .._models import WaveFormat

logger = logging.getLogger(__name__)


class Microphone:
    """
    Microphone capture of 16-bit linear PCM audio.
    Requires pyaudio to be installed for actual microphone access.

    Examples:
        Basic usage:
            >>> mic = Microphone(sample_rate=48000)
            >>> if mic.start():
            ...     pcm = await mic.record(5.0)
            >>> mic.stop()
    """

    def __init__(
        self,
        sample_rate: int = 48000,
        channels: int = 1,
        chunk_size: int = 4096,
        device_index: Optional[int] = None,
    ):
        if sample_rate <= 0 or channels <= 0 or chunk_size <= 0:
            raise ValueError("Sample rate, channels, and chunk size must be positive")

        self._sample_rate = sample_rate
        self._channels = channels
        self._chunk_size = chunk_size
        self._device_index = device_index
        self._is_recording = False
        self._audio: Optional[Any] = None
        self._stream: Optional[Any] = None

        try:
            import pyaudio

            self._pyaudio = pyaudio

        except ImportError:
            self._pyaudio = None

    @property
    def wave_format(self) -> WaveFormat:
        return WaveFormat(sample_rate=self._sample_rate, sample_width=2, channels=self._channels)

    @property
    def is_available(self) -> bool:
        """Check if microphone is available (pyaudio installed)."""
        return self._pyaudio is not None

    @property
    def is_recording(self) -> bool:
        return self._is_recording

    def start(self) -> bool:
        """Start microphone recording. Returns True if successful."""
        if not self._pyaudio:
            return False

        if self._is_recording:
            return True

        try:
            self._audio = self._pyaudio.PyAudio()
            self._stream = self._audio.open(
                format=self._pyaudio.paInt16,
                channels=self._channels,
                rate=self._sample_rate,
                input=True,
                frames_per_buffer=self._chunk_size,
                input_device_index=self._device_index,
            )
            self._is_recording = True
            logger.info("Microphone started: %dHz, %d channel(s)", self._sample_rate, self._channels)
            return True

        except Exception as e:
            logger.error("Failed to start microphone: %s", e)
            self._cleanup()
            return False

    def stop(self) -> None:
        """Stop microphone recording and cleanup resources."""
        if not self._is_recording:
            return

        self._is_recording = False
        self._cleanup()
        logger.info("Microphone stopped")

    async def record(self, seconds: float) -> bytes:
        """Record ``seconds`` of audio and return raw PCM without header."""
        if not self._is_recording or not self._stream:
            raise RuntimeError("Microphone not recording")

        total_frames = int(seconds * self._sample_rate)
        chunks = []
        while total_frames > 0:
            frames = min(self._chunk_size, total_frames)
            data: bytes = await asyncio.to_thread(self._stream.read, frames, exception_on_overflow=False)
            chunks.append(data)
            total_frames -= frames
        return b"".join(chunks)

    def _cleanup(self) -> None:
        if self._stream:
            try:
                self._stream.stop_stream()
                self._stream.close()
            except Exception:
                pass
            self._stream = None

        if self._audio:
            try:
                self._audio.terminate()
            except Exception:
                pass
            self._audio = None
