from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .._models import WaveFormat

logger = logging.getLogger(__name__)


async def play_pcm(pcm_data: bytes, wave_format: WaveFormat, device_index: Optional[int] = None) -> None:
    """
    Play raw PCM audio on an output device and wait until playback ends.

    Raises:
        RuntimeError: If pyaudio is not installed.
    """
    try:
        import pyaudio
    except ImportError:
        raise RuntimeError("pyaudio is required for playback. Install it with `pip install 'yandexcloud-speechkit[audio]'`")

    def _play() -> None:
        audio = pyaudio.PyAudio()
        try:
            stream = audio.open(
                format=audio.get_format_from_width(wave_format.sample_width),
                channels=wave_format.channels,
                rate=wave_format.sample_rate,
                output=True,
                output_device_index=device_index,
            )
            try:
                stream.write(pcm_data)
            finally:
                stream.stop_stream()
                stream.close()
        finally:
            audio.terminate()

    logger.info("Playing %d bytes of audio", len(pcm_data))
    await asyncio.to_thread(_play)
