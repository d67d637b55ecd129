"""Record from the microphone, recognize as PCM, then again as Ogg/Opus."""

import asyncio
import logging

from yandexcloud.speechkit import AsyncClient
from yandexcloud.speechkit import AudioConverter
from yandexcloud.speechkit import AudioFormat
from yandexcloud.speechkit import ConversionError
from yandexcloud.speechkit import Microphone

logging.basicConfig(level=logging.DEBUG)

SECONDS = 5.0


async def main() -> None:
    mic = Microphone(sample_rate=48000)
    if not mic.start():
        print("PyAudio not installed - microphone not available")
        print("Install with: pip install pyaudio")
        return

    print(f"Recording for {SECONDS} seconds...")
    try:
        pcm = await mic.record(SECONDS)
    finally:
        mic.stop()

    # Uses YC_OAUTH_TOKEN and YC_FOLDER_ID from the environment
    async with AsyncClient() as client:
        text = await client.recognize(pcm, AudioFormat.PCM, sample_rate=48000)
        print(f"Recognized text (PCM): {text}")

        try:
            ogg = await AudioConverter().convert_pcm_to_opus(pcm, mic.wave_format)
        except ConversionError as e:
            print(f"Conversion failed: {e}\n{e.error_output}")
            return

        text = await client.recognize(ogg, AudioFormat.OGG_OPUS)
        print(f"Recognized text (Ogg/Opus): {text}")


if __name__ == "__main__":
    asyncio.run(main())
