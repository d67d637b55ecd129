"""SpeechKit command line demo.

Recognizes speech from a WAV/Ogg file or the microphone, and synthesizes
speech into a WAV file or the default audio output.

Credentials are read from YC_OAUTH_TOKEN (or YC_API_KEY) and YC_FOLDER_ID
unless given as options.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import wave
from typing import Optional

from ._async_client import AsyncClient
from ._converter import AudioConverter
from ._exceptions import ApiError
from ._exceptions import AuthenticationError
from ._exceptions import ConfigurationError
from ._exceptions import ConversionError
from ._exceptions import InvalidArgumentError
from ._helpers import read_audio
from ._models import AudioFormat
from ._models import AudioPayload
from ._models import Emotion
from ._models import Language
from ._models import Topic
from ._models import Voice
from ._models import WaveFormat
from ._utils.microphone import Microphone
from ._utils.player import play_pcm

logger = logging.getLogger("yandexcloud.speechkit.cli")

SPEECHKIT_ERRORS = (
    ApiError,
    AuthenticationError,
    ConfigurationError,
    ConversionError,
    InvalidArgumentError,
)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(prog="speechkit", description="Yandex SpeechKit demo")
    parser.add_argument("--oauth-token", help="Account OAuth token (default: $YC_OAUTH_TOKEN)")
    parser.add_argument("--api-key", help="Service account API key (default: $YC_API_KEY)")
    parser.add_argument("--folder-id", help="Cloud folder id (default: $YC_FOLDER_ID)")
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    parser.add_argument(
        "--language", type=Language, choices=list(Language), default=Language.RUSSIAN, metavar="LANG"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    recognize = subparsers.add_parser("recognize", help="Recognize speech")
    source = recognize.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", help="WAV (16-bit mono) or Ogg/Opus file")
    source.add_argument("--record", type=float, metavar="SECONDS", help="Record from the microphone")
    recognize.add_argument("--opus", action="store_true", help="Convert PCM to Ogg/Opus before sending")
    recognize.add_argument("--encoder", help="Path to opusenc")
    recognize.add_argument("--topic", type=Topic, choices=list(Topic), default=Topic.GENERAL, metavar="TOPIC")
    recognize.add_argument("--profanity-filter", action="store_true")

    synthesize = subparsers.add_parser("synthesize", help="Synthesize speech")
    synthesize.add_argument("text", help="Text to synthesize")
    target = synthesize.add_mutually_exclusive_group(required=True)
    target.add_argument("--output", help="WAV file to write")
    target.add_argument("--play", action="store_true", help="Play on the default audio device")
    synthesize.add_argument("--voice", type=Voice, choices=list(Voice), default=Voice.OKSANA, metavar="VOICE")
    synthesize.add_argument(
        "--emotion", type=Emotion, choices=list(Emotion), default=Emotion.NEUTRAL, metavar="EMOTION"
    )
    synthesize.add_argument("--speed", type=float, default=1.0)
    synthesize.add_argument("--sample-rate", type=int, default=48000)

    return parser.parse_args(argv)


async def load_payload(args: argparse.Namespace) -> AudioPayload:
    """Read the audio to recognize from a file or the microphone."""
    if args.record is not None:
        mic = Microphone(sample_rate=48000)
        if not mic.start():
            raise ConfigurationError("Microphone not available. Install with: pip install pyaudio")
        try:
            logger.info("Recording for %.1f seconds", args.record)
            pcm = await mic.record(args.record)
        finally:
            mic.stop()
        return AudioPayload(pcm, AudioFormat.PCM, mic.wave_format)

    if args.input.lower().endswith(".wav"):
        with wave.open(args.input, "rb") as wav:
            wave_format = WaveFormat(wav.getframerate(), wav.getsampwidth(), wav.getnchannels())
            pcm = wav.readframes(wav.getnframes())
        return AudioPayload(pcm, AudioFormat.PCM, wave_format)

    return AudioPayload(await read_audio(args.input), AudioFormat.OGG_OPUS)


async def recognize(client: AsyncClient, args: argparse.Namespace) -> None:
    payload = await load_payload(args)

    if args.opus and payload.format == AudioFormat.PCM:
        assert payload.wave_format is not None
        logger.info("Converting to OPUS")
        ogg = await AudioConverter(args.encoder).convert_pcm_to_opus(payload.data, payload.wave_format)
        payload = AudioPayload(ogg, AudioFormat.OGG_OPUS)

    text = await client.recognize_payload(
        payload,
        language=args.language,
        topic=args.topic,
        profanity_filter=args.profanity_filter,
    )
    print(text)


async def synthesize(client: AsyncClient, args: argparse.Namespace) -> None:
    pcm = await client.synthesize(
        args.text,
        AudioFormat.PCM,
        language=args.language,
        voice=args.voice,
        emotion=args.emotion,
        speed=args.speed,
        sample_rate=args.sample_rate,
    )
    wave_format = WaveFormat(sample_rate=args.sample_rate)

    if args.play:
        await play_pcm(pcm, wave_format)
        logger.info("Playback finished")
        return

    with wave.open(args.output, "wb") as wav:
        wav.setnchannels(wave_format.channels)
        wav.setsampwidth(wave_format.sample_width)
        wav.setframerate(wave_format.sample_rate)
        wav.writeframes(pcm)
    logger.info("Speech saved to %s", args.output)


async def run(args: argparse.Namespace) -> int:
    try:
        async with AsyncClient(
            folder_id=args.folder_id,
            oauth_token=args.oauth_token,
            api_key=args.api_key,
        ) as client:
            if args.command == "recognize":
                await recognize(client, args)
            else:
                await synthesize(client, args)
    except SPEECHKIT_ERRORS as e:
        logger.error("%s failed: %s", args.command.capitalize(), e)
        return 1
    except (OSError, RuntimeError, wave.Error) as e:
        logger.error("Audio I/O failed: %s", e)
        return 1
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
