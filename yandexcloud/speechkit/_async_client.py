"""
Asynchronous client for Yandex SpeechKit.

This module provides the main AsyncClient class that recognizes speech and
synthesizes it using the SpeechKit v1 REST API.
"""

from __future__ import annotations

import os
import time
from enum import Enum
from typing import Any
from typing import Optional
from typing import TypeVar

from ._auth import ApiKeyAuth
from ._auth import AuthBase
from ._auth import OAuthTokenAuth
from ._exceptions import ApiError
from ._exceptions import ConfigurationError
from ._exceptions import InvalidArgumentError
from ._logging import get_logger
from ._models import SUPPORTED_SAMPLE_RATES
from ._models import AudioFormat
from ._models import AudioPayload
from ._models import ConnectionConfig
from ._models import Emotion
from ._models import Language
from ._models import Topic
from ._models import Voice
from ._transport import Transport

E = TypeVar("E", bound=Enum)

MIN_SPEED = 0.1
MAX_SPEED = 3.0


class AsyncClient:
    """
    Asynchronous client for Yandex SpeechKit recognition and synthesis.

    Every call asks the authenticator for current auth headers, so an expired
    IAM token is refreshed transparently before the request is sent. All HTTP
    calls share one session.

    Args:
        auth: Authentication instance. If not provided, uses ApiKeyAuth when
            an API key is given, otherwise OAuthTokenAuth.
        folder_id: Cloud folder id. Falls back to YC_FOLDER_ID.
        oauth_token: Account OAuth token (used only if auth not provided).
        api_key: Service account API key (used only if auth not provided).
        stt_url: Recognition endpoint. Falls back to YC_STT_URL.
        tts_url: Synthesis endpoint. Falls back to YC_TTS_URL.
        conn_config: Connection configuration with timeouts.

    Raises:
        ConfigurationError: If the folder id or credentials are missing.

    Examples:
        >>> async with AsyncClient(oauth_token="token", folder_id="folder") as client:
        ...     text = await client.recognize(ogg_data, AudioFormat.OGG_OPUS)
        ...     audio = await client.synthesize("Привет", AudioFormat.OGG_OPUS)
    """

    STT_URL = "https://stt.api.cloud.yandex.net/speech/v1/stt:recognize"
    TTS_URL = "https://tts.api.cloud.yandex.net/speech/v1/tts:synthesize"

    def __init__(
        self,
        auth: Optional[AuthBase] = None,
        *,
        folder_id: Optional[str] = None,
        oauth_token: Optional[str] = None,
        api_key: Optional[str] = None,
        stt_url: Optional[str] = None,
        tts_url: Optional[str] = None,
        conn_config: Optional[ConnectionConfig] = None,
    ) -> None:
        self._folder_id = folder_id or os.environ.get("YC_FOLDER_ID")
        if not self._folder_id:
            raise ConfigurationError("Folder id required: provide folder_id or set YC_FOLDER_ID")

        self._conn_config = conn_config or ConnectionConfig()
        if auth is None:
            if api_key:
                auth = ApiKeyAuth(api_key)
            else:
                auth = OAuthTokenAuth(oauth_token, conn_config=self._conn_config)
        self._auth = auth

        self._stt_url = stt_url or os.environ.get("YC_STT_URL") or self.STT_URL
        self._tts_url = tts_url or os.environ.get("YC_TTS_URL") or self.TTS_URL
        self._transport = Transport(self._conn_config)

        self._logger = get_logger(__name__)
        self._logger.debug(
            "AsyncClient initialized (request_id=%s, folder_id=%s)", self._transport.request_id, self._folder_id
        )

    async def __aenter__(self) -> AsyncClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def recognize(
        self,
        data: bytes,
        format: AudioFormat,
        *,
        language: Language = Language.RUSSIAN,
        topic: Topic = Topic.GENERAL,
        profanity_filter: bool = False,
        sample_rate: int = 48000,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Recognize text from audio data.

        Args:
            data: Audio data, raw PCM without header or Ogg/Opus.
            format: Format of ``data``.
            language: Recognition language.
            topic: Recognition topic.
            profanity_filter: Mask profanity in the result.
            sample_rate: Sample rate of PCM data. Must be 8000, 16000 or 48000.
            timeout: Overrides the configured operation timeout.

        Returns:
            Recognized text.

        Raises:
            InvalidArgumentError: If the audio is empty, an enum parameter has an
                unknown value or the sample rate is not supported.
            AuthenticationError: If an auth token can't be obtained.
            ApiError: If the request fails or the response has no result.
            CancelledError: If the call was cancelled.
        """
        if not data:
            raise InvalidArgumentError("Audio data is empty")
        format = _coerce(AudioFormat, format, "format")
        language = _coerce(Language, language, "language")
        topic = _coerce(Topic, topic, "topic")
        _check_sample_rate(format, sample_rate)

        params = {
            "folderId": self._folder_id,
            "lang": language.value,
            "topic": topic.value,
            "profanityFilter": "true" if profanity_filter else "false",
            "format": format.value,
        }
        if format == AudioFormat.PCM:
            params["sampleRateHertz"] = str(sample_rate)

        headers = await self._auth.get_auth_headers()

        self._logger.debug("Recognizing text (params=%s, bytes=%d)", params, len(data))
        started = time.perf_counter()
        response = await self._transport.post_json(
            self._stt_url, headers=headers, params=params, data=data, timeout=timeout
        )
        elapsed = time.perf_counter() - started

        result = response.get("result") if isinstance(response, dict) else None
        if not isinstance(result, str):
            self._logger.error("Failed to parse the response: %s", response)
            raise ApiError(f"Response has no result: {response}")

        self._logger.debug("Recognized text '%s' in %.3fs", result, elapsed)
        return result

    async def recognize_payload(self, payload: AudioPayload, **kwargs: Any) -> str:
        """
        Recognize text from an AudioPayload.

        The sample rate of PCM payloads is taken from their wave format. Other
        keyword arguments are passed to recognize().
        """
        if payload.wave_format is not None and payload.format == AudioFormat.PCM:
            if payload.wave_format.channels != 1 or payload.wave_format.sample_width != 2:
                raise InvalidArgumentError("PCM audio must be 16-bit mono")
            kwargs["sample_rate"] = payload.wave_format.sample_rate
        return await self.recognize(payload.data, payload.format, **kwargs)

    async def synthesize(
        self,
        text: str,
        format: AudioFormat,
        *,
        language: Language = Language.RUSSIAN,
        voice: Voice = Voice.OKSANA,
        emotion: Emotion = Emotion.NEUTRAL,
        speed: float = 1.0,
        sample_rate: int = 48000,
        timeout: Optional[float] = None,
    ) -> bytes:
        """
        Synthesize speech from text.

        Args:
            text: Text to synthesize.
            format: Output audio format.
            language: Synthesis language.
            voice: Voice.
            emotion: Emotional tone.
            speed: Speech rate in the range [0.1, 3.0].
            sample_rate: Sample rate of PCM output. Must be 8000, 16000 or 48000.
            timeout: Overrides the configured operation timeout.

        Returns:
            Synthesized audio data. PCM output is 16-bit mono.

        Raises:
            InvalidArgumentError: If the text is empty, the speed is out of range,
                an enum parameter has an unknown value or the sample rate is
                not supported.
            AuthenticationError: If an auth token can't be obtained.
            ApiError: If the request fails or returns no audio.
            CancelledError: If the call was cancelled.
        """
        if not text:
            raise InvalidArgumentError("Text is empty")
        if not MIN_SPEED <= speed <= MAX_SPEED:
            raise InvalidArgumentError(f"Speed can be set in the range of [{MIN_SPEED} .. {MAX_SPEED}]")
        format = _coerce(AudioFormat, format, "format")
        language = _coerce(Language, language, "language")
        voice = _coerce(Voice, voice, "voice")
        emotion = _coerce(Emotion, emotion, "emotion")
        _check_sample_rate(format, sample_rate)

        form = {
            "text": text,
            "lang": language.value,
            "folderId": self._folder_id,
            "format": format.value,
            "sampleRateHertz": str(sample_rate),
            "voice": voice.value,
            "emotion": emotion.value,
            "speed": str(float(speed)),
        }

        headers = await self._auth.get_auth_headers()

        self._logger.debug("Synthesizing with params %s", {k: v for k, v in form.items() if k != "text"})
        started = time.perf_counter()
        audio = await self._transport.post_bytes(self._tts_url, headers=headers, data=form, timeout=timeout)
        elapsed = time.perf_counter() - started

        if not audio:
            raise ApiError("Speech synthesizer returned 0 bytes")

        self._logger.debug("Synthesized %d bytes in %.3fs", len(audio), elapsed)
        return audio

    async def close(self) -> None:
        """
        Close the client and the authenticator.

        Safe to call multiple times.
        """
        try:
            await self._transport.close()
        finally:
            await self._auth.close()


def _check_sample_rate(format: AudioFormat, sample_rate: int) -> None:
    if format == AudioFormat.PCM and sample_rate not in SUPPORTED_SAMPLE_RATES:
        raise InvalidArgumentError(
            f"Invalid sample rate {sample_rate}, expected one of {sorted(SUPPORTED_SAMPLE_RATES)}"
        )


def _coerce(enum_type: type[E], value: Any, name: str) -> E:
    try:
        return enum_type(value)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_type)
        raise InvalidArgumentError(f"Invalid {name} {value!r}, expected one of: {allowed}") from e
