"""
Audio conversion through an external OPUS encoder.

The converter writes audio to temporary files, runs ``opusenc`` (or a
compatible binary invoked as ``<encoder> <input.wav> <output.ogg>``) and
returns the produced Ogg/Opus bytes. Temporary files are removed on every
exit path.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import tempfile
import wave
from typing import Optional
from typing import Union

import aiofiles

from ._exceptions import CancelledError
from ._exceptions import ConversionError
from ._exceptions import InvalidArgumentError
from ._logging import get_logger
from ._models import WaveFormat

DEFAULT_ENCODER = "opusenc"


class AudioConverter:
    """
    Converts raw PCM and WAV audio to OPUS packed into an Ogg container.

    Args:
        encoder_path: Path to the encoder binary. Falls back to OPUSENC_PATH,
            then to ``opusenc`` on PATH.
        timeout: Seconds to wait for the encoder before killing it. None waits forever.
        temp_dir: Directory for temporary files. Defaults to the system temp directory.

    Examples:
        >>> converter = AudioConverter()
        >>> ogg = await converter.convert_pcm_to_opus(pcm, WaveFormat(48000, 2, 1))
    """

    def __init__(
        self,
        encoder_path: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        temp_dir: Optional[str] = None,
    ) -> None:
        self._encoder_path = (
            encoder_path or os.environ.get("OPUSENC_PATH") or shutil.which(DEFAULT_ENCODER) or DEFAULT_ENCODER
        )
        self._timeout = timeout
        self._temp_dir = temp_dir
        self._logger = get_logger(__name__)

    @property
    def encoder_path(self) -> str:
        return self._encoder_path

    async def convert_pcm_to_opus(self, pcm_data: bytes, wave_format: WaveFormat) -> bytes:
        """
        Convert raw PCM data without WAV header to Ogg/Opus.

        Args:
            pcm_data: Raw PCM samples.
            wave_format: Layout of the samples.

        Returns:
            Ogg container with an OPUS-encoded stream.

        Raises:
            InvalidArgumentError: If ``pcm_data`` is empty.
            ConversionError: If the encoder fails or produces nothing.
            CancelledError: If the call was cancelled.
        """
        if not pcm_data:
            raise InvalidArgumentError("PCM data is empty")

        wav_file = self._make_temp_file(".wav")
        try:
            try:
                await asyncio.to_thread(_write_wav, wav_file, pcm_data, wave_format)
            except asyncio.CancelledError as e:
                raise CancelledError("Conversion cancelled") from e
            except (OSError, wave.Error) as e:
                raise ConversionError(f"Failed to write WAV file: {e}") from e
            return await self.convert_wav_to_opus(wav_file)
        finally:
            self._remove(wav_file)

    async def convert_wav_to_opus(self, wav_file: Union[str, os.PathLike]) -> bytes:
        """
        Convert a WAV file to Ogg/Opus.

        Args:
            wav_file: Path to the WAV file. The file is not removed.

        Returns:
            Ogg container with an OPUS-encoded stream.

        Raises:
            ConversionError: If the encoder can't be started, exits with a
                non-zero code, times out or produces an empty file.
            CancelledError: If the call was cancelled.
        """
        ogg_file = self._make_temp_file(".ogg")
        try:
            error_output = await self._run_encoder(os.fspath(wav_file), ogg_file)

            try:
                async with aiofiles.open(ogg_file, "rb") as f:
                    ogg_data = await f.read()
            except asyncio.CancelledError as e:
                raise CancelledError("Conversion cancelled") from e
            except OSError as e:
                raise ConversionError(f"Failed to read encoder output: {e}", error_output=error_output) from e

            if not ogg_data:
                self._logger.debug("%s produced an empty file. stderr:\n%s", self._encoder_path, error_output)
                raise ConversionError(f"{self._encoder_path} produced an empty output", error_output=error_output)

            self._logger.debug("Converted %s to %d bytes of Ogg/Opus", wav_file, len(ogg_data))
            return ogg_data
        finally:
            self._remove(ogg_file)

    async def _run_encoder(self, input_file: str, output_file: str) -> str:
        """Run the encoder to completion and return its captured stderr."""
        self._logger.debug("%s %s %s", self._encoder_path, input_file, output_file)

        try:
            process = await asyncio.create_subprocess_exec(
                self._encoder_path,
                input_file,
                output_file,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ConversionError(f"Error occurred while starting {self._encoder_path}: {e}") from e

        assert process.stderr is not None
        stderr_chunks: list[bytes] = []
        drain_task = asyncio.create_task(_drain(process.stderr, stderr_chunks))

        try:
            exit_code = await asyncio.wait_for(process.wait(), timeout=self._timeout)
            await drain_task
        except asyncio.TimeoutError as e:
            await _kill(process, drain_task)
            raise ConversionError(
                f"{self._encoder_path} did not finish in {self._timeout}s", error_output=_decode(stderr_chunks)
            ) from e
        except asyncio.CancelledError as e:
            await _kill(process, drain_task)
            raise CancelledError("Conversion cancelled") from e

        error_output = _decode(stderr_chunks)
        if exit_code != 0:
            self._logger.debug("%s exited with code %d. stderr:\n%s", self._encoder_path, exit_code, error_output)
            raise ConversionError(
                f"{self._encoder_path} exited with code {exit_code}", exit_code=exit_code, error_output=error_output
            )
        return error_output

    def _make_temp_file(self, suffix: str) -> str:
        try:
            fd, path = tempfile.mkstemp(suffix=suffix, prefix="speechkit-", dir=self._temp_dir)
        except OSError as e:
            raise ConversionError(f"Failed to create temporary file: {e}") from e
        os.close(fd)
        return path

    def _remove(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            self._logger.warning("Failed to remove temporary file %s: %s", path, e)


def _write_wav(path: str, pcm_data: bytes, wave_format: WaveFormat) -> None:
    with wave.open(path, "wb") as wav:
        wav.setnchannels(wave_format.channels)
        wav.setsampwidth(wave_format.sample_width)
        wav.setframerate(wave_format.sample_rate)
        wav.writeframes(pcm_data)


async def _drain(stream: asyncio.StreamReader, chunks: list[bytes]) -> None:
    while True:
        chunk = await stream.read(4096)
        if not chunk:
            break
        chunks.append(chunk)


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode(errors="replace")


async def _kill(process: asyncio.subprocess.Process, drain_task: asyncio.Task) -> None:
    try:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
        # Reap the process even if the caller is being cancelled again
        await asyncio.shield(process.wait())
    finally:
        drain_task.cancel()
        try:
            await drain_task
        except asyncio.CancelledError:
            pass
