"""
Utility functions for the SpeechKit SDK.
"""

from __future__ import annotations

import importlib.metadata
import os
from typing import BinaryIO
from typing import Union

import aiofiles


async def read_audio(audio: Union[str, os.PathLike, BinaryIO, bytes]) -> bytes:
    """
    Read audio data from a path, a binary file object or raw bytes.

    Args:
        audio: Path to an audio file, a file object opened in binary mode, or bytes.

    Returns:
        Audio bytes.

    Examples:
        >>> data = await read_audio("speech.ogg")
    """
    if isinstance(audio, (bytes, bytearray)):
        return bytes(audio)
    if isinstance(audio, (str, os.PathLike)):
        async with aiofiles.open(audio, "rb") as f:
            return await f.read()
    return audio.read()


def get_version() -> str:
    """
    Get SDK version from package metadata or __init__.py file.

    Returns:
        Version string
    """
    try:
        return importlib.metadata.version("yandexcloud-speechkit")
    except importlib.metadata.PackageNotFoundError:
        try:
            from . import __version__

            return __version__
        except ImportError:
            return "0.0.0"
