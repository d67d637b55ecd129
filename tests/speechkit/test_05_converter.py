import asyncio
import contextlib
import os
import sys
import wave

import pytest
from _utils import write_encoder

from yandexcloud.speechkit import AudioConverter
from yandexcloud.speechkit import CancelledError
from yandexcloud.speechkit import ConversionError
from yandexcloud.speechkit import InvalidArgumentError
from yandexcloud.speechkit import WaveFormat
from yandexcloud.speechkit._converter import _drain
from yandexcloud.speechkit._converter import _kill

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="Stub encoders are POSIX shell scripts")

PCM = b"\x10\x00\x20\x00" * 2400
OGG = b"OggS-fake-opus-stream"


@pytest.fixture
def workdir(tmp_path):
    """Separate directories for temporary files and for stub encoder records."""

    temp_dir = tmp_path / "tmp"
    records = tmp_path / "records"
    temp_dir.mkdir()
    records.mkdir()
    return temp_dir, records


def recorded_paths(records):
    with open(records / "args", encoding="utf-8") as f:
        return f.read().split()


@pytest.mark.asyncio
async def test_convert_pcm_to_opus(workdir):
    """Tests a successful conversion.

    - Encoder gets a WAV file with the PCM data and the output path
    - Output bytes are returned
    - Both temporary files are removed afterwards
    """

    temp_dir, records = workdir
    encoder = write_encoder(
        str(records / "opusenc"),
        f'echo "$1 $2" > "{records}/args"\n'
        f'cp "$1" "{records}/input.wav"\n'
        f"printf '{OGG.decode()}' > \"$2\"",
    )

    converter = AudioConverter(encoder, temp_dir=str(temp_dir))
    ogg = await converter.convert_pcm_to_opus(PCM, WaveFormat(sample_rate=16000, sample_width=2, channels=1))

    assert ogg == OGG

    wav_path, ogg_path = recorded_paths(records)
    assert wav_path.endswith(".wav")
    assert ogg_path.endswith(".ogg")
    assert not os.path.exists(wav_path)
    assert not os.path.exists(ogg_path)
    assert os.listdir(temp_dir) == []

    with wave.open(str(records / "input.wav"), "rb") as wav:
        assert wav.getframerate() == 16000
        assert wav.getsampwidth() == 2
        assert wav.getnchannels() == 1
        assert wav.readframes(wav.getnframes()) == PCM


@pytest.mark.asyncio
async def test_non_zero_exit(workdir):
    temp_dir, records = workdir
    encoder = write_encoder(
        str(records / "opusenc"),
        f'echo "$1 $2" > "{records}/args"\necho "Error parsing input file" >&2\nexit 3',
    )

    converter = AudioConverter(encoder, temp_dir=str(temp_dir))
    with pytest.raises(ConversionError) as exc_info:
        await converter.convert_pcm_to_opus(PCM, WaveFormat())

    assert exc_info.value.exit_code == 3
    assert "Error parsing input file" in exc_info.value.error_output
    for path in recorded_paths(records):
        assert not os.path.exists(path)
    assert os.listdir(temp_dir) == []


@pytest.mark.asyncio
async def test_empty_output(workdir):
    temp_dir, records = workdir
    encoder = write_encoder(str(records / "opusenc"), 'echo "nothing to encode" >&2\nexit 0')

    converter = AudioConverter(encoder, temp_dir=str(temp_dir))
    with pytest.raises(ConversionError) as exc_info:
        await converter.convert_pcm_to_opus(PCM, WaveFormat())

    assert "empty" in str(exc_info.value)
    assert exc_info.value.exit_code is None
    assert "nothing to encode" in exc_info.value.error_output
    assert os.listdir(temp_dir) == []


@pytest.mark.asyncio
async def test_missing_encoder(workdir):
    temp_dir, records = workdir

    converter = AudioConverter(str(records / "does-not-exist"), temp_dir=str(temp_dir))
    with pytest.raises(ConversionError) as exc_info:
        await converter.convert_pcm_to_opus(PCM, WaveFormat())

    assert isinstance(exc_info.value.__cause__, OSError)
    assert os.listdir(temp_dir) == []


@pytest.mark.asyncio
async def test_large_stderr_does_not_block(workdir):
    """Tests that stderr is drained while the encoder runs.

    - Encoder writes far more than a pipe buffer to stderr before exiting
    """

    temp_dir, records = workdir
    encoder = write_encoder(
        str(records / "opusenc"),
        "i=0\n"
        'while [ $i -lt 4000 ]; do echo "progress line $i padded to make the output long enough" >&2; i=$((i+1)); done\n'
        'printf "OggS" > "$2"',
    )

    converter = AudioConverter(encoder, timeout=30.0, temp_dir=str(temp_dir))
    ogg = await converter.convert_pcm_to_opus(PCM, WaveFormat())

    assert ogg == b"OggS"
    assert os.listdir(temp_dir) == []


@pytest.mark.asyncio
async def test_timeout_kills_encoder(workdir):
    temp_dir, records = workdir
    encoder = write_encoder(str(records / "opusenc"), "echo started >&2\nexec sleep 10")

    converter = AudioConverter(encoder, timeout=0.5, temp_dir=str(temp_dir))
    with pytest.raises(ConversionError) as exc_info:
        await converter.convert_pcm_to_opus(PCM, WaveFormat())

    assert isinstance(exc_info.value.__cause__, asyncio.TimeoutError)
    assert os.listdir(temp_dir) == []


@pytest.mark.asyncio
async def test_cancellation_cleans_up(workdir):
    """Tests cancelling a running conversion.

    - CancelledError is raised
    - Temporary files are removed
    """

    temp_dir, records = workdir
    encoder = write_encoder(str(records / "opusenc"), f'echo "$1 $2" > "{records}/args"\nexec sleep 10')

    converter = AudioConverter(encoder, temp_dir=str(temp_dir))
    task = asyncio.create_task(converter.convert_pcm_to_opus(PCM, WaveFormat()))

    for _ in range(100):
        if (records / "args").exists():
            break
        await asyncio.sleep(0.05)
    task.cancel()

    with pytest.raises(CancelledError):
        await task

    assert os.listdir(temp_dir) == []


@pytest.mark.asyncio
async def test_kill_cancelled_again_stops_draining():
    """Tests cancelling the cleanup of a killed encoder.

    - The stderr reader is stopped even when the wait for the process is cancelled
    """

    process = await asyncio.create_subprocess_exec(
        "sleep", "10", stdout=asyncio.subprocess.DEVNULL, stderr=asyncio.subprocess.PIPE
    )
    drain_task = asyncio.create_task(_drain(process.stderr, []))

    kill_task = asyncio.create_task(_kill(process, drain_task))
    await asyncio.sleep(0)
    kill_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await kill_task

    assert drain_task.done()
    await process.wait()


@pytest.mark.asyncio
async def test_convert_wav_keeps_input(workdir, tmp_path):
    temp_dir, records = workdir
    wav_file = tmp_path / "speech.wav"
    with wave.open(str(wav_file), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(48000)
        wav.writeframes(PCM)

    encoder = write_encoder(str(records / "opusenc"), 'printf "OggS" > "$2"')

    converter = AudioConverter(encoder, temp_dir=str(temp_dir))
    assert await converter.convert_wav_to_opus(wav_file) == b"OggS"
    assert wav_file.exists()
    assert os.listdir(temp_dir) == []


@pytest.mark.asyncio
async def test_empty_pcm_is_rejected(workdir):
    temp_dir, records = workdir
    converter = AudioConverter(str(records / "opusenc"), temp_dir=str(temp_dir))

    with pytest.raises(InvalidArgumentError):
        await converter.convert_pcm_to_opus(b"", WaveFormat())


def test_encoder_path_from_environment(monkeypatch):
    monkeypatch.setenv("OPUSENC_PATH", "/opt/opus/bin/opusenc")

    assert AudioConverter().encoder_path == "/opt/opus/bin/opusenc"
    assert AudioConverter("/usr/local/bin/opusenc").encoder_path == "/usr/local/bin/opusenc"
