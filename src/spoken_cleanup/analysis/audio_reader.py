"""Decoding of PCM WAV files into mono float samples."""

import wave
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .exceptions import AudioDecodeError, UnsupportedAudioFormatError
from .logging_utils import get_logger

logger = get_logger(__name__)

# Sample width in bytes -> numpy dtype and full-scale value
_PCM_FORMATS = {
    1: (np.uint8, 128.0),
    2: (np.int16, 32768.0),
    4: (np.int32, 2147483648.0),
}


@dataclass(frozen=True)
class DecodedAudio:
    """Mono float samples in [-1, 1] with their sample rate."""

    samples: np.ndarray
    sample_rate: int
    source_channels: int = 1

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate if self.sample_rate else 0.0


def pcm_to_float(raw: bytes, sample_width: int, channels: int) -> np.ndarray:
    """
    Convert interleaved PCM bytes to mono float samples.

    Args:
        raw: Interleaved PCM frames
        sample_width: Bytes per sample (1, 2, 3 or 4)
        channels: Number of interleaved channels

    Returns:
        Mono float64 samples in [-1, 1]

    Raises:
        UnsupportedAudioFormatError: If the sample width is not supported
    """
    if sample_width == 3:
        # 24-bit: widen each little-endian triple to int32
        triples = np.frombuffer(raw, dtype=np.uint8).reshape(-1, 3)
        widened = (
            triples[:, 0].astype(np.int32)
            | (triples[:, 1].astype(np.int32) << 8)
            | (triples[:, 2].astype(np.int32) << 16)
        )
        widened = np.where(widened >= 1 << 23, widened - (1 << 24), widened)
        samples = widened.astype(np.float64) / float(1 << 23)
    elif sample_width in _PCM_FORMATS:
        dtype, full_scale = _PCM_FORMATS[sample_width]
        samples = np.frombuffer(raw, dtype=dtype).astype(np.float64)
        if sample_width == 1:
            # 8-bit WAV is unsigned
            samples -= 128.0
        samples /= full_scale
    else:
        raise UnsupportedAudioFormatError(f"Unsupported sample width: {sample_width} bytes")

    if channels > 1:
        samples = samples[: len(samples) - len(samples) % channels]
        samples = samples.reshape(-1, channels).mean(axis=1)
    return samples


def read_wav(path: str | Path) -> DecodedAudio:
    """
    Read a PCM WAV file as mono float samples.

    Args:
        path: WAV file path

    Returns:
        DecodedAudio with the downmixed samples

    Raises:
        AudioDecodeError: If the file is missing or not a readable WAV file
        UnsupportedAudioFormatError: If the WAV encoding is not integer PCM
    """
    path = Path(path)
    if not path.is_file():
        raise AudioDecodeError(f"Audio file not found: {path}")

    try:
        with wave.open(str(path), "rb") as wav_file:
            channels = wav_file.getnchannels()
            sample_width = wav_file.getsampwidth()
            sample_rate = wav_file.getframerate()
            raw = wav_file.readframes(wav_file.getnframes())
    except wave.Error as e:
        # The wave module rejects float and compressed encodings here
        raise UnsupportedAudioFormatError(f"Cannot decode {path.name}: {e}") from e
    except (EOFError, OSError) as e:
        raise AudioDecodeError(f"Failed to read {path.name}: {e}") from e

    frame_bytes = sample_width * channels
    partial = len(raw) % frame_bytes if frame_bytes else 0
    if partial:
        logger.warning(f"{path.name} ends with a partial frame, dropping {partial} byte(s)")
        raw = raw[: len(raw) - partial]

    samples = pcm_to_float(raw, sample_width, channels)
    logger.debug(
        f"Decoded {path.name}: {sample_rate}Hz, {channels}ch, "
        f"{sample_width * 8}-bit, {len(samples) / sample_rate:.2f}s"
    )
    return DecodedAudio(samples=samples, sample_rate=sample_rate, source_channels=channels)
