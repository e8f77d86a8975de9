"""Streaming codecs for the content-codings strata negotiates.

``gzip`` and ``deflate`` use stdlib ``zlib``; ``br`` uses ``brotli``
and ``zstd`` uses ``zstandard``. Every codec is driven chunk by chunk
through ``compress_stream`` / ``decompress_stream``, so bodies are never
materialized in full.

Decoders never emit more than ``MAX_OUTPUT_CHUNK`` bytes per piece, so
a small compressed body cannot inflate into one huge buffer, and they
raise ``ValueError`` when the input ends before the compressed stream
does.
"""

import enum
import zlib
from collections.abc import AsyncIterator, Callable, Iterator
from typing import Protocol

import brotli
import zstandard

from strata.http.encoding import Encoding


class CompressionLevel(enum.StrEnum):
    """Named compression levels; plain ``int`` levels are clamped per codec."""

    FASTEST = "fastest"
    BEST = "best"
    DEFAULT = "default"


type Level = CompressionLevel | int


class Compressor(Protocol):
    def compress(self, data: bytes) -> bytes: ...

    def finish(self) -> bytes: ...


class Decompressor(Protocol):
    def decompress(self, data: bytes) -> Iterator[bytes]:
        """Decoded pieces of at most ``MAX_OUTPUT_CHUNK`` bytes each."""
        ...

    def finish(self) -> None:
        """Raise ``ValueError`` if the compressed stream is incomplete."""
        ...


MAX_OUTPUT_CHUNK = 64 * 1024


def _clamp(level: int, low: int, high: int) -> int:
    return min(high, max(low, level))


# -- zlib (gzip / deflate) --

_ZLIB_WBITS = {Encoding.DEFLATE: zlib.MAX_WBITS, Encoding.GZIP: zlib.MAX_WBITS | 16}


def _zlib_level(level: Level) -> int:
    match level:
        case CompressionLevel.FASTEST:
            return zlib.Z_BEST_SPEED
        case CompressionLevel.BEST:
            return zlib.Z_BEST_COMPRESSION
        case CompressionLevel.DEFAULT:
            return zlib.Z_DEFAULT_COMPRESSION
    return _clamp(level, zlib.Z_BEST_SPEED, zlib.Z_BEST_COMPRESSION)


class _ZlibCompressor:
    __slots__ = ("_obj",)

    def __init__(self, wbits: int, level: Level) -> None:
        self._obj = zlib.compressobj(_zlib_level(level), zlib.DEFLATED, wbits)

    def compress(self, data: bytes) -> bytes:
        return self._obj.compress(data)

    def finish(self) -> bytes:
        return self._obj.flush(zlib.Z_FINISH)


class _ZlibDecompressor:
    __slots__ = ("_obj",)

    def __init__(self, wbits: int) -> None:
        self._obj = zlib.decompressobj(wbits)

    def decompress(self, data: bytes) -> Iterator[bytes]:
        while True:
            out = self._obj.decompress(data, MAX_OUTPUT_CHUNK)
            if out:
                yield out
            data = self._obj.unconsumed_tail
            # A full piece may leave output pending inside zlib.
            if not data and len(out) < MAX_OUTPUT_CHUNK:
                return

    def finish(self) -> None:
        if not self._obj.eof:
            msg = "truncated gzip/deflate stream"
            raise ValueError(msg)


# -- brotli --

_BROTLI_MIN_QUALITY = 0
_BROTLI_MAX_QUALITY = 11
# Quality 11 is far too slow for on-the-fly responses.
_BROTLI_DEFAULT_QUALITY = 4


def _brotli_level(level: Level) -> int:
    match level:
        case CompressionLevel.FASTEST:
            return _BROTLI_MIN_QUALITY
        case CompressionLevel.BEST:
            return _BROTLI_MAX_QUALITY
        case CompressionLevel.DEFAULT:
            return _BROTLI_DEFAULT_QUALITY
    return _clamp(level, _BROTLI_MIN_QUALITY, _BROTLI_MAX_QUALITY)


class _BrotliCompressor:
    __slots__ = ("_obj",)

    def __init__(self, level: Level) -> None:
        self._obj = brotli.Compressor(quality=_brotli_level(level))

    def compress(self, data: bytes) -> bytes:
        return self._obj.process(data)

    def finish(self) -> bytes:
        return self._obj.finish()


class _BrotliDecompressor:
    __slots__ = ("_obj",)

    def __init__(self) -> None:
        self._obj = brotli.Decompressor()

    def decompress(self, data: bytes) -> Iterator[bytes]:
        out = self._obj.process(data, output_buffer_limit=MAX_OUTPUT_CHUNK)
        if out:
            yield out
        # Input the limit held back stays buffered inside the decoder.
        while not self._obj.can_accept_more_data():
            out = self._obj.process(b"", output_buffer_limit=MAX_OUTPUT_CHUNK)
            if not out:
                return
            yield out

    def finish(self) -> None:
        if not self._obj.is_finished():
            msg = "truncated brotli stream"
            raise ValueError(msg)


# -- zstd --

_ZSTD_MIN_LEVEL = -131072
_ZSTD_MAX_LEVEL = 22
_ZSTD_DEFAULT_LEVEL = 3
_ZSTD_INPUT_SLICE = 64


def _zstd_level(level: Level) -> int:
    match level:
        case CompressionLevel.FASTEST:
            return 1
        case CompressionLevel.BEST:
            return _ZSTD_MAX_LEVEL
        case CompressionLevel.DEFAULT:
            return _ZSTD_DEFAULT_LEVEL
    return _clamp(level, _ZSTD_MIN_LEVEL, _ZSTD_MAX_LEVEL)


class _ZstdCompressor:
    __slots__ = ("_obj",)

    def __init__(self, level: Level) -> None:
        self._obj = zstandard.ZstdCompressor(level=_zstd_level(level)).compressobj()

    def compress(self, data: bytes) -> bytes:
        return self._obj.compress(data)

    def finish(self) -> bytes:
        return self._obj.flush()


class _ZstdDecompressor:
    __slots__ = ("_obj",)

    def __init__(self) -> None:
        self._obj = zstandard.ZstdDecompressor().decompressobj()

    def decompress(self, data: bytes) -> Iterator[bytes]:
        # decompressobj takes no output limit. A zstd block inflates to at
        # most 128 KiB, so small input slices bound every call's output.
        view = memoryview(data)
        for start in range(0, len(view), _ZSTD_INPUT_SLICE):
            out = self._obj.decompress(view[start:start + _ZSTD_INPUT_SLICE])
            for offset in range(0, len(out), MAX_OUTPUT_CHUNK):
                yield out[offset:offset + MAX_OUTPUT_CHUNK]

    def finish(self) -> None:
        if not self._obj.eof:
            msg = "truncated zstd stream"
            raise ValueError(msg)


# -- Factories --

def compressor_for(encoding: Encoding, level: Level = CompressionLevel.DEFAULT) -> Compressor | None:
    """A fresh compressor for *encoding*, or ``None`` for ``identity``."""
    match encoding:
        case Encoding.GZIP | Encoding.DEFLATE:
            return _ZlibCompressor(_ZLIB_WBITS[encoding], level)
        case Encoding.BROTLI:
            return _BrotliCompressor(level)
        case Encoding.ZSTD:
            return _ZstdCompressor(level)
    return None


def decompressor_for(encoding: Encoding) -> Decompressor | None:
    """A fresh decompressor for *encoding*, or ``None`` for ``identity``."""
    match encoding:
        case Encoding.GZIP | Encoding.DEFLATE:
            return _ZlibDecompressor(_ZLIB_WBITS[encoding])
        case Encoding.BROTLI:
            return _BrotliDecompressor()
        case Encoding.ZSTD:
            return _ZstdDecompressor()
    return None


def compress_stream(
    compressor: Compressor,
) -> Callable[[AsyncIterator[bytes]], AsyncIterator[bytes]]:
    """Chunk transform running every chunk through *compressor*."""

    async def transform(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        async for chunk in chunks:
            out = compressor.compress(chunk)
            if out:
                yield out
        tail = compressor.finish()
        if tail:
            yield tail

    return transform


def decompress_stream(
    decompressor: Decompressor,
) -> Callable[[AsyncIterator[bytes]], AsyncIterator[bytes]]:
    """Chunk transform decoding every chunk through *decompressor*."""

    async def transform(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        received = False
        async for chunk in chunks:
            received = received or bool(chunk)
            for piece in decompressor.decompress(chunk):
                yield piece
        # An empty body has nothing to decode.
        if received:
            decompressor.finish()

    return transform
