"""Tests for request body decompression."""

import gzip
import zlib

import brotli
import pytest
import zstandard

from strata.http.encoding import Encoding
from strata.http.request import Request
from strata.http.response import Response
from strata.layer import ServiceBuilder
from strata.middleware.codecs import MAX_OUTPUT_CHUNK, decompressor_for
from strata.middleware.decompression import DecompressionLayer
from strata.routing import Router, post
from strata.testing import TestClient

PAYLOAD = b'{"message": "hello"}' * 20

CODECS = [
    ("gzip", Encoding.GZIP, gzip.compress),
    ("deflate", Encoding.DEFLATE, zlib.compress),
    ("br", Encoding.BROTLI, brotli.compress),
    ("zstd", Encoding.ZSTD, lambda data: zstandard.ZstdCompressor().compress(data)),
]


async def _echo(request: Request) -> bytes:
    return await request.body.read()


def _make_app(layer: DecompressionLayer | None = None) -> Router:
    def describe(request: Request) -> dict:
        return {
            "content-encoding": request.headers.get("content-encoding"),
            "content-length": request.headers.get("content-length"),
        }

    return (
        Router()
        .route("/echo", post(_echo))
        .route("/headers", post(describe))
        .layer(layer or DecompressionLayer())
    )


class TestDecoding:
    async def test_gzip(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/echo",
                headers={"content-encoding": "gzip"},
                body=gzip.compress(PAYLOAD),
            )
        assert response.status == 200
        assert response.body == PAYLOAD

    async def test_deflate(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/echo",
                headers={"content-encoding": "deflate"},
                body=zlib.compress(PAYLOAD),
            )
        assert response.body == PAYLOAD

    async def test_brotli(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/echo",
                headers={"content-encoding": "br"},
                body=brotli.compress(PAYLOAD),
            )
        assert response.body == PAYLOAD

    async def test_zstd(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/echo",
                headers={"content-encoding": "zstd"},
                body=zstandard.ZstdCompressor().compress(PAYLOAD),
            )
        assert response.body == PAYLOAD

    async def test_encoding_headers_removed(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/headers",
                headers={"content-encoding": "gzip"},
                body=gzip.compress(PAYLOAD),
            )
        assert response.json() == {"content-encoding": None, "content-length": None}


class TestPassThrough:
    async def test_no_content_encoding(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post("/echo", body=b"plain")
        assert response.body == b"plain"

    async def test_identity(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post("/echo", headers={"content-encoding": "identity"}, body=b"plain")
        assert response.body == b"plain"

    async def test_unsupported_coding_is_415(self) -> None:
        async with TestClient(_make_app(DecompressionLayer().no_br())) as client:
            response = await client.post(
                "/echo",
                headers={"content-encoding": "br"},
                body=brotli.compress(PAYLOAD),
            )
        assert response.status == 415
        assert response.headers["accept-encoding"] == "gzip,deflate,zstd"

    async def test_unknown_coding_is_415(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post("/echo", headers={"content-encoding": "compress"}, body=b"x")
        assert response.status == 415
        assert response.headers["accept-encoding"] == "gzip,deflate,br,zstd"

    async def test_pass_through_unaccepted(self) -> None:
        layer = DecompressionLayer().pass_through()
        async with TestClient(_make_app(layer)) as client:
            response = await client.post("/echo", headers={"content-encoding": "compress"}, body=b"x")
        assert response.status == 200
        assert response.body == b"x"


class TestCorruptBodies:
    async def test_corrupt_gzip_is_a_server_error(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/echo",
                headers={"content-encoding": "gzip"},
                body=b"definitely not gzip",
            )
        assert response.status == 500

    @pytest.mark.parametrize(("name", "encoding", "compress"), CODECS)
    async def test_truncated_body_is_a_server_error(self, name, encoding, compress) -> None:
        compressed = compress(PAYLOAD)
        async with TestClient(_make_app()) as client:
            response = await client.post(
                "/echo",
                headers={"content-encoding": name},
                body=compressed[: len(compressed) // 2],
            )
        assert response.status == 500

    async def test_empty_body_with_encoding_is_accepted(self) -> None:
        async with TestClient(_make_app()) as client:
            response = await client.post("/echo", headers={"content-encoding": "gzip"})
        assert response.status == 200
        assert response.body == b""


class TestBoundedOutput:
    @pytest.mark.parametrize(("name", "encoding", "compress"), CODECS)
    def test_pieces_never_exceed_the_chunk_limit(self, name, encoding, compress) -> None:
        original = b"\0" * (4 * MAX_OUTPUT_CHUNK + 17)
        decompressor = decompressor_for(encoding)
        pieces = list(decompressor.decompress(compress(original)))
        decompressor.finish()
        assert max(len(piece) for piece in pieces) <= MAX_OUTPUT_CHUNK
        assert b"".join(pieces) == original

    @pytest.mark.parametrize(("name", "encoding", "compress"), CODECS)
    def test_truncated_stream_raises_on_finish(self, name, encoding, compress) -> None:
        compressed = compress(PAYLOAD)
        decompressor = decompressor_for(encoding)
        with pytest.raises((ValueError, brotli.error, zstandard.ZstdError)):
            list(decompressor.decompress(compressed[: len(compressed) // 2]))
            decompressor.finish()

    async def test_body_limit_sees_bounded_chunks(self) -> None:
        seen: list[int] = []

        async def count(request: Request) -> Response:
            async for chunk in request.body:
                seen.append(len(chunk))
            return Response.empty()

        bomb = gzip.compress(b"\0" * (16 * MAX_OUTPUT_CHUNK))
        service = (
            ServiceBuilder()
            .catch_error()
            .decompression()
            .request_body_limit(2 * MAX_OUTPUT_CHUNK)
            .service(count)
        )
        request = Request.build("POST", "/", headers={"content-encoding": "gzip"}, body=bomb)
        response = await service(request)
        assert response.status == 413
        assert max(seen) <= MAX_OUTPUT_CHUNK
        assert sum(seen) <= 2 * MAX_OUTPUT_CHUNK
