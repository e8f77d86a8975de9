"""Content-coding negotiation.

Parses ``Accept-Encoding`` into ``(Encoding, quality)`` pairs and picks
the preferred coding. Qualities are integers 0..1000 (``q=0.5`` is 500).

Selection rules:

* entries with quality 0 are never selected;
* the highest quality wins; on a tie the entry listed *last* wins;
* unknown or disabled codings are ignored, not treated as errors;
* nothing acceptable means ``identity``.
"""

import enum
import re
from dataclasses import dataclass

from strata.http.headers import HeaderMap

_Q_VALUE = re.compile(r"^[01](\.\d{1,3})?$")


@dataclass(frozen=True, slots=True)
class SupportedEncodings:
    """Which codings a layer is willing to produce or decode."""

    gzip: bool = True
    deflate: bool = True
    br: bool = True
    zstd: bool = True

    def accept_encoding_header(self) -> str:
        """Comma-separated list for an ``Accept-Encoding`` response header."""
        names = [
            name
            for name, enabled in (
                ("gzip", self.gzip),
                ("deflate", self.deflate),
                ("br", self.br),
                ("zstd", self.zstd),
            )
            if enabled
        ]
        return ",".join(names) if names else "identity"


class Encoding(enum.Enum):
    """A content-coding and its token on the wire."""

    IDENTITY = "identity"
    DEFLATE = "deflate"
    GZIP = "gzip"
    BROTLI = "br"
    ZSTD = "zstd"

    @property
    def file_extension(self) -> str | None:
        return _FILE_EXTENSIONS.get(self)

    @classmethod
    def parse(cls, value: str, supported: SupportedEncodings) -> "Encoding | None":
        """Map a coding token to an enabled ``Encoding``.

        ``x-gzip`` is accepted as ``gzip``; ``identity`` is always
        accepted.
        """
        match value.strip().lower():
            case "gzip" | "x-gzip" if supported.gzip:
                return cls.GZIP
            case "deflate" if supported.deflate:
                return cls.DEFLATE
            case "br" if supported.br:
                return cls.BROTLI
            case "zstd" if supported.zstd:
                return cls.ZSTD
            case "identity":
                return cls.IDENTITY
        return None

    @classmethod
    def from_headers(cls, headers: HeaderMap, supported: SupportedEncodings) -> "Encoding":
        """The coding to use for a response to a request with *headers*."""
        return preferred_encoding(encodings(headers, supported)) or cls.IDENTITY


_FILE_EXTENSIONS = {
    Encoding.DEFLATE: ".zz",
    Encoding.GZIP: ".gz",
    Encoding.BROTLI: ".br",
    Encoding.ZSTD: ".zstd",
}


def parse_q_value(value: str) -> int | None:
    """Parse ``q=0.5`` into ``500``; ``None`` if malformed or above 1."""
    key, sep, raw = value.strip().lower().partition("=")
    if not sep or key.strip() != "q":
        return None
    raw = raw.strip()
    if not _Q_VALUE.match(raw):
        return None
    quality = round(float(raw) * 1000)
    return quality if quality <= 1000 else None


def encodings(headers: HeaderMap, supported: SupportedEncodings) -> list[tuple[Encoding, int]]:
    """Every acceptable ``(Encoding, quality)`` from ``Accept-Encoding``, in order."""
    results: list[tuple[Encoding, int]] = []
    for header in headers.get_list("accept-encoding"):
        for token in header.split(","):
            parts = token.strip().split(";")
            encoding = Encoding.parse(parts[0], supported)
            if encoding is None:
                continue
            quality = 1000 if len(parts) == 1 else parse_q_value(parts[1])
            if quality is None:
                continue
            results.append((encoding, quality))
    return results


def preferred_encoding(accepted: list[tuple[Encoding, int]]) -> Encoding | None:
    """Highest-quality coding with quality above zero; last one wins ties."""
    best: tuple[Encoding, int] | None = None
    for entry in accepted:
        if entry[1] <= 0:
            continue
        if best is None or entry[1] >= best[1]:
            best = entry
    return best[0] if best is not None else None
