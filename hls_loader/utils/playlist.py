"""
Utilities for reading HLS playlists: selecting a variant stream from a master
playlist and resolving the chunk addresses of a chunk list.
"""

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from urllib.parse import urljoin

from hls_loader.exceptions import PlaylistParseError, VariantNotFoundError

log = logging.getLogger(__name__)

STREAM_INF_PREFIX = "#EXT-X-STREAM-INF:"

# KEY=VALUE pairs where VALUE is either a quoted string (may contain commas)
# or a bare token.
_ATTRIBUTE_REGEX = re.compile(r'([A-Z0-9-]+)=("[^"]*"|[^,]*)')


@dataclass
class Variant:
    """One `#EXT-X-STREAM-INF` entry of a master playlist."""

    uri: str
    attributes: dict[str, str] = field(default_factory=dict)

    @property
    def resolution(self) -> str | None:
        return self.attributes.get("RESOLUTION")

    @property
    def bandwidth(self) -> int:
        try:
            return int(self.attributes.get("BANDWIDTH", 0))
        except ValueError:
            return 0


def parse_attributes(attribute_list: str) -> dict[str, str]:
    """Parses an HLS attribute list like `BANDWIDTH=1280000,RESOLUTION=1280x720`."""
    attributes = {}
    for key, value in _ATTRIBUTE_REGEX.findall(attribute_list):
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        attributes[key] = value
    return attributes


def _content_lines(text: str) -> Iterator[str]:
    for raw in text.splitlines():
        line = raw.strip()
        if line:
            yield line


def parse_variants(master_text: str, base_url: str) -> list[Variant]:
    """
    Lists every variant stream in a master playlist, with absolute URIs.

    Raises:
        PlaylistParseError: A stream tag is not followed by a URI line.
    """
    variants = []
    pending_attributes: dict[str, str] | None = None
    for line in _content_lines(master_text):
        if line.startswith(STREAM_INF_PREFIX):
            if pending_attributes is not None:
                raise PlaylistParseError(
                    "Stream tag is not followed by a playlist URI."
                )
            pending_attributes = parse_attributes(line[len(STREAM_INF_PREFIX) :])
        elif line.startswith("#"):
            continue
        elif pending_attributes is not None:
            variants.append(Variant(urljoin(base_url, line), pending_attributes))
            pending_attributes = None

    if pending_attributes is not None:
        raise PlaylistParseError("Playlist ends with a stream tag that has no URI.")
    return variants


def select_variant_url(master_text: str, resolution: str, base_url: str) -> str:
    """
    Returns the absolute chunk list URL for the stream with `resolution`.

    Raises:
        VariantNotFoundError: No stream declares that resolution.
    """
    for variant in parse_variants(master_text, base_url):
        if variant.resolution == resolution:
            log.debug(f"Selected {resolution} chunk list: {variant.uri}")
            return variant.uri
    raise VariantNotFoundError(
        f"Have no chunklist url with resolution '{resolution}'"
    )


def parse_chunk_list(chunk_list_text: str, base_url: str) -> list[str]:
    """
    Resolves every chunk reference of a chunk list against `base_url`.

    Blank lines and tag/comment lines (starting with '#') are skipped; the
    remaining lines keep their order.

    Raises:
        PlaylistParseError: A chunk reference is not a valid URL.
    """
    addresses = []
    for line in _content_lines(chunk_list_text):
        if line.startswith("#"):
            continue
        try:
            addresses.append(urljoin(base_url, line))
        except ValueError as e:
            raise PlaylistParseError(f"Invalid chunk reference '{line}': {e}") from e

    log.debug(f"Chunk list contains {len(addresses)} chunks.")
    return addresses
