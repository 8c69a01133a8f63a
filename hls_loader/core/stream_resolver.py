"""
Turns a page or playlist URL into the ordered list of chunk addresses.
"""

import logging

from hls_loader.media.downloader import HttpChunkSource
from hls_loader.utils.playlist import (
    Variant,
    parse_chunk_list,
    parse_variants,
    select_variant_url,
)
from hls_loader.web.page_scraper import find_playlist_url

log = logging.getLogger(__name__)


class StreamResolver:
    """
    Walks host page → master playlist → chunk list.

    Each step is a single text download followed by a stateless parse; errors
    from either propagate unchanged.
    """

    def __init__(self, source: HttpChunkSource):
        self.source = source

    async def playlist_url(self, url: str, is_playlist: bool = False) -> str:
        """Returns the master playlist URL, scraping the host page unless told not to."""
        if is_playlist:
            return url
        log.info(f"Looking for a playlist on [dim]{url}[/dim]")
        html = await self.source.fetch_text(url)
        return find_playlist_url(html, url)

    async def variants(
        self, url: str, is_playlist: bool = False
    ) -> tuple[str, list[Variant]]:
        """Returns the playlist URL together with every stream it offers."""
        playlist_url = await self.playlist_url(url, is_playlist)
        master_text = await self.source.fetch_text(playlist_url)
        return playlist_url, parse_variants(master_text, playlist_url)

    async def chunk_addresses(
        self, url: str, resolution: str, is_playlist: bool = False
    ) -> list[str]:
        """Resolves the absolute address of every chunk of the chosen resolution."""
        playlist_url = await self.playlist_url(url, is_playlist)
        master_text = await self.source.fetch_text(playlist_url)
        chunk_list_url = select_variant_url(master_text, resolution, playlist_url)

        chunk_list_text = await self.source.fetch_text(chunk_list_url)
        addresses = parse_chunk_list(chunk_list_text, chunk_list_url)
        log.info(f"Found {len(addresses)} chunks at {resolution}.")
        return addresses
