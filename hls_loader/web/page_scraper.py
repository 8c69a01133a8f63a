"""
Finds the playlist address embedded in a video host page.
"""

import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from hls_loader.exceptions import PlaylistNotFoundError

log = logging.getLogger(__name__)


def find_playlist_url(html: str, page_url: str) -> str:
    """
    Returns the absolute URL of the first `<source src="...">` on the page.

    Relative `src` values are resolved against `page_url`.

    Raises:
        PlaylistNotFoundError: The page has no `<source>` tag with a `src`.
    """
    soup = BeautifulSoup(html, "html.parser")
    source = soup.find("source", src=True)
    if source is None or not source["src"].strip():
        raise PlaylistNotFoundError(f"Playlist URL is not found on page '{page_url}'")

    playlist_url = urljoin(page_url, source["src"].strip())
    log.debug(f"Found playlist URL: {playlist_url}")
    return playlist_url
