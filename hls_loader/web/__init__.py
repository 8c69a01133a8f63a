"""
Web Scraping Layer.

This package locates the HLS master playlist referenced by a video host page.
"""

from .page_scraper import find_playlist_url

__all__ = ["find_playlist_url"]
