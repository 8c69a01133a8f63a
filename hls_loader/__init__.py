"""
hls-loader: concurrent HLS chunk downloader that streams a video as one
contiguous byte stream.
"""

__version__ = "0.3.0"
