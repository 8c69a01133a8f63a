"""
Helper utilities: playlist parsing and human-readable formatting.
"""
