"""
Image Transcoder API: fetch an image by URL and re-encode it under
format, quality, dimension and byte-size constraints.
"""

__version__ = "1.0.0"
