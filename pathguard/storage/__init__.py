"""
Image storage for report media
"""

from .image_store import ImageStore, StoredImage

__all__ = ["ImageStore", "StoredImage"]
