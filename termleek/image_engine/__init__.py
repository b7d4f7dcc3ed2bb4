"""Image Engine - background image decoding and scaling.

Usage:
    from termleek.image_engine import ImageProvider

    provider = ImageProvider()
    source = provider.load("/path/to/bg.png", 680, 370, preserve_aspect_ratio=True)
    shown = provider.rescale(source, 800, 400)
"""

from .provider import DisplayedImage, ImageBuffer, ImageProvider, SourceImage

__all__ = ["DisplayedImage", "ImageBuffer", "ImageProvider", "SourceImage"]
