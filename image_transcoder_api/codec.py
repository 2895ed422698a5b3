"""
Pillow-backed image codec: decode, resize and encode in memory.

Encoded size is expected to be non-increasing as quality decreases; the
size-constrained search relies on that to return the highest fitting quality.
"""
import io  # For in-memory byte manipulation
import logging
from typing import Optional, Protocol

from PIL import Image

from image_transcoder_api.errors import DecodeFailed, EncodeFailed
from image_transcoder_api.models import OutputFormat

logger = logging.getLogger(__name__)


# Modes PNG can store as-is
PNG_MODES = ("1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA")


class Codec(Protocol):
    """
    Image codec collaborator. Implementations must not produce larger output
    when quality drops, or the search may skip a fitting higher quality.
    """

    def decode(self, data: bytes) -> Image.Image: ...

    def encode(self, image: Image.Image, output_format: OutputFormat, quality: Optional[int] = None) -> bytes: ...

    def resize(self, image: Image.Image, width: int, height: Optional[int] = None) -> Image.Image: ...


class PillowCodec:

    def decode(self, data: bytes) -> Image.Image:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except Exception as e:
            raise DecodeFailed(f"Could not process the image. Error: {e}") from e
        return img

    def encode(self, image: Image.Image, output_format: OutputFormat, quality: Optional[int] = None) -> bytes:
        output_stream = io.BytesIO()

        try:
            image = self._convert_mode(image, output_format)
            # Compression (quality) is only passed for lossy formats
            if output_format.is_lossy and quality is not None:
                image.save(output_stream, format=output_format.pillow_format, quality=quality)
            else:
                image.save(output_stream, format=output_format.pillow_format)
        except Exception as e:
            raise EncodeFailed(
                f"Failed to save the image in the new format. Error: {e}", quality=quality
            ) from e

        return output_stream.getvalue()

    def resize(self, image: Image.Image, width: int, height: Optional[int] = None) -> Image.Image:
        if height is None:
            # new_height = (new_width / original_width) * original_height
            original_width, original_height = image.size
            height = max(1, int((width / original_width) * original_height))

        try:
            # LANCZOS filter for better quality
            return image.resize((width, height), Image.Resampling.LANCZOS)
        except Exception as e:
            raise EncodeFailed(f"Failed to resize the image. Error: {e}") from e

    @staticmethod
    def _convert_mode(image: Image.Image, output_format: OutputFormat) -> Image.Image:
        if output_format is OutputFormat.JPEG and image.mode not in ("RGB", "L"):
            logger.debug("Converting %s image to RGB for JPEG", image.mode)
            return image.convert("RGB")
        if output_format is OutputFormat.WEBP and image.mode == "P":
            return image.convert("RGBA")
        if output_format is OutputFormat.PNG and image.mode not in PNG_MODES:
            target = "RGBA" if image.has_transparency_data else "RGB"
            logger.debug("Converting %s image to %s for PNG", image.mode, target)
            return image.convert(target)
        return image


def get_codec() -> PillowCodec:
    return PillowCodec()
