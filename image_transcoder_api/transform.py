import logging
from typing import Optional

from PIL import Image

from image_transcoder_api.codec import Codec
from image_transcoder_api.models import OutputFormat

logger = logging.getLogger(__name__)


def transform(
    image: Image.Image,
    output_format: OutputFormat,
    codec: Codec,
    quality: Optional[int] = None,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> bytes:
    """
    One-shot resize and encode. Resizing only happens when `width` is given;
    a missing `height` keeps the aspect ratio. Without `quality` the codec's
    default is used.
    """
    if width is not None:
        image = codec.resize(image, width, height)
        logger.debug("Resized to %dx%d", *image.size)

    return codec.encode(image, output_format, quality)
