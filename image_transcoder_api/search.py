"""
Size-constrained quality search.

Re-encodes the original image at decreasing quality levels (100, 95, ..., 5)
until the output fits the byte budget. The first fitting level is returned,
which is the highest one as long as the codec's output size does not grow
when quality drops. Quality 0 is never attempted; if quality 5 still does
not fit, the search fails instead of returning an oversized result.
"""
import logging
import time
from typing import Iterator, Optional

from image_transcoder_api.codec import Codec
from image_transcoder_api.errors import EncodeFailed, InvalidRequest, TranscodeTimeout
from image_transcoder_api.models import (
    MAX_QUALITY,
    QUALITY_STEP,
    EncodingRequest,
    SearchFailure,
    SearchOutcome,
    SearchSuccess,
)

logger = logging.getLogger(__name__)

BUDGET_UNSATISFIABLE_MESSAGE = "Unable to reduce the image size to the specified max file size."


def quality_ladder(start: int = MAX_QUALITY, step: int = QUALITY_STEP) -> Iterator[int]:
    quality = start
    while quality > 0:
        yield quality
        quality -= step


def search_quality(
    request: EncodingRequest,
    codec: Codec,
    deadline: Optional[float] = None,
) -> SearchOutcome:
    """
    Find the highest quality on the ladder whose encoding fits request.max_bytes.

    `deadline` is a time.monotonic() timestamp checked before every attempt.
    Codec errors abort the search with EncodeFailed.
    """
    max_bytes = request.max_bytes
    if max_bytes is None or max_bytes < 1:
        raise InvalidRequest(f"max_bytes must be a positive integer, got {max_bytes!r}")

    image = codec.decode(request.source_bytes)

    attempts = 0
    lowest_quality = MAX_QUALITY
    for quality in quality_ladder():
        if deadline is not None and time.monotonic() > deadline:
            raise TranscodeTimeout(
                f"Deadline exceeded after {attempts} encode attempts (last quality {lowest_quality})."
            )

        try:
            data = codec.encode(image, request.output_format, quality)
        except EncodeFailed:
            raise
        except Exception as e:
            raise EncodeFailed(f"Failed to encode at quality {quality}. Error: {e}", quality=quality) from e

        attempts += 1
        lowest_quality = quality
        logger.debug("quality=%d size=%d budget=%d", quality, len(data), max_bytes)

        if len(data) <= max_bytes:
            logger.info(
                "Fitted %s output into %d bytes at quality %d after %d attempts",
                request.output_format.value, max_bytes, quality, attempts,
            )
            return SearchSuccess(data=data, quality=quality, attempts=attempts)

    logger.info(
        "Could not fit %s output into %d bytes; quality %d still too large",
        request.output_format.value, max_bytes, lowest_quality,
    )
    return SearchFailure(
        reason=BUDGET_UNSATISFIABLE_MESSAGE,
        max_bytes=max_bytes,
        lowest_quality=lowest_quality,
        attempts=attempts,
    )
