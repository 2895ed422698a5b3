from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from pydantic import AnyHttpUrl, BaseModel, Field

from image_transcoder_api.errors import SizeBudgetUnsatisfiable

MAX_QUALITY = 100
QUALITY_STEP = 5


class OutputFormat(str, Enum):
    WEBP = "webp"
    PNG = "png"
    JPEG = "jpeg"

    @property
    def pillow_format(self) -> str:
        # Pillow uses uppercase format names (e.g., "WEBP")
        return self.value.upper()

    @property
    def media_type(self) -> str:
        return f"image/{self.value}"

    @property
    def is_lossy(self) -> bool:
        return self is not OutputFormat.PNG


@dataclass(frozen=True)
class EncodingRequest:
    source_bytes: bytes
    output_format: OutputFormat
    max_bytes: Optional[int] = None


@dataclass(frozen=True)
class SearchSuccess:
    data: bytes
    quality: int
    attempts: int

    ok = True


@dataclass(frozen=True)
class SearchFailure:
    reason: str
    max_bytes: int
    lowest_quality: int
    attempts: int

    ok = False

    def raise_error(self):
        raise SizeBudgetUnsatisfiable(
            self.reason, max_bytes=self.max_bytes, lowest_quality=self.lowest_quality
        )


SearchOutcome = Union[SearchSuccess, SearchFailure]


class TranscodeParams(BaseModel):
    """Query string accepted by the transcode endpoint."""

    url: AnyHttpUrl = Field(..., description="URL of the image to transcode.")
    outputType: OutputFormat = Field(..., description="The desired output format (webp, png or jpeg).")
    quality: Optional[int] = Field(
        None,
        ge=1,
        le=100,
        description="The compression quality (1 to 100). Only used for lossy formats (JPEG, WebP).",
    )
    width: Optional[int] = Field(None, ge=1, description="New width in pixels.")
    height: Optional[int] = Field(
        None,
        ge=1,
        description="New height in pixels. Only applied together with width; if omitted the aspect ratio is kept.",
    )
    maxFileSize: Optional[int] = Field(
        None,
        ge=1000,
        description="Maximum size of the output in bytes. When set, quality is searched and resize is skipped.",
    )

    def to_encoding_request(self, source_bytes: bytes) -> EncodingRequest:
        return EncodingRequest(
            source_bytes=source_bytes,
            output_format=self.outputType,
            max_bytes=self.maxFileSize,
        )
