from typing import Optional


class TranscodeError(Exception):
    """Base error for anything that stops a transcode request"""

    status_code = 500


class ConfigError(TranscodeError):
    """Missing or invalid configuration"""


class InvalidRequest(TranscodeError):
    """Malformed or out-of-range input parameters"""

    status_code = 400


class FetchFailed(TranscodeError):
    """The source image could not be retrieved"""


class DecodeFailed(TranscodeError):
    """The fetched bytes are not a decodable image"""


class EncodeFailed(TranscodeError):
    """The codec failed while encoding or resizing"""

    def __init__(self, message: str, quality: Optional[int] = None):
        super().__init__(message)
        self.quality = quality


class SizeBudgetUnsatisfiable(TranscodeError):
    """No quality level on the ladder fits the byte budget"""

    def __init__(self, message: str, max_bytes: int, lowest_quality: int):
        super().__init__(message)
        self.max_bytes = max_bytes
        self.lowest_quality = lowest_quality


class TranscodeTimeout(TranscodeError):
    """The request deadline passed before a result was produced"""
