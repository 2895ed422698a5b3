# Required imports
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Annotated, Optional

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from image_transcoder_api import __version__
from image_transcoder_api.codec import Codec, get_codec
from image_transcoder_api.errors import EncodeFailed, TranscodeError, TranscodeTimeout
from image_transcoder_api.fetch import Fetcher, fetch_bytes
from image_transcoder_api.models import TranscodeParams
from image_transcoder_api.search import search_quality
from image_transcoder_api.settings import Settings, configure_logging, get_settings
from image_transcoder_api.transform import transform

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)
    async with httpx.AsyncClient(timeout=settings.fetch_timeout) as client:
        app.state.http_client = client
        yield


app = FastAPI(
    title="Image Transcoder API",
    description="Fetches an image by URL and re-encodes it under format, quality, size and byte-budget constraints.",
    version=__version__,
    lifespan=lifespan,
)


def get_fetcher(request: Request, settings: Settings = Depends(get_settings)) -> Fetcher:
    client = request.app.state.http_client

    async def fetcher(url: str) -> bytes:
        return await fetch_bytes(
            url,
            client,
            retries=settings.fetch_retries,
            backoff=settings.fetch_backoff,
            max_bytes=settings.max_source_bytes,
        )

    return fetcher


# --- ERROR HANDLERS ---
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # Malformed query parameters are a client error; nothing has been fetched yet
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(TranscodeError)
async def transcode_error_handler(request: Request, exc: TranscodeError):
    if isinstance(exc, EncodeFailed):
        logger.error("%s: %s", type(exc).__name__, exc, exc_info=exc)
    else:
        logger.warning("%s: %s", type(exc).__name__, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc) or "Unknown error"})


# Health Route
@app.get("/health")
def health():
    return {"status": "ok"}


# --- TRANSCODE ENDPOINT ---
@app.get(
    "/",
    summary="Fetches an Image and Re-encodes it (Optionally Under a Byte Budget)",
    response_description="The encoded image bytes.",
    response_class=Response,
)
async def transcode_image(
    params: Annotated[TranscodeParams, Query()],
    settings: Settings = Depends(get_settings),
    fetcher: Fetcher = Depends(get_fetcher),
    codec: Codec = Depends(get_codec),
):
    deadline: Optional[float] = None
    if settings.request_timeout > 0:
        deadline = time.monotonic() + settings.request_timeout

    # 1. Fetching the source image
    try:
        source = await asyncio.wait_for(fetcher(str(params.url)), timeout=settings.request_timeout or None)
    except asyncio.TimeoutError:
        raise TranscodeTimeout(f"Deadline exceeded while fetching {params.url}")

    # 2. Byte budget: search quality on the original, un-resized bytes
    headers = {}
    if params.maxFileSize is not None:
        request = params.to_encoding_request(source)
        outcome = await run_in_threadpool(search_quality, request, codec, deadline)
        if not outcome.ok:
            outcome.raise_error()
        data = outcome.data
        headers["X-Image-Quality"] = str(outcome.quality)

    # 3. Otherwise a single resize / encode pass
    else:
        image = await run_in_threadpool(codec.decode, source)
        data = await run_in_threadpool(
            transform,
            image,
            params.outputType,
            codec,
            params.quality,
            params.width,
            params.height,
        )

    # 4. Returning the encoded image
    return Response(content=data, media_type=params.outputType.media_type, headers=headers)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
