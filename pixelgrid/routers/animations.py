"""
Animation routes - metadata, frame data and full replace
"""

import logging
from enum import Enum

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from pixelgrid.config import MAX_METADATA_BYTES
from pixelgrid.dependencies import get_engine
from pixelgrid.errors import ValidationFailed
from pixelgrid.models import MetadataResponse, ReplaceResult, ReplaceStatus
from pixelgrid.pixels import to_hardware_order
from pixelgrid.sync_engine import SyncEngine
from pixelgrid.transfer import METADATA_FIELD, OCTET_STREAM, decode_state

router = APIRouter(tags=["Animations"])
logger = logging.getLogger(__name__)


class FrameLayout(str, Enum):
    ROW_MAJOR = "row-major"
    HARDWARE = "hardware"  # Serpentine scan order of the physical matrix


@router.get("/ping")
async def ping() -> str:
    """Connectivity check, returns 'pong'."""
    logger.debug('Handling GET request for "/ping"')
    return "pong"


@router.get("/metadata", response_model=MetadataResponse)
async def get_metadata(
    engine: SyncEngine = Depends(get_engine),
) -> MetadataResponse:
    """
    List all animations.

    Returns the metadata of every animation in display order.
    """
    return MetadataResponse(metadata=engine.get_metadata())


@router.get(
    "/frameData/{frame_id}",
    response_class=Response,
    responses={200: {"content": {OCTET_STREAM: {}}}},
)
async def get_frame_data(
    frame_id: str,
    layout: FrameLayout = FrameLayout.ROW_MAJOR,
    engine: SyncEngine = Depends(get_engine),
) -> Response:
    """
    Fetch the raw RGB data of one frame.

    Returns the frame's bytes row-major, or in the matrix scan order when
    `layout=hardware`.
    """
    frame = engine.get_frame(frame_id)

    data = frame.data
    if layout is FrameLayout.HARDWARE:
        data = to_hardware_order(data)

    return Response(content=data, media_type=OCTET_STREAM)


@router.post(
    "/data",
    response_model=ReplaceResult,
    responses={503: {"model": ReplaceResult}},
)
async def replace_animations(
    request: Request,
    engine: SyncEngine = Depends(get_engine),
) -> JSONResponse:
    """
    Replace the whole animation set.

    Accepts a multipart body whose `metadata` field holds the JSON animation
    list (frame attachments are ignored; frame IDs are assigned here), or
    the JSON list itself as the request body.
    """
    logger.info('POST request received for "/data"')
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        try:
            form = await request.form(max_part_size=MAX_METADATA_BYTES)
        except HTTPException as e:
            raise ValidationFailed(f"Malformed form body: {e.detail}") from None
        document = form.get(METADATA_FIELD)
        if document is None:
            raise ValidationFailed(f"Form field '{METADATA_FIELD}' is required")
        if not isinstance(document, str):
            document = await document.read()
        logger.debug(f"Ignoring {len(form.multi_items()) - 1} frame attachments")
    else:
        document = await request.body()

    result = engine.replace_all(decode_state(document))

    status_code = 200 if result.status is ReplaceStatus.PERSISTED else 503
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))
