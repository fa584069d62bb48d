import logging
from typing import Optional
from fastapi import APIRouter, Depends, File, UploadFile
from mapsy.core.dependencies import get_current_user
from mapsy.services.vision_service import VisionService, get_vision_service, mock_detection_result
from mapsy.utils.response import success_response
from mapsy.utils.uploads import read_image_upload

logger = logging.getLogger("vision_controller")

router = APIRouter(prefix="/api/vision", tags=["vision"], dependencies=[Depends(get_current_user)])

@router.post("/detect-landmark")
async def detect_landmark(
    image: Optional[UploadFile] = File(None),
    vision: VisionService = Depends(get_vision_service),
):
    """Direct passthrough to the vision classifier, nothing is persisted."""
    data = await read_image_upload(image)
    logger.info(f"Processing image {image.filename}, {len(data)} bytes, {image.content_type}")

    if not vision.is_configured:
        logger.warning("Google Vision API key not configured, returning mock result")
        return success_response(
            data=mock_detection_result(),
            message="Mock response - Google Vision API key not configured",
        )

    result = await vision.detect_landmarks(data)
    return success_response(data=result, message="Image analyzed")

@router.post("/analyze-text")
async def analyze_text(
    image: Optional[UploadFile] = File(None),
    vision: VisionService = Depends(get_vision_service),
):
    data = await read_image_upload(image)
    if not vision.is_configured:
        return success_response(
            data={"textAnnotations": []},
            message="Mock response - Google Vision API key not configured",
        )
    result = await vision.detect_landmarks(data)
    return success_response(data={"textAnnotations": result.text_annotations})
