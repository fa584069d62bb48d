import asyncio
import base64
import logging
from typing import Any, Dict, Optional

import aiohttp

from mapsy.core.config import settings
from mapsy.core.exceptions import UpstreamError
from mapsy.models.vision import LandmarkDetectionResult

logger = logging.getLogger("vision_service")

FEATURES = [
    {"type": "LANDMARK_DETECTION", "maxResults": 5},
    {"type": "WEB_DETECTION", "maxResults": 10},
    {"type": "TEXT_DETECTION"},
]

MOCK_LABEL = "Test image (API key not configured)"


def parse_annotate_response(payload: Dict[str, Any]) -> LandmarkDetectionResult:
    """Google Vision ``images:annotate`` reply -> LandmarkDetectionResult.

    Any reply that does not have the documented shape raises ``UpstreamError``.
    """
    try:
        return _parse_annotation(payload)
    except (ValueError, TypeError, AttributeError, LookupError) as e:
        logger.error(f"Unexpected Vision API payload: {e}")
        raise UpstreamError("Vision API returned an invalid response", service="vision")


def _parse_annotation(payload: Dict[str, Any]) -> LandmarkDetectionResult:
    responses = payload.get("responses") or [{}]
    annotation = responses[0] or {}
    if annotation.get("error"):
        message = annotation["error"].get("message", "unknown error")
        raise UpstreamError(f"Vision API error: {message}", service="vision")

    landmarks = []
    for landmark in annotation.get("landmarkAnnotations") or []:
        locations = []
        for location in landmark.get("locations") or []:
            lat_lng = location.get("latLng") or {}
            locations.append({
                "latLng": {
                    "latitude": lat_lng.get("latitude") or 0,
                    "longitude": lat_lng.get("longitude") or 0,
                }
            })
        landmarks.append({
            "description": landmark.get("description") or "",
            "score": landmark.get("score") or 0,
            "locations": locations,
        })

    web_detection = None
    web = annotation.get("webDetection")
    if web:
        web_detection = {
            "webEntities": [
                {"description": entity.get("description") or "", "score": entity.get("score") or 0}
                for entity in web.get("webEntities") or []
            ],
            "bestGuessLabels": [
                {"label": label.get("label") or ""}
                for label in web.get("bestGuessLabels") or []
            ],
            "pagesWithMatchingImages": [
                {"url": page.get("url") or "", "pageTitle": page.get("pageTitle") or ""}
                for page in web.get("pagesWithMatchingImages") or []
            ],
        }

    text_annotations = []
    for text in annotation.get("textAnnotations") or []:
        item = {"description": text.get("description") or ""}
        if text.get("locale"):
            item["locale"] = text["locale"]
        text_annotations.append(item)

    return LandmarkDetectionResult.model_validate({
        "landmarks": landmarks,
        "webDetection": web_detection,
        "textAnnotations": text_annotations,
    })


def mock_detection_result() -> LandmarkDetectionResult:
    return LandmarkDetectionResult.model_validate({
        "landmarks": [],
        "webDetection": {"webEntities": [], "bestGuessLabels": [{"label": MOCK_LABEL}]},
        "textAnnotations": [],
    })


class VisionService:
    def __init__(self, api_key: Optional[str] = None, url: str = None, timeout: float = None):
        self.api_key = api_key if api_key is not None else settings.google_vision_api_key
        self.url = url or settings.google_vision_url
        self.timeout = timeout or settings.external_timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def detect_landmarks(self, image_bytes: bytes) -> LandmarkDetectionResult:
        """Landmark, web and text detection in a single annotate request."""
        if not self.is_configured:
            raise UpstreamError("Google Vision API key is not configured", service="vision")

        body = {
            "requests": [{
                "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                "features": FEATURES,
            }]
        }
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.url,
                    params={"key": self.api_key},
                    json=body,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status != 200:
                        detail = await response.text()
                        logger.error(f"Vision API returned HTTP {response.status}: {detail[:200]}")
                        raise UpstreamError(f"Vision API call failed with status {response.status}", service="vision")
                    payload = await response.json()
        except asyncio.TimeoutError:
            raise UpstreamError("Vision API timed out", service="vision")
        except aiohttp.ClientError as e:
            raise UpstreamError(f"Vision API unreachable: {e}", service="vision")
        except ValueError as e:
            logger.error(f"Vision API returned a non-JSON body: {e}")
            raise UpstreamError("Vision API returned an invalid response", service="vision")

        result = parse_annotate_response(payload)
        logger.info(
            f"Vision results: {len(result.landmarks)} landmarks, "
            f"{len(result.web_detection.web_entities) if result.web_detection else 0} web entities, "
            f"{len(result.text_annotations)} text annotations"
        )
        return result


vision_service = VisionService()

def get_vision_service() -> VisionService:
    return vision_service
