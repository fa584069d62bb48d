from typing import List, Optional
from pydantic import Field
from mapsy.schemas.base import BaseSchema

class LatLng(BaseSchema):
    latitude: float = 0.0
    longitude: float = 0.0

class LandmarkLocation(BaseSchema):
    lat_lng: LatLng = Field(default_factory=LatLng)

class Landmark(BaseSchema):
    description: str = ""
    score: float = 0.0
    locations: List[LandmarkLocation] = Field(default_factory=list)

class WebEntity(BaseSchema):
    description: str = ""
    score: float = 0.0

class BestGuessLabel(BaseSchema):
    label: str = ""

class MatchingPage(BaseSchema):
    url: str = ""
    page_title: str = ""

class WebDetection(BaseSchema):
    web_entities: List[WebEntity] = Field(default_factory=list)
    best_guess_labels: List[BestGuessLabel] = Field(default_factory=list)
    pages_with_matching_images: List[MatchingPage] = Field(default_factory=list)

class TextAnnotation(BaseSchema):
    description: str = ""
    locale: Optional[str] = None

class LandmarkDetectionResult(BaseSchema):
    """Landmark, web and OCR annotations returned by the vision classifier."""

    landmarks: List[Landmark] = Field(default_factory=list)
    web_detection: Optional[WebDetection] = None
    text_annotations: List[TextAnnotation] = Field(default_factory=list)

    @property
    def primary_landmark(self) -> Optional[Landmark]:
        for landmark in self.landmarks:
            if landmark.description:
                return landmark
        return None

    @property
    def best_guess_label(self) -> Optional[str]:
        if not self.web_detection:
            return None
        for guess in self.web_detection.best_guess_labels:
            if guess.label:
                return guess.label
        return None

    @property
    def best_guess_labels(self) -> List[str]:
        if not self.web_detection:
            return []
        return [guess.label for guess in self.web_detection.best_guess_labels if guess.label]
