"""Records exchanged with the parsing oracle and the export-delivery layer."""

from pydantic import BaseModel, Field

from imagetofit.models.workout import Workout

# Below this confidence a parse should be reviewed before it is exported.
REVIEW_CONFIDENCE_THRESHOLD = 0.5


class ParseResult(BaseModel):
    """A workout recovered from an image, with the oracle's doubts attached."""

    workout: Workout
    warnings: list[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0, description="Advisory 0-1 score")

    @property
    def needs_review(self) -> bool:
        return self.confidence < REVIEW_CONFIDENCE_THRESHOLD


class ZwoExport(BaseModel):
    """Encoded ``.zwo`` document plus the filename to deliver it under."""

    xml: str
    filename: str

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'

    def to_bytes(self) -> bytes:
        return self.xml.encode("utf-8")
