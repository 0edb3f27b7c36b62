from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _VisionModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TextAnnotation(_VisionModel):
    description: Optional[str] = None
    locale: Optional[str] = None


class FullTextAnnotation(_VisionModel):
    text: Optional[str] = None


class VisionError(_VisionModel):
    code: Optional[int] = None
    message: Optional[str] = None


class VisionAnnotateResult(_VisionModel):
    full_text_annotation: Optional[FullTextAnnotation] = Field(None, alias="fullTextAnnotation")
    text_annotations: List[TextAnnotation] = Field(default_factory=list, alias="textAnnotations")
    error: Optional[VisionError] = None

    def best_text(self) -> str:
        """Full text annotation, else the first annotation's description, else ''."""
        if self.full_text_annotation and self.full_text_annotation.text:
            return self.full_text_annotation.text
        if self.text_annotations and self.text_annotations[0].description:
            return self.text_annotations[0].description
        return ""


class VisionResponse(_VisionModel):
    """Typed view over the images:annotate JSON body; every level is optional."""
    responses: List[VisionAnnotateResult] = Field(default_factory=list)

    @property
    def first(self) -> Optional[VisionAnnotateResult]:
        return self.responses[0] if self.responses else None

    def best_text(self) -> str:
        return self.first.best_text() if self.first else ""
