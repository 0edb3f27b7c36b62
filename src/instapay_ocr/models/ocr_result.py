from typing import Any, Optional
from pydantic import BaseModel, Field

class OCRResult(BaseModel):
    """
    Text detected on a preprocessed receipt image, as handed to the amount extractor.
    """
    text: str = Field("", description="Detected text, newline separated; empty when nothing was read")
    raw_data: Optional[Any] = Field(None, description="Backend-specific raw OCR output")
    success: bool
    error: Optional[str] = None
    backend: str = Field(..., description="The OCR engine used (e.g., vision, tesseract)")
