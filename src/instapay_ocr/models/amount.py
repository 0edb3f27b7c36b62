import math
from typing import Optional

from pydantic import BaseModel, Field


class AmountCandidate(BaseModel):
    """A numeric token matched in OCR text, with the line it came from."""
    raw: str = Field(..., description="Matched substring, e.g. '1,250.00'")
    value: Optional[float] = Field(None, description="Parsed value, None when not a positive finite number")
    digit_count: int
    line: str
    line_index: int = 0

    @property
    def is_valid(self) -> bool:
        return self.value is not None and math.isfinite(self.value) and self.value > 0


class AmountExtraction(BaseModel):
    """
    Outcome of the image -> amount pipeline for one uploaded file.
    amount is None when nothing qualified; the caller asks for manual entry.
    """
    amount: Optional[float] = None
    raw_text: str = ""
    ocr_success: bool = False
    error: Optional[str] = None
    file_name: Optional[str] = None

    @property
    def needs_manual_entry(self) -> bool:
        return self.amount is None
