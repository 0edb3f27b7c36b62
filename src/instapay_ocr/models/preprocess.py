from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_MAX_WIDTH = 1100
DEFAULT_MAX_HEIGHT = 1100
DEFAULT_CONTRAST = 1.25
DEFAULT_JPEG_QUALITY = 85


class CropMode(str, Enum):
    CENTER = "center"
    SMART = "smart"


class CropRegion(BaseModel):
    """Pixel rectangle of the source image kept before resizing."""
    model_config = ConfigDict(frozen=True)

    x: int = Field(..., ge=0, description="Left offset in source pixels")
    y: int = Field(..., ge=0, description="Top offset in source pixels")
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    @property
    def box(self) -> Tuple[int, int, int, int]:
        """(left, upper, right, lower) as Pillow expects it."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def fits_within(self, width: int, height: int) -> bool:
        return self.x + self.width <= width and self.y + self.height <= height


class PreprocessOptions(BaseModel):
    max_width: int = Field(DEFAULT_MAX_WIDTH, gt=0, description="Output width cap")
    max_height: int = Field(DEFAULT_MAX_HEIGHT, gt=0, description="Output height cap")
    crop_mode: CropMode = CropMode.SMART
    contrast: float = Field(DEFAULT_CONTRAST, ge=1.15, le=1.35, description="Contrast factor around midpoint 128")
    jpeg_quality: int = Field(DEFAULT_JPEG_QUALITY, ge=1, le=95)

    @classmethod
    def from_config(cls, config: Optional[Dict[str, Any]]) -> "PreprocessOptions":
        """Builds options from the `preprocess` section of config.yaml; missing keys keep defaults."""
        section = (config or {}).get("preprocess", {}) or {}
        return cls(**{k: v for k, v in section.items() if k in cls.model_fields})


class SourceImage(BaseModel):
    """User supplied photo/screenshot, decoded once to learn its size."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    file_name: Optional[str] = None


class ProcessedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., description="Encoded JPEG bytes")
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    crop: CropRegion
    content_type: str = "image/jpeg"

    @model_validator(mode="after")
    def _never_upscaled(self) -> "ProcessedImage":
        if self.width > self.crop.width or self.height > self.crop.height:
            raise ValueError("Processed image is larger than its crop region")
        return self
