"""
Image preprocessing for Instapay receipt OCR.

Crops a screenshot to the band where the transfer amount usually sits,
downsizes it, and applies grayscale + contrast so the text detector
isolates the amount. Pure in-memory work: no network or disk writes.
"""

import io
import sys
from pathlib import Path
from typing import Any, Optional, Tuple, Union

from instapay_ocr.exception import InvalidImage, ProcessingUnavailable
from instapay_ocr.logger import get_logger
from instapay_ocr.models import CropMode, CropRegion, PreprocessOptions, ProcessedImage, SourceImage

logger = get_logger(__name__)

# (x, y, width, height) as fractions of the source width/height.
# Tuned on Instapay confirmation screenshots: the amount + "EGP" sits in the
# upper-middle area, below the success banner and above the transaction details.
CROP_FRACTIONS = {
    CropMode.CENTER: (0.10, 0.18, 0.80, 0.55),
    CropMode.SMART: (0.06, 0.15, 0.88, 0.60),
}

MIDPOINT = 128

# SourceImage, raw bytes, a file path, or an open PIL image
ImageSource = Union[SourceImage, bytes, str, Path, Any]


def _load_pillow():
    try:
        from PIL import Image, ImageOps, UnidentifiedImageError

        return Image, ImageOps, UnidentifiedImageError
    except Exception as exc:
        raise ProcessingUnavailable(f"Pillow is required for preprocessing: {exc}", sys) from exc


def _decode(data: bytes):
    Image, ImageOps, UnidentifiedImageError = _load_pillow()
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        return ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        logger.error("Failed to decode source image: %s", exc)
        raise InvalidImage(exc, sys) from exc


def load_source_image(source: Union[bytes, str, Path], file_name: Optional[str] = None) -> SourceImage:
    """Reads raw bytes (or a file path) and records the decoded, orientation-corrected size."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.error("Cannot read image %s: %s", path, exc)
            raise InvalidImage(exc, sys) from exc
        file_name = file_name or path.name
    else:
        data = bytes(source)

    if not data:
        raise InvalidImage("Image payload is empty", sys)

    img = _decode(data)
    width, height = img.size
    return SourceImage(data=data, width=width, height=height, file_name=file_name)


def _open(source: ImageSource):
    Image, _, _ = _load_pillow()
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, SourceImage):
        return _decode(source.data)
    if isinstance(source, (str, Path)):
        return _decode(load_source_image(source).data)
    if not source:
        raise InvalidImage("Image payload is empty", sys)
    return _decode(bytes(source))


def get_crop_region(width: int, height: int, crop_mode: Union[CropMode, str] = CropMode.SMART) -> CropRegion:
    """
    Fixed-ratio crop rectangle for a width x height source.
    Offsets and sizes are floored to whole pixels; sizes never drop below 1.
    """
    if width <= 0 or height <= 0:
        raise InvalidImage(f"Image has no pixels ({width}x{height})", sys)

    fx, fy, fw, fh = CROP_FRACTIONS[CropMode(crop_mode)]
    return CropRegion(
        x=int(width * fx),
        y=int(height * fy),
        width=max(1, int(width * fw)),
        height=max(1, int(height * fh)),
    )


def fit_within(width: int, height: int, max_width: int, max_height: int) -> Tuple[int, int]:
    """Largest size inside max_width x max_height with the same aspect ratio; never upscales."""
    scale = min(max_width / width, max_height / height, 1.0)
    return max(1, int(width * scale)), max(1, int(height * scale))


def _contrast_table(contrast: float):
    table = []
    for value in range(256):
        stretched = (value - MIDPOINT) * contrast + MIDPOINT
        table.append(int(round(max(0.0, min(255.0, stretched)))))
    return table


def enhance_for_ocr(image, contrast: float = 1.25):
    """
    Grayscale + contrast stretch around 128, clamped to [0, 255].
    The result keeps the RGB layout with R = G = B; an alpha band is carried over untouched.
    """
    Image, _, _ = _load_pillow()

    has_alpha = image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info)
    rgb = image.convert("RGBA" if has_alpha else "RGB")

    # "L" conversion is ITU-R 601-2 luma: 0.299 R + 0.587 G + 0.114 B
    gray = rgb.convert("L").point(_contrast_table(contrast))

    if has_alpha:
        return Image.merge("RGBA", (gray, gray, gray, rgb.getchannel("A")))
    return Image.merge("RGB", (gray, gray, gray))


def encode_jpeg(image, quality: int = 85) -> bytes:
    """JPEG has no alpha: transparent areas are flattened onto white."""
    Image, _, _ = _load_pillow()

    if image.mode == "RGBA":
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image, mask=image.getchannel("A"))
        image = background
    elif image.mode != "RGB":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def preprocess(source: ImageSource, options: Optional[PreprocessOptions] = None) -> ProcessedImage:
    """
    Crop -> resize -> grayscale/contrast -> JPEG.

    Raises:
        InvalidImage: the source cannot be decoded.
        ProcessingUnavailable: Pillow is missing.
    """
    Image, _, _ = _load_pillow()
    options = options or PreprocessOptions()

    img = _open(source)
    width, height = img.size

    crop = get_crop_region(width, height, options.crop_mode)
    dw, dh = fit_within(crop.width, crop.height, options.max_width, options.max_height)

    try:
        resized = img.crop(crop.box).resize((dw, dh), Image.Resampling.BILINEAR)
        enhanced = enhance_for_ocr(resized, contrast=options.contrast)
        data = encode_jpeg(enhanced, quality=options.jpeg_quality)
    except (OSError, ValueError) as exc:
        logger.error("Preprocessing failed for %sx%s image: %s", width, height, exc)
        raise InvalidImage(exc, sys) from exc

    logger.debug(
        "Preprocessed %sx%s -> crop %s (%s) -> %sx%s, %s bytes",
        width, height, crop.box, CropMode(options.crop_mode).value, dw, dh, len(data),
    )
    return ProcessedImage(data=data, width=dw, height=dh, crop=crop)
