import math
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from instapay_ocr.agents.amount_extractor import AMOUNT_PATTERN, AmountSelectionStrategy, extract_best_amount
from instapay_ocr.components.image_preprocessor import load_source_image, preprocess
from instapay_ocr.components.ocr_handler import OCRHandler
from instapay_ocr.exception import InvalidImage
from instapay_ocr.logger import get_logger
from instapay_ocr.models import AmountExtraction, PreprocessOptions, SourceImage
from instapay_ocr.utils.load_config import load_config_or_default

logger = get_logger(__name__)

UploadedImage = Union[SourceImage, bytes, str, Path]


def _default_options() -> PreprocessOptions:
    return PreprocessOptions.from_config(load_config_or_default())


def extract_amount_from_image(
    image: UploadedImage,
    file_name: Optional[str] = None,
    ocr_handler: Optional[OCRHandler] = None,
    options: Optional[PreprocessOptions] = None,
    strategy: Optional[AmountSelectionStrategy] = None,
) -> AmountExtraction:
    """
    Screenshot -> preprocess -> OCR -> amount.

    OCR problems never raise: the extractor still runs (on "" if needed) and
    amount comes back None so the caller asks for manual entry.
    InvalidImage / ProcessingUnavailable from preprocessing propagate.
    """
    if not isinstance(image, SourceImage):
        image = load_source_image(image, file_name=file_name)
    file_name = file_name or image.file_name

    processed = preprocess(image, options or _default_options())
    logger.info(
        "Preprocessed %s: %sx%s -> %sx%s (%s bytes)",
        file_name or "<upload>", image.width, image.height,
        processed.width, processed.height, len(processed.data),
    )

    ocr = ocr_handler or OCRHandler()
    ocr_result = ocr.run(processed)

    amount = extract_best_amount(ocr_result.text if ocr_result.success else "", strategy=strategy)
    if amount is None:
        logger.warning("No amount detected for %s; manual entry required.", file_name or "<upload>")

    return AmountExtraction(
        amount=amount,
        raw_text=ocr_result.text,
        ocr_success=ocr_result.success,
        error=ocr_result.error,
        file_name=file_name,
    )


def extract_amounts(
    images: Iterable[Union[UploadedImage, Tuple[str, bytes]]],
    ocr_handler: Optional[OCRHandler] = None,
    options: Optional[PreprocessOptions] = None,
    strategy: Optional[AmountSelectionStrategy] = None,
) -> List[AmountExtraction]:
    """
    Runs the pipeline over several uploads, in order. Items may be (file_name, bytes) pairs.
    An undecodable image is reported on its own entry instead of aborting the batch.
    """
    ocr = ocr_handler or OCRHandler()
    options = options or _default_options()
    results = []

    for item in images:
        file_name = None
        if isinstance(item, tuple):
            file_name, item = item
        elif isinstance(item, (str, Path)):
            file_name = Path(item).name

        try:
            results.append(
                extract_amount_from_image(item, file_name=file_name, ocr_handler=ocr, options=options, strategy=strategy)
            )
        except InvalidImage as e:
            logger.error("Skipping unreadable image %s: %s", file_name, e)
            results.append(AmountExtraction(file_name=file_name, error=str(e)))

    return results


def parse_manual_amount(value: str) -> float:
    """
    Validates an amount typed by the user when OCR found nothing.
    Accepts thousands separators ("1,250.50"); rejects blanks, zero and negatives.
    """
    text = (value or "").strip().replace(",", "")
    if not text:
        raise ValueError("Amount is required")
    if not AMOUNT_PATTERN.fullmatch(text):
        raise ValueError(f"Amount must be a plain number like 1250 or 1,250.50, got {value!r}")

    amount = float(text)
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError(f"Amount must be a positive number, got {value!r}")
    return amount
