from instapay_ocr.components.image_preprocessor import preprocess
from instapay_ocr.agents.amount_extractor import extract_best_amount
from instapay_ocr.agents.instapay_pipeline import extract_amount_from_image

__version__ = "0.1.0"

__all__ = ["preprocess", "extract_best_amount", "extract_amount_from_image"]
