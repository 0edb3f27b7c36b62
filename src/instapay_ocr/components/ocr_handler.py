import base64
import io
import os
import re
import sys
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

import pytesseract
import requests
from PIL import Image
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from instapay_ocr.logger import get_logger
from instapay_ocr.exception import CustomException
from instapay_ocr.models import OCRResult, ProcessedImage, VisionResponse
from instapay_ocr.utils.load_config import load_config_file

logger = get_logger(__name__)

DEFAULT_VISION_ENDPOINT = "https://vision.googleapis.com/v1/images:annotate"
DEFAULT_TIMEOUT_SECONDS = 30

# Environment each backend needs before it can run
REQUIRED_ENV_VARS = {
    "vision": ["GOOGLE_VISION_API_KEY"],
    "tesseract": [],
}


@lru_cache(maxsize=1)
def _load_ocr_settings() -> Dict[str, Any]:
    try:
        config = load_config_file()
        return config.get("ocr", {}) or {}
    except FileNotFoundError:
        return {}
    except Exception as exc:
        logger.warning("Failed to load OCR config: %s", exc)
        return {}


@lru_cache(maxsize=1)
def _get_session() -> requests.Session:
    return requests.Session()


def configured_backend(config: Optional[Dict[str, Any]] = None) -> str:
    section = (config or {}).get("ocr", {}) or {}
    return section.get("backend") or "vision"


def missing_env_vars(backend: str) -> List[str]:
    return [name for name in REQUIRED_ENV_VARS.get(backend, []) if not os.getenv(name)]

# ---------------------------------------------------------------------
# Google Cloud Vision backend
# ---------------------------------------------------------------------

@retry(
    retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    reraise=True,
)
def _annotate(endpoint: str, api_key: str, payload: Dict[str, Any], timeout: float) -> requests.Response:
    return _get_session().post(endpoint, params={"key": api_key}, json=payload, timeout=timeout)


def vision_backend(image_bytes: bytes) -> Dict[str, Any]:
    """
    Run TEXT_DETECTION on encoded image bytes.
    Output format: the images:annotate JSON body.
    """
    api_key = os.getenv("GOOGLE_VISION_API_KEY")
    if not api_key:
        raise CustomException("GOOGLE_VISION_API_KEY is not set in the environment.")

    settings = _load_ocr_settings()
    endpoint = settings.get("endpoint") or DEFAULT_VISION_ENDPOINT
    timeout = settings.get("timeout_seconds") or DEFAULT_TIMEOUT_SECONDS

    payload = {
        "requests": [
            {
                "image": {"content": base64.b64encode(image_bytes).decode("ascii")},
                "features": [{"type": "TEXT_DETECTION"}],
            }
        ]
    }

    try:
        response = _annotate(endpoint, api_key, payload, timeout)
    except requests.RequestException as e:
        raise CustomException(e, sys)

    if not response.ok:
        raise CustomException(f"Vision API returned {response.status_code}: {response.text}")

    body = response.json()
    parsed = VisionResponse.model_validate(body)
    if parsed.first and parsed.first.error and parsed.first.error.message:
        raise CustomException(f"Vision API error: {parsed.first.error.message}")
    return body

# ---------------------------------------------------------------------
# Tesseract backend
# ---------------------------------------------------------------------

def tesseract_backend(image_bytes: bytes) -> str:
    """Run Tesseract on encoded image bytes."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return pytesseract.image_to_string(img.convert("RGB"))
    except Exception as e:
        raise CustomException(e, sys)

# ---------------------------------------------------------------------
# OCR Handler
# ---------------------------------------------------------------------

class OCRHandler:
    """
    OCRHandler turns a preprocessed receipt image into text for the amount extractor.

    Usage:
        ocr = OCRHandler(backend="vision")
        result = ocr.run(processed_image)
    """

    def __init__(self, backend: Optional[str] = None):
        self.backends = {
            "vision": vision_backend,
            "tesseract": tesseract_backend,
        }

        backend = backend or _load_ocr_settings().get("backend") or "vision"
        if backend not in self.backends:
            raise CustomException(
                f"Unsupported OCR backend '{backend}'. Available: {list(self.backends.keys())}",
                sys
            )

        self.backend_name = backend
        self.ocr_fn = self.backends[backend]
        logger.info("OCRHandler initialized with backend='%s'", backend)

    def run(self, image: Union[ProcessedImage, bytes]) -> OCRResult:
        """
        Safe execution boundary: catches all errors and returns an OCRResult.
        """
        try:
            image_bytes = image.data if isinstance(image, ProcessedImage) else image
            if not image_bytes:
                raise ValueError("Image payload is empty")

            raw_output = self.ocr_fn(image_bytes)

            if raw_output is None:
                raise ValueError("OCR engine returned None")

            text = self._clean_text(self._format_output(raw_output))

            if not text:
                logger.warning("OCR successful but no text was detected (%s bytes).", len(image_bytes))

            return OCRResult(
                text=text,
                raw_data=raw_output,
                success=True,
                backend=self.backend_name
            )

        except Exception as e:
            err_msg = str(e)
            logger.error("OCR failed with backend %s: %s", self.backend_name, err_msg)
            return OCRResult(
                text="",
                raw_data=None,
                success=False,
                error=err_msg,
                backend=self.backend_name
            )

    def _format_output(self, raw) -> str:
        """
        Normalize different backend outputs into a single string.
        """
        # Vision JSON: full text, else first annotation, else ""
        if isinstance(raw, dict):
            return VisionResponse.model_validate(raw).best_text()

        # Tesseract/String output
        return str(raw)

    def _clean_text(self, text: str) -> str:
        """
        Collapse runs of spaces/tabs and blank lines; line structure is kept for the extractor.
        """
        if not text:
            return ""

        text = text.replace("\r\n", "\n")
        text = re.sub(r"[ \t]+", " ", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()
