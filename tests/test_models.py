import sys

import pytest
from pydantic import ValidationError

from instapay_ocr.exception import CustomException, InvalidImage
from instapay_ocr.models import (
    AmountCandidate,
    CropMode,
    CropRegion,
    PreprocessOptions,
    ProcessedImage,
    VisionResponse,
)
from instapay_ocr.utils.load_config import load_config_file, load_config_or_default


def test_vision_response_prefers_full_text():
    response = VisionResponse.model_validate({
        "responses": [{
            "fullTextAnnotation": {"text": "EGP 10", "pages": []},
            "textAnnotations": [{"description": "other"}],
        }]
    })
    assert response.best_text() == "EGP 10"


def test_vision_response_falls_back_to_first_annotation():
    response = VisionResponse.model_validate({
        "responses": [{"fullTextAnnotation": {"text": ""}, "textAnnotations": [{"description": "EGP 20"}]}]
    })
    assert response.best_text() == "EGP 20"


@pytest.mark.parametrize("body", [{}, {"responses": []}, {"responses": [{}]}, {"responses": [{"textAnnotations": []}]}])
def test_vision_response_defaults_to_empty_text(body):
    assert VisionResponse.model_validate(body).best_text() == ""


def test_crop_region_box_and_bounds():
    region = CropRegion(x=60, y=300, width=880, height=1200)
    assert region.box == (60, 300, 940, 1500)
    assert region.fits_within(1000, 2000)
    assert not region.fits_within(900, 2000)


@pytest.mark.parametrize("kwargs", [{"width": 0}, {"height": -1}, {"x": -5}])
def test_crop_region_rejects_degenerate(kwargs):
    values = {"x": 0, "y": 0, "width": 10, "height": 10, **kwargs}
    with pytest.raises(ValidationError):
        CropRegion(**values)


def test_preprocess_options_defaults():
    options = PreprocessOptions()
    assert (options.max_width, options.max_height) == (1100, 1100)
    assert options.crop_mode == CropMode.SMART
    assert options.contrast == 1.25
    assert options.jpeg_quality == 85


def test_preprocess_options_contrast_range():
    with pytest.raises(ValidationError):
        PreprocessOptions(contrast=2.0)


def test_preprocess_options_from_config():
    options = PreprocessOptions.from_config({"preprocess": {"max_width": 800, "crop_mode": "center", "unknown": 1}})
    assert options.max_width == 800
    assert options.max_height == 1100
    assert options.crop_mode == CropMode.CENTER


def test_preprocess_options_from_missing_section():
    assert PreprocessOptions.from_config(None) == PreprocessOptions()
    assert PreprocessOptions.from_config({"preprocess": None}) == PreprocessOptions()


def test_processed_image_never_larger_than_crop():
    crop = CropRegion(x=0, y=0, width=100, height=100)
    with pytest.raises(ValidationError):
        ProcessedImage(data=b"x", width=101, height=50, crop=crop)


def test_amount_candidate_validity():
    assert AmountCandidate(raw="10", value=10.0, digit_count=2, line="10").is_valid
    assert not AmountCandidate(raw="0", value=None, digit_count=1, line="0").is_valid


def test_load_config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("preprocess:\n  max_width: 640\nocr:\n  backend: tesseract\n")
    config = load_config_file(str(path))
    assert config["preprocess"]["max_width"] == 640
    assert config["ocr"]["backend"] == "tesseract"


def test_load_config_file_empty(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")
    assert load_config_file(str(path)) == {}


def test_custom_exception_records_location():
    try:
        try:
            raise ValueError("bad pixels")
        except ValueError as e:
            raise InvalidImage(e, sys)
    except CustomException as exc:
        message = str(exc)

    assert "bad pixels" in message
    assert "test_models.py" in message


def test_custom_exception_without_traceback():
    assert str(CustomException("plain message")) == "plain message"


def test_load_config_or_default_missing_file(tmp_path):
    assert load_config_or_default(str(tmp_path / "absent.yaml")) == {}


def test_options_from_config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("preprocess:\n  crop_mode: center\n  max_width: 640\n")

    options = PreprocessOptions.from_config(load_config_or_default(str(path)))

    assert options.crop_mode == CropMode.CENTER
    assert options.max_width == 640
