import pytest
from unittest.mock import MagicMock
from PIL import Image

from instapay_ocr.agents.amount_extractor import FirstAmountStrategy
from instapay_ocr.agents.instapay_pipeline import extract_amount_from_image, extract_amounts, parse_manual_amount
from instapay_ocr.exception import InvalidImage
from instapay_ocr.models import AmountExtraction, OCRResult, PreprocessOptions, ProcessedImage


@pytest.fixture
def mock_ocr():
    ocr = MagicMock()
    ocr.run.return_value = OCRResult(
        text="Payment Successful\nEGP 1,250.00\nTo: 01012345678",
        raw_data=None,
        success=True,
        backend="mock",
    )
    return ocr


def test_pipeline_reads_amount(receipt_png, mock_ocr):
    """Simulates the upload flow: screenshot -> preprocess -> OCR -> amount."""
    result = extract_amount_from_image(receipt_png, file_name="instapay.png", ocr_handler=mock_ocr)

    assert isinstance(result, AmountExtraction)
    assert result.amount == 1250
    assert result.ocr_success is True
    assert result.file_name == "instapay.png"
    assert result.needs_manual_entry is False

    # OCR receives the preprocessed JPEG, not the original upload
    sent = mock_ocr.run.call_args[0][0]
    assert isinstance(sent, ProcessedImage)
    assert sent.width <= 1100 and sent.height <= 1100
    assert sent.data != receipt_png


def test_pipeline_uses_given_options(receipt_png, mock_ocr):
    options = PreprocessOptions(max_width=200, max_height=200, crop_mode="center")
    extract_amount_from_image(receipt_png, ocr_handler=mock_ocr, options=options)

    sent = mock_ocr.run.call_args[0][0]
    assert sent.width <= 200 and sent.height <= 200
    assert sent.crop.x == 100


def test_pipeline_ocr_failure_returns_none(receipt_png, mock_ocr):
    mock_ocr.run.return_value = OCRResult(text="", success=False, error="Vision unreachable", backend="mock")

    result = extract_amount_from_image(receipt_png, ocr_handler=mock_ocr)

    assert result.amount is None
    assert result.ocr_success is False
    assert result.error == "Vision unreachable"
    assert result.needs_manual_entry is True


def test_pipeline_no_amount_in_text(receipt_png, mock_ocr):
    mock_ocr.run.return_value = OCRResult(text="Account 123456789012", success=True, backend="mock")

    result = extract_amount_from_image(receipt_png, ocr_handler=mock_ocr)

    assert result.amount is None
    assert result.raw_text == "Account 123456789012"


def test_pipeline_passes_strategy(receipt_png, mock_ocr):
    mock_ocr.run.return_value = OCRResult(text="45\n300", success=True, backend="mock")

    result = extract_amount_from_image(receipt_png, ocr_handler=mock_ocr, strategy=FirstAmountStrategy())

    assert result.amount == 45


def test_pipeline_invalid_image_raises(mock_ocr):
    with pytest.raises(InvalidImage):
        extract_amount_from_image(b"not an image", ocr_handler=mock_ocr)
    mock_ocr.run.assert_not_called()


def test_pipeline_accepts_path(tmp_path, receipt_png, mock_ocr):
    path = tmp_path / "screenshot.png"
    path.write_bytes(receipt_png)

    result = extract_amount_from_image(str(path), ocr_handler=mock_ocr)

    assert result.file_name == "screenshot.png"
    assert result.amount == 1250


def test_batch_keeps_going_after_bad_image(receipt_png, mock_ocr):
    results = extract_amounts(
        [("first.png", receipt_png), ("broken.png", b"garbage"), ("third.png", receipt_png)],
        ocr_handler=mock_ocr,
        options=PreprocessOptions(),
    )

    assert [r.file_name for r in results] == ["first.png", "broken.png", "third.png"]
    assert [r.amount for r in results] == [1250, None, 1250]
    assert results[1].error
    assert mock_ocr.run.call_count == 2


def test_batch_records_oversized_image(monkeypatch, make_image_bytes, receipt_png, mock_ocr):
    huge = make_image_bytes(3000, 3000)
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1_000_000)

    results = extract_amounts(
        [("huge.png", huge), ("ok.png", receipt_png)],
        ocr_handler=mock_ocr,
        options=PreprocessOptions(),
    )

    assert results[0].amount is None
    assert "exceeds limit" in results[0].error
    assert results[1].amount == 1250
    assert mock_ocr.run.call_count == 1


@pytest.mark.parametrize("value, expected", [("1250", 1250.0), (" 1,250.50 ", 1250.5), ("0.5", 0.5)])
def test_parse_manual_amount(value, expected):
    assert parse_manual_amount(value) == expected


@pytest.mark.parametrize("value", ["", "   ", "0", "-20", "abc", "nan", "inf", "1_000", "1e3", "12.345", None])
def test_parse_manual_amount_rejects(value):
    with pytest.raises(ValueError):
        parse_manual_amount(value)
