from .ocr_result import OCRResult
from .preprocess import CropMode, CropRegion, PreprocessOptions, SourceImage, ProcessedImage
from .amount import AmountCandidate, AmountExtraction
from .vision import VisionResponse, VisionAnnotateResult, FullTextAnnotation, TextAnnotation, VisionError
