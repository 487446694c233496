"""Text extraction from label photos."""

from .preprocessing import enhance_contrast, preprocess, reduce_noise
from .tesseract import MIN_TEXT_LENGTH, TextExtractor, clean_text, decode_image

__all__ = [
    "MIN_TEXT_LENGTH",
    "TextExtractor",
    "clean_text",
    "decode_image",
    "enhance_contrast",
    "preprocess",
    "reduce_noise",
]
