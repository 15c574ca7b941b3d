"""Pipeline steps for conversions."""

from .convert import ConvertStep
from .extract import ExtractStep
from .finalize import FinalizeStep
from .sanitize import SanitizeStep
from .stitch import StitchStep

__all__ = [
    "ConvertStep",
    "ExtractStep",
    "FinalizeStep",
    "SanitizeStep",
    "StitchStep",
]
