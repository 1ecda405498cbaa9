#!/usr/bin/env python3
"""
Structured extraction from free-form upstream text.
"""

from .extractor import StructuredExtractor, ExtractionReport
from .strategies import (
    ExtractionStrategy,
    DirectJsonStrategy,
    FencedBlockStrategy,
    BraceSliceStrategy,
    LineScanStrategy,
    MarkdownRecordStrategy,
    default_strategies,
)

__all__ = [
    'StructuredExtractor',
    'ExtractionReport',
    'ExtractionStrategy',
    'DirectJsonStrategy',
    'FencedBlockStrategy',
    'BraceSliceStrategy',
    'LineScanStrategy',
    'MarkdownRecordStrategy',
    'default_strategies',
]
