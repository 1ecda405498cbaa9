#!/usr/bin/env python3
"""
Deduplication package.

Provides the url-keyed gate that guards inserts into the news table.
"""

from .gate import DeduplicationGate

__all__ = ['DeduplicationGate']
