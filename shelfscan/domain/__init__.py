"""Core domain models for shelfscan.

This module provides the data models used throughout the project:
- ExtractedLineItem, ClassifiedItem: line items before/after classification
- ParsedReceipt, ReceiptMetadata: the structured parse result
- StoreIdentity, StoreLocation, ExtractedAddress: store identification
- LearningRecord, LearningStats: user feedback loop

Usage:
    from shelfscan.domain import ParsedReceipt, ClassifiedItem
"""

from shelfscan.domain.receipt import (
    PRODUCT_CATEGORIES,
    ClassifiedItem,
    ExtractedAddress,
    ExtractedLineItem,
    GarbledTextReport,
    GeocodeHint,
    InvalidReceiptInput,
    LearningRecord,
    LearningStats,
    ParsedReceipt,
    ReceiptMetadata,
    RecoveredText,
    StoreIdentity,
    StoreLocation,
)

__all__ = [
    "PRODUCT_CATEGORIES",
    "ClassifiedItem",
    "ExtractedAddress",
    "ExtractedLineItem",
    "GarbledTextReport",
    "GeocodeHint",
    "InvalidReceiptInput",
    "LearningRecord",
    "LearningStats",
    "ParsedReceipt",
    "ReceiptMetadata",
    "RecoveredText",
    "StoreIdentity",
    "StoreLocation",
]
