"""Submission validation package."""

from duoledger.validation.normalizer import (
    RecordNormalizer,
    normalize_date,
    parse_amount,
)

__all__ = ["RecordNormalizer", "normalize_date", "parse_amount"]
