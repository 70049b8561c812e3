"""
SKU Resolution Module
"""
from .resolver import MatchRule, Resolution, ResolutionStatus, SkuResolver, resolve
from .reviewer import MappingReviewer, ReviewCandidate, ReviewDecision

__all__ = [
    "MatchRule",
    "Resolution",
    "ResolutionStatus",
    "SkuResolver",
    "resolve",
    "MappingReviewer",
    "ReviewCandidate",
    "ReviewDecision",
]
