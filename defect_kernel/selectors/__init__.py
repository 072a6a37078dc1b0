"""Selectors for the defect kernel (read side)."""

from defect_kernel.selectors.base import BaseSelector
from defect_kernel.selectors.candidate_selector import CandidateSelector

__all__ = [
    "BaseSelector",
    "CandidateSelector",
]
