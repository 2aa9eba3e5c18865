"""Item-level affixes: templates, evaluation and the active pool."""

from .affix import Affix, AffixSubEffect
from .evaluator import AffixContribution, AffixEvaluator
from .pool import AffixPool

__all__ = [
    "Affix",
    "AffixContribution",
    "AffixEvaluator",
    "AffixPool",
    "AffixSubEffect",
]
