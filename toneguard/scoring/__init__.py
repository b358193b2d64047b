"""Toxicity scoring and signal classification."""

from toneguard.scoring.toxicity import ToxicityScorer, Lexicon, ProsodyCurve
from toneguard.scoring.classifier import SignalClassifier, SignalThresholds, classify

__all__ = [
    "ToxicityScorer",
    "Lexicon",
    "ProsodyCurve",
    "SignalClassifier",
    "SignalThresholds",
    "classify",
]
