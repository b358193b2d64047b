"""
Toxicity scorer.

Fuses content cues (what was said) with loudness cues (how it was said).
Both are deterministic heuristics that run on-device.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from toneguard.core.packet import ToxicityScore, clamp01


@dataclass(frozen=True, slots=True)
class Lexicon:
    """
    Phrase lists for the lexical score.

    Matching is by substring, so a term already covered by a shorter
    stem (e.g. "fucking" by "fuck") would be counted twice and is left out.
    """
    profanity: tuple[str, ...] = ("fuck", "stupid", "bitch", "bastard", "asshole", "dick")
    threats: tuple[str, ...] = ("kill you", "beat you", "hurt you", "smack you", "punch you")
    identity: tuple[str, ...] = ("you people", "your kind")

    profanity_weight: float = 0.40
    threat_weight: float = 0.20
    identity_weight: float = 0.10
    shouting_weight: float = 0.10


@dataclass(frozen=True, slots=True)
class ProsodyCurve:
    """Loudness normalization and logistic shaping parameters."""
    peak_full_scale: float = 32768.0
    rms_full_scale: float = 2500.0
    peak_weight: float = 0.6
    rms_weight: float = 0.4
    center: float = 0.4
    steepness: float = 6.0


class ToxicityScorer:
    """
    Lexical + prosodic toxicity heuristics.

    Lexical score:
    - +0.40 per profanity term found
    - +0.20 per threat phrase
    - +0.10 per identity-targeting phrase
    - +0.10 if any word is shouted (ALL CAPS, 2+ letters)
    Additive and saturating at 1.0, not averaged.

    Prosodic score:
    - Peak and RMS of the 16-bit PCM, weighted into a loudness value
    - Logistic curve centered at moderate loudness

    Combined: 0.7 * lexical + 0.3 * prosodic.
    """

    def __init__(
        self,
        lexicon: Lexicon | None = None,
        curve: ProsodyCurve | None = None,
    ) -> None:
        self._lexicon = lexicon or Lexicon()
        self._curve = curve or ProsodyCurve()

    @property
    def lexicon(self) -> Lexicon:
        return self._lexicon

    def lexical_score(self, text: str) -> float:
        if not text or text.isspace():
            return 0.0

        lex = self._lexicon
        lower = text.lower()
        score = 0.0

        for term in lex.profanity:
            if term in lower:
                score += lex.profanity_weight
        for phrase in lex.threats:
            if phrase in lower:
                score += lex.threat_weight
        for phrase in lex.identity:
            if phrase in lower:
                score += lex.identity_weight

        if self._has_shouting(text):
            score += lex.shouting_weight

        return clamp01(score)

    @staticmethod
    def _has_shouting(text: str) -> bool:
        return any(
            len(token) >= 2 and token.isalpha() and token.isupper()
            for token in text.split()
        )

    def prosody_score(self, peak16: int, rms: float) -> float:
        if peak16 <= 0 and rms <= 0.0:
            return 0.0

        c = self._curve
        peak_norm = clamp01(peak16 / c.peak_full_scale)
        rms_norm = clamp01(rms / c.rms_full_scale)

        loudness = c.peak_weight * peak_norm + c.rms_weight * rms_norm
        shaped = 1.0 / (1.0 + math.exp(-c.steepness * (loudness - c.center)))

        return clamp01(shaped)

    def combined_score(self, text: str, peak16: int, rms: float) -> float:
        return self.score(text, peak16, rms).combined

    def score(self, text: str, peak16: int, rms: float) -> ToxicityScore:
        return ToxicityScore.fuse(
            self.lexical_score(text),
            self.prosody_score(peak16, rms),
        )
