"""
Correction Override Resolver.

Before any provider is called the gateway asks whether a human has already
corrected this translation:

    1. Exact: a stored correction for hash(text, target[, user]).
    2. Similar: only with a known user and no exact hit. Among the user's
       ``recent_limit`` most recent corrections for the target language,
       score each by word overlap

           |A & B| / max(|A|, |B|)

       over lowercased whitespace-split word sets. The best score strictly
       above ``similarity_threshold`` wins.

Short texts reach the threshold easily ("the pump" vs "the valve" scores
0.5, "stop the pump" vs "start the pump" scores 0.67), which is why the
threshold lives in config rather than in code.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from transvox.collaborators.base import CorrectionRecord, CorrectionStore
from transvox.core.config import CorrectionsConfig
from transvox.core.logging import get_logger, verbose

_LOG = get_logger("transvox.corrections")


@dataclass
class CorrectionMatch:
    """
    A correction that overrides live translation.

    Attributes:
        record: Stored correction.
        kind: "exact" or "similar".
        score: Word-overlap score (1.0 for exact matches).
    """
    record: CorrectionRecord
    kind: str
    score: float = 1.0

    @property
    def translation(self) -> str:
        return self.record.corrected_translation


def word_overlap(a: str, b: str) -> float:
    """Share of common words relative to the larger word set; 0.0 if either is empty."""
    words_a = set(a.lower().split())
    words_b = set(b.lower().split())
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / max(len(words_a), len(words_b))


class CorrectionResolver:
    def __init__(self, store: CorrectionStore, config: Optional[CorrectionsConfig] = None):
        self._store = store
        self._config = config or CorrectionsConfig()

    @property
    def similarity_threshold(self) -> float:
        return self._config.similarity_threshold

    async def resolve(
        self,
        text: str,
        target_language: str,
        user_id: Optional[str],
    ) -> Optional[CorrectionMatch]:
        """
        Find a correction for ``text`` translated into ``target_language``.

        Returns:
            CorrectionMatch, or None when the request must go live.
        """
        exact = await self._store.find_exact(text, target_language, user_id)
        if exact is not None:
            verbose(_LOG, "correction_exact", target=target_language)
            return CorrectionMatch(record=exact, kind="exact")

        if not user_id:
            return None

        candidates = await self._store.recent(target_language, user_id, self._config.recent_limit)
        best: Optional[CorrectionMatch] = None
        for record in candidates:
            score = word_overlap(text, record.original_text)
            if score > self._config.similarity_threshold and (best is None or score > best.score):
                best = CorrectionMatch(record=record, kind="similar", score=score)

        if best is not None:
            verbose(_LOG, "correction_similar", target=target_language,
                    score=round(best.score, 3), candidates=len(candidates))
        return best
