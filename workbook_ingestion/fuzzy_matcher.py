"""
Fuzzy Label Matching Layer.

When the leading cell of a row is neither a registry key nor an exact
display label, this layer uses ``rapidfuzz`` to find the closest registry
label.  Results are confidence-gated:

* Matches **below** ``fuzzy_threshold`` are rejected outright.
* If the runner-up is within ``fuzzy_ambiguity_delta`` of the best match
  the row is treated as unrecognised.  An ambiguous row is skipped, never
  guessed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from rapidfuzz import fuzz, process

from workbook_ingestion.config import ExtractionConfig
from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.normalizer import normalize_header
from workbook_ingestion.schema import FIELD_REGISTRY, FieldDefinition

logger = get_logger("fuzzy_matcher")


@dataclass
class FuzzyCandidate:
    """A single candidate returned by the fuzzy matcher."""

    field_key: str
    score: float  # 0–100
    is_ambiguous: bool = False


class FuzzyMatcher:
    """Fuzzy-match a leading-cell label against registry display labels.

    Parameters
    ----------
    config:
        Matching thresholds.
    registry:
        Field catalogue whose labels form the target pool.
    """

    def __init__(
        self,
        config: ExtractionConfig,
        registry: Mapping[str, FieldDefinition] = FIELD_REGISTRY,
    ) -> None:
        self._config = config

        # normalised label → field key
        self._targets: dict[str, str] = {
            normalize_header(d.label): key for key, d in registry.items()
        }
        self._target_keys: list[str] = list(self._targets.keys())

    def match(self, label: str) -> Optional[FuzzyCandidate]:
        """Find the best registry field for *label*, or ``None``."""
        norm = normalize_header(label)
        if not norm or not self._target_keys:
            return None

        # token_sort_ratio ignores word order
        results = process.extract(
            norm,
            self._target_keys,
            scorer=fuzz.token_sort_ratio,
            limit=2,
        )
        if not results:
            return None

        best_label, best_score, _ = results[0]
        if best_score < self._config.fuzzy_threshold:
            logger.debug(
                "Fuzzy best for %r is %r (%.1f), below threshold %.1f; rejected",
                norm, best_label, best_score, self._config.fuzzy_threshold,
            )
            return None

        is_ambiguous = False
        if len(results) > 1:
            _, second_score, _ = results[1]
            if best_score - second_score <= self._config.fuzzy_ambiguity_delta:
                is_ambiguous = True
                logger.debug(
                    "Ambiguous fuzzy match for %r: best=%r (%.1f), runner-up=%r (%.1f)",
                    norm, best_label, best_score, results[1][0], second_score,
                )

        key = self._targets[best_label]
        return FuzzyCandidate(field_key=key, score=best_score, is_ambiguous=is_ambiguous)

    def match_batch(self, labels: Iterable[str]) -> dict[str, Optional[FuzzyCandidate]]:
        """Match multiple labels.  Returns ``{label: candidate}``."""
        return {label: self.match(label) for label in labels}
