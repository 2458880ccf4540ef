"""
Row Key Resolution.

Maps the text of a row's leading cell to a registry field key.  The
templates write the internal key in column A, but users retype, re-case
or replace it with the Portuguese description.  Resolution order:

1. Exact registry key (``revenue``)
2. Case-insensitive registry key (``Revenue``)
3. User-supplied alias (``add_aliases`` / ``load_custom_aliases``)
4. Exact display label, normalised (``Receita Líquida (Revenue)``)
5. Fuzzy display-label match (see ``FuzzyMatcher``), unambiguous only

Anything else resolves to ``None`` and the row is skipped.  The resolver
only ever returns keys that exist in the registry.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Mapping, Optional

from workbook_ingestion.config import ExtractionConfig
from workbook_ingestion.fuzzy_matcher import FuzzyMatcher
from workbook_ingestion.logging_setup import get_logger
from workbook_ingestion.normalizer import normalize_header
from workbook_ingestion.schema import FIELD_REGISTRY, FieldDefinition

logger = get_logger("synonym_mapper")


class KeyResolver:
    """Resolve leading-cell text to a registry key.

    Parameters
    ----------
    config:
        Label-matching switches and fuzzy thresholds.
    registry:
        The field catalogue.
    """

    def __init__(
        self,
        config: Optional[ExtractionConfig] = None,
        registry: Mapping[str, FieldDefinition] = FIELD_REGISTRY,
    ) -> None:
        self._config = config or ExtractionConfig()
        self._registry = registry
        self._by_lower_key: Dict[str, str] = {k.lower(): k for k in registry}
        self._by_label: Dict[str, str] = {
            normalize_header(d.label): k for k, d in registry.items()
        }
        self._aliases: Dict[str, str] = {}
        self._fuzzy = FuzzyMatcher(self._config, registry)
        self._cache: Dict[str, Optional[str]] = {}

        if self._config.custom_alias_path:
            self.load_custom_aliases(self._config.custom_alias_path)

    def resolve(self, text: str) -> Optional[str]:
        """Return the registry key for *text*, or ``None``."""
        raw = text.strip()
        if not raw:
            return None
        if raw in self._registry:
            return raw
        if raw in self._cache:
            return self._cache[raw]

        key = self._lookup(raw)
        self._cache[raw] = key
        return key

    def _lookup(self, raw: str) -> Optional[str]:
        key = self._by_lower_key.get(raw.lower())
        if key is not None:
            return key

        norm = normalize_header(raw)
        key = self._aliases.get(norm)
        if key is not None:
            logger.debug("Alias hit: %r → %r", raw, key)
            return key

        if not self._config.enable_label_matching:
            return None

        key = self._by_label.get(norm)
        if key is not None:
            logger.debug("Label hit: %r → %r", raw, key)
            return key

        candidate = self._fuzzy.match(raw)
        if candidate is None or candidate.is_ambiguous:
            return None
        logger.info(
            "Fuzzy label match: %r → %r (score=%.1f)", raw, candidate.field_key, candidate.score
        )
        return candidate.field_key

    # ------------------------------------------------------------------ #
    # Extension API
    # ------------------------------------------------------------------ #

    def add_alias(self, alias: str, field_key: str) -> None:
        """Register one alias for an existing field key.

        Raises
        ------
        ValueError
            If ``field_key`` is not in the registry.
        """
        if field_key not in self._registry:
            raise ValueError(
                f"Unknown field key {field_key!r}. Aliases must target a registry key."
            )
        norm = normalize_header(alias)
        if norm in self._aliases and self._aliases[norm] != field_key:
            logger.warning(
                "Overwriting alias %r: %r → %r", norm, self._aliases[norm], field_key
            )
        self._aliases[norm] = field_key
        self._cache.clear()

    def add_aliases(self, mapping: Dict[str, str]) -> None:
        """Bulk-add aliases from a ``{alias: field_key}`` dict."""
        for alias, field_key in mapping.items():
            self.add_alias(alias, field_key)

    def load_custom_aliases(self, path: Path) -> int:
        """Load aliases from a JSON file.  Returns the number of entries."""
        with open(path, encoding="utf-8") as fh:
            data: Dict[str, str] = json.load(fh)
        self.add_aliases(data)
        logger.info("Loaded %d custom aliases from %s", len(data), path)
        return len(data)

    @property
    def alias_count(self) -> int:
        return len(self._aliases)
