"""Precomputed term embeddings and cosine similarity.

Embeddings are produced offline (see ``scripts/generate_embeddings.py``) and
stored as ``{category: {canonical_term: [float, ...]}}``. The store is
optional: a category or term without a vector simply has no fuzzy signal.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import numpy as np

from services.taxonomy import canonical_field

logger = logging.getLogger(__name__)

Vector = Union[Sequence[float], np.ndarray]


def cosine_similarity(a: Optional[Vector], b: Optional[Vector]) -> float:
    """Cosine similarity of two vectors; 0.0 for zero-norm or mismatched inputs."""

    if a is None or b is None:
        return 0.0
    va = np.asarray(a, dtype=float).ravel()
    vb = np.asarray(b, dtype=float).ravel()
    if va.size == 0 or va.shape != vb.shape:
        return 0.0
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0 or not np.isfinite(denom):
        return 0.0
    return float(np.dot(va, vb) / denom)


def _as_vector(raw: Any) -> Optional[np.ndarray]:
    if not isinstance(raw, (list, tuple, np.ndarray)) or len(raw) == 0:
        return None
    try:
        vector = np.array(raw, dtype=float)
    except (TypeError, ValueError):
        return None
    if vector.ndim != 1:
        return None
    vector.setflags(write=False)
    return vector


class EmbeddingStore:
    """Read-only ``category -> term -> vector`` lookup."""

    def __init__(self, table: Optional[Mapping[str, Mapping[str, Any]]] = None) -> None:
        categories: Dict[str, Mapping[str, np.ndarray]] = {}
        for category, terms in (table or {}).items():
            if not isinstance(terms, Mapping):
                continue
            vectors: Dict[str, np.ndarray] = {}
            dimension = None
            for term, raw in terms.items():
                key = str(term).strip().lower()
                vector = _as_vector(raw)
                if not key or vector is None:
                    continue
                if dimension is None:
                    dimension = vector.shape[0]
                elif vector.shape[0] != dimension:
                    logger.warning(
                        "[embeddings] %s/%s has dimension %d, expected %d; dropped",
                        category,
                        key,
                        vector.shape[0],
                        dimension,
                    )
                    continue
                vectors[key] = vector
            if vectors:
                categories[canonical_field(category)] = MappingProxyType(vectors)
        self._categories: Mapping[str, Mapping[str, np.ndarray]] = MappingProxyType(categories)

    def has_category(self, category: str) -> bool:
        return canonical_field(category) in self._categories

    def vector(self, category: str, term: str) -> Optional[np.ndarray]:
        vectors = self._categories.get(canonical_field(category))
        if not vectors:
            return None
        return vectors.get(str(term).strip().lower())

    def dimension(self, category: str) -> int:
        vectors = self._categories.get(canonical_field(category))
        if not vectors:
            return 0
        return next(iter(vectors.values())).shape[0]

    def __len__(self) -> int:
        return sum(len(vectors) for vectors in self._categories.values())

    def __bool__(self) -> bool:
        return bool(self._categories)


def load_embeddings(path: Union[str, Path]) -> EmbeddingStore:
    """Load the embeddings JSON; absence degrades to an empty store."""

    path = Path(path)
    if not path.exists():
        logger.info("[embeddings] %s not found; using exact matching only", path)
        return EmbeddingStore()
    try:
        table = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as err:
        logger.warning("[embeddings] could not read %s: %s", path, err)
        return EmbeddingStore()
    if not isinstance(table, dict):
        logger.warning("[embeddings] %s does not contain an object; ignored", path)
        return EmbeddingStore()
    store = EmbeddingStore(table)
    logger.info("[embeddings] loaded %d vectors from %s", len(store), path)
    return store


__all__ = ["EmbeddingStore", "cosine_similarity", "load_embeddings"]
