"""Generate embedding vectors for every canonical taxonomy term.

Usage
-----

    OPENAI_API_KEY=... python scripts/generate_embeddings.py \
        --taxonomy data/skill_taxonomy.json \
        --output data/skill_embeddings.json

Terms are sent in batches to the OpenAI embeddings endpoint; the output maps
``category -> canonical term -> vector`` and is read by the matcher at start-up.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import requests

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from services import settings  # noqa: E402
from services.taxonomy import Taxonomy, load_taxonomy  # noqa: E402

logger = logging.getLogger(__name__)

API_URL = "https://api.openai.com/v1/embeddings"
BATCH_SIZE = 100


def collect_canonical_terms(taxonomy: Taxonomy) -> Dict[str, List[str]]:
    by_category: Dict[str, List[str]] = {}
    for category in taxonomy.categories():
        terms = list(dict.fromkeys(taxonomy.canonical_terms(category)))
        if terms:
            by_category[category] = terms
    return by_category


def fetch_embeddings(
    texts: List[str],
    api_key: str,
    model: str,
    session: Optional[requests.Session] = None,
) -> List[List[float]]:
    http = session or requests
    resp = http.post(
        API_URL,
        headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
        json={"model": model, "input": texts},
        timeout=60,
    )
    resp.raise_for_status()
    payload = resp.json()
    rows = sorted(payload.get("data", []), key=lambda row: row.get("index", 0))
    vectors = [row["embedding"] for row in rows]
    if len(vectors) != len(texts):
        raise ValueError(f"Expected {len(texts)} embeddings, received {len(vectors)}")
    return vectors


def generate_embeddings(
    taxonomy: Taxonomy,
    api_key: str,
    model: str,
    batch_size: int = BATCH_SIZE,
    session: Optional[requests.Session] = None,
) -> Dict[str, Dict[str, List[float]]]:
    output: Dict[str, Dict[str, List[float]]] = {}
    for category, terms in collect_canonical_terms(taxonomy).items():
        vectors: Dict[str, List[float]] = {}
        for start in range(0, len(terms), batch_size):
            batch = terms[start : start + batch_size]
            for term, vector in zip(batch, fetch_embeddings(batch, api_key, model, session=session)):
                vectors[term] = vector
            if len(terms) > batch_size:
                logger.info("[embeddings] %s: %d/%d", category, min(start + batch_size, len(terms)), len(terms))
        output[category] = vectors
    return output


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate embeddings for canonical taxonomy terms")
    parser.add_argument("--taxonomy", default=None, help="Taxonomy JSON (defaults to the configured data directory)")
    parser.add_argument("--output", default=None, help="Output JSON path (defaults to the configured data directory)")
    parser.add_argument("--model", default=None, help="Embedding model name")
    parser.add_argument("--batch-size", type=int, default=BATCH_SIZE, help="Terms per API request")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    api_key = settings.openai_api_key()
    if not api_key:
        raise ValueError("OPENAI_API_KEY is not set")

    taxonomy_path = Path(args.taxonomy) if args.taxonomy else settings.taxonomy_path()
    if not taxonomy_path.exists():
        raise FileNotFoundError(f"Taxonomy file not found: {taxonomy_path}")
    output_path = Path(args.output) if args.output else settings.embeddings_path()

    embeddings = generate_embeddings(
        load_taxonomy(taxonomy_path),
        api_key,
        args.model or settings.embedding_model(),
        batch_size=max(1, args.batch_size),
    )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as fh:
        json.dump(embeddings, fh, indent=2)
    print(f"Wrote embeddings for {sum(len(v) for v in embeddings.values())} terms to {output_path}")


if __name__ == "__main__":
    main()
