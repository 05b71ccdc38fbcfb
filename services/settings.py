"""Runtime configuration for the skill-gap matcher.

Values come from environment variables, optionally seeded from a ``.env`` file
at the project root. Existing environment variables always win over the file.
"""

from __future__ import annotations

import os
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent

DEFAULT_DATA_DIR = ROOT / "data"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"

_ENV_LOADED = False


def _load_local_env() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    env_path = ROOT / ".env"
    if env_path.exists():
        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))
    _ENV_LOADED = True


def _env(name: str, default: str = "") -> str:
    _load_local_env()
    return os.getenv(name, default).strip() or default


def data_dir() -> Path:
    return Path(_env("SKILLGAP_DATA_DIR", str(DEFAULT_DATA_DIR)))


def jobs_path() -> Path:
    return data_dir() / _env("SKILLGAP_JOBS_FILE", "parsed_jobs.json")


def taxonomy_path() -> Path:
    return data_dir() / _env("SKILLGAP_TAXONOMY_FILE", "skill_taxonomy.json")


def embeddings_path() -> Path:
    return data_dir() / _env("SKILLGAP_EMBEDDINGS_FILE", "skill_embeddings.json")


def embedding_model() -> str:
    return _env("SKILLGAP_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL)


def openai_api_key() -> str:
    return _env("OPENAI_API_KEY")


__all__ = [
    "data_dir",
    "embedding_model",
    "embeddings_path",
    "jobs_path",
    "openai_api_key",
    "taxonomy_path",
]
