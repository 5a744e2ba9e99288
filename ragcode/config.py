"""Application configuration read from the environment and a .env file."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from dotenv import load_dotenv

from ragcode.errors import validation_error

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass
class Config:
    """All application settings."""

    ollama_url: str
    embedding_model: str
    llm_model: str
    vector_store_url: str
    collection_name: str
    target_codebase: str
    max_chunk_size: int
    chunk_overlap: int
    server_port: str
    log_level: str
    log_format: str
    redis_url: str
    redis_password: str
    redis_db: int
    hybrid_enabled: bool
    hybrid_vector_weight: float
    fusion_strategy: str
    bm25_k1: float
    bm25_b: float
    num_workers: int
    embedding_workers: int
    max_concurrent_embeddings: int
    prompt_template: str
    use_mmr: bool
    mmr_lambda: float


def _env_str(key: str, default: str) -> str:
    return os.environ.get(key) or default


def _env_int(key: str, default: int) -> int:
    value = os.environ.get(key)
    if not value:
        return default
    match = _INT_PREFIX.match(value)
    return int(match.group(1)) if match else 0


def _env_float(key: str, default: float) -> float:
    value = os.environ.get(key)
    if not value:
        return default
    match = _FLOAT_PREFIX.match(value)
    return float(match.group(1)) if match else 0.0


def _env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if not value:
        return default
    return value == "true"


def load() -> Config:
    """Read configuration from the environment, after loading ./.env if present."""
    load_dotenv(os.path.join(os.getcwd(), ".env"))

    cfg = Config(
        ollama_url=_env_str("OLLAMA_URL", "http://localhost:11434"),
        embedding_model=_env_str("EMBEDDING_MODEL", "all-minilm"),
        llm_model=_env_str("LLM_MODEL", "llama3.2:1b"),
        vector_store_url=_env_str("VECTOR_STORE_URL", "http://localhost:6333"),
        collection_name=_env_str("COLLECTION_NAME", "code_chunks"),
        target_codebase=os.environ.get("TARGET_CODEBASE", ""),
        max_chunk_size=512,
        chunk_overlap=50,
        server_port=_env_str("SERVER_PORT", "8080"),
        log_level=_env_str("LOG_LEVEL", "debug"),
        log_format=_env_str("LOG_FORMAT", "json"),
        redis_url=_env_str("REDIS_URL", "localhost:6379"),
        redis_password=os.environ.get("REDIS_PASSWORD", ""),
        redis_db=_env_int("REDIS_DB", 0),
        hybrid_enabled=_env_bool("HYBRID_ENABLED", True),
        hybrid_vector_weight=_env_float("HYBRID_VECTOR_WEIGHT", 0.7),
        fusion_strategy=_env_str("FUSION_STRATEGY", "rrf"),
        bm25_k1=_env_float("BM25_K1", 1.2),
        bm25_b=_env_float("BM25_B", 0.75),
        num_workers=_env_int("NUM_WORKERS", max(2 * (os.cpu_count() or 1), 4)),
        embedding_workers=_env_int("EMBEDDING_WORKERS", 8),
        max_concurrent_embeddings=_env_int("MAX_CONCURRENT_EMBEDDINGS", 16),
        prompt_template=_env_str("PROMPT_TEMPLATE", "professional"),
        use_mmr=_env_bool("USE_MMR", True),
        mmr_lambda=_env_float("MMR_LAMBDA", 0.7),
    )

    if not cfg.ollama_url:
        raise validation_error("OLLAMA_URL must be set")
    return cfg