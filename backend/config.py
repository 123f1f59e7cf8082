"""
Runtime Configuration for the RAPTOR service.

RuntimeConfig holds every tunable of the pipeline (chunking, clustering,
LLM server, HTTP limits). Defaults come from environment variables; values
can be changed at runtime without restarting the service.

Usage:
    from config import runtime_config
    chunk_size = runtime_config.default_chunk_size
    runtime_config.update(cluster_threshold=0.2, min_cluster_size=2)
"""

import os
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List
from threading import Lock

logger = logging.getLogger(__name__)


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


def _env_bool(key: str, default: str) -> bool:
    return os.environ.get(key, default).lower() == "true"


def _default_workers() -> int:
    env_val = os.environ.get("RAPTOR_LOCAL_WORKERS")
    if env_val:
        return max(1, int(env_val))
    return os.cpu_count() or 1


@dataclass
class RuntimeConfig:
    """
    Process-wide tunables. Components read it through get_config() at
    construction time, so updates apply to objects built afterwards.
    """

    # Processing
    default_chunk_size: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_DEFAULT_CHUNK_SIZE", "2000"))
    )  # Estimated tokens per chunk
    default_max_levels: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_DEFAULT_MAX_LEVELS", "3"))
    )
    max_text_length: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_MAX_TEXT_LENGTH", "1000000"))
    )  # Characters
    max_file_size_mb: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_MAX_FILE_SIZE_MB", "10"))
    )

    # Splitting
    overlap_ratio: float = field(
        default_factory=lambda: float(os.environ.get("RAPTOR_OVERLAP_RATIO", "0.1"))
    )  # Fraction of chunk size carried over from the previous chunk
    preserve_sentences: bool = field(default_factory=lambda: _env_bool("RAPTOR_PRESERVE_SENTENCES", "true"))
    add_overlap: bool = field(default_factory=lambda: _env_bool("RAPTOR_ADD_OVERLAP", "true"))

    # Clustering
    cluster_threshold: float = field(
        default_factory=lambda: float(os.environ.get("RAPTOR_CLUSTER_THRESHOLD", "0.1"))
    )  # Min responsibility for a confident global assignment
    min_cluster_size: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_MIN_CLUSTER_SIZE", "3"))
    )  # Smaller clusters are merged together
    max_clusters: int = field(default_factory=lambda: int(os.environ.get("RAPTOR_MAX_CLUSTERS", "50")))
    max_iterations: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_MAX_ITERATIONS", "100"))
    )  # EM iterations for the global fit
    local_max_iterations: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_LOCAL_MAX_ITERATIONS", "50"))
    )  # EM iterations for per-cluster local fits
    selector_max_iterations: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_SELECTOR_MAX_ITERATIONS", "50"))
    )  # EM iterations per candidate k during BIC search
    seed: int = field(default_factory=lambda: int(os.environ.get("RAPTOR_SEED", "224")))
    reg_covar: float = field(
        default_factory=lambda: float(os.environ.get("RAPTOR_REG_COVAR", "1e-5"))
    )  # Regularization for stability
    local_workers: int = field(default_factory=_default_workers)
    model_cache_size: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_MODEL_CACHE_SIZE", "100"))
    )  # 0 disables the fitted-model cache

    # LLM server (OpenAI-compatible)
    llm_base_url: str = field(
        default_factory=lambda: _first_env("LLM_BASE_URL", "OPENAI_BASE_URL", default="http://localhost:8081")
    )
    llm_chat_model: str = field(default_factory=lambda: _first_env("LLM_CHAT_MODEL", default="default"))
    llm_embed_model: str = field(
        default_factory=lambda: _first_env("LLM_EMBED_MODEL", "LLM_CHAT_MODEL", default="default")
    )
    llm_timeout: float = field(default_factory=lambda: float(os.environ.get("LLM_TIMEOUT", "180")))
    summary_temperature: float = field(
        default_factory=lambda: float(os.environ.get("RAPTOR_SUMMARY_TEMPERATURE", "0.3"))
    )  # Lower for factual accuracy
    summary_max_tokens: int = field(
        default_factory=lambda: int(os.environ.get("RAPTOR_SUMMARY_MAX_TOKENS", "1024"))
    )

    # HTTP
    cors_origins: str = field(default_factory=lambda: os.environ.get("CORS_ORIGINS", "*"))

    # Thread safety
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)
    _update_count: int = field(default=0, repr=False)

    def _public_fields(self) -> List[str]:
        return [f.name for f in fields(self) if not f.name.startswith("_")]

    def _coerce(self, key: str, value: Any) -> Any:
        """Cast value to the type of the field's current value."""
        current = getattr(self, key)
        if isinstance(current, bool) and isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes")
        return type(current)(value)

    def _assign(self, key: str, value: Any) -> bool:
        """Set one field (caller holds the lock). Returns True if it changed."""
        old_value = getattr(self, key)
        if value == old_value:
            return False
        setattr(self, key, value)
        logger.info(f"Config {key}: {old_value!r} -> {value!r}")
        return True

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Change values at runtime, e.g. update(cluster_threshold=0.2).

        Values are cast to each field's type, so strings from an admin form
        or query string work. Unknown keys and uncastable values are skipped
        with a warning.

        Returns:
            {"updated": [changed keys], "ignored": [skipped keys], "update_count": n}
        """
        known = set(self._public_fields())
        result: Dict[str, Any] = {"updated": [], "ignored": []}

        with self._lock:
            for key, value in kwargs.items():
                if key not in known:
                    logger.warning(f"Unknown config key ignored: {key}")
                    result["ignored"].append(key)
                    continue
                try:
                    typed_value = self._coerce(key, value)
                except (ValueError, TypeError):
                    logger.warning(f"Config type mismatch: {key}={value!r}")
                    result["ignored"].append(key)
                    continue
                if self._assign(key, typed_value):
                    result["updated"].append(key)

            self._update_count += 1
            result["update_count"] = self._update_count

        return result

    def get_cors_origins(self) -> list:
        """Parse the comma-separated CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def to_dict(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self._public_fields()}

    def reset_to_defaults(self) -> Dict[str, Any]:
        """Re-read every field from the environment."""
        defaults = RuntimeConfig()
        changes = {}

        with self._lock:
            for name in self._public_fields():
                old_value = getattr(self, name)
                if self._assign(name, getattr(defaults, name)):
                    changes[name] = {"old": old_value, "new": getattr(self, name)}
            self._update_count += 1
            update_count = self._update_count

        return {"reset": True, "changes": changes, "update_count": update_count}


# Singleton instance
runtime_config = RuntimeConfig()


def get_config() -> RuntimeConfig:
    """Get the singleton config instance."""
    return runtime_config
