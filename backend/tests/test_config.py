"""
Tests for the runtime configuration singleton.
"""

from config import RuntimeConfig, get_config, runtime_config


class TestDefaults:
    """Default values and environment overrides."""

    def test_processing_defaults(self, monkeypatch):
        for key in ("RAPTOR_DEFAULT_CHUNK_SIZE", "RAPTOR_DEFAULT_MAX_LEVELS", "RAPTOR_CLUSTER_THRESHOLD"):
            monkeypatch.delenv(key, raising=False)

        config = RuntimeConfig()

        assert config.default_chunk_size == 2000
        assert config.default_max_levels == 3
        assert config.cluster_threshold == 0.1

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("RAPTOR_MIN_CLUSTER_SIZE", "5")
        monkeypatch.setenv("RAPTOR_ADD_OVERLAP", "false")

        config = RuntimeConfig()

        assert config.min_cluster_size == 5
        assert config.add_overlap is False

    def test_embed_model_falls_back_to_chat_model(self, monkeypatch):
        monkeypatch.delenv("LLM_EMBED_MODEL", raising=False)
        monkeypatch.setenv("LLM_CHAT_MODEL", "qwen3")

        assert RuntimeConfig().llm_embed_model == "qwen3"

    def test_local_workers_from_env(self, monkeypatch):
        monkeypatch.setenv("RAPTOR_LOCAL_WORKERS", "0")
        assert RuntimeConfig().local_workers == 1

    def test_singleton(self):
        assert get_config() is runtime_config


class TestUpdate:
    """Runtime updates."""

    def test_update_known_keys(self):
        config = RuntimeConfig()
        result = config.update(cluster_threshold=0.25, min_cluster_size="4")

        assert config.cluster_threshold == 0.25
        assert config.min_cluster_size == 4
        assert sorted(result["updated"]) == ["cluster_threshold", "min_cluster_size"]

    def test_unknown_and_private_keys_ignored(self):
        config = RuntimeConfig()
        result = config.update(not_a_key=1, _lock=None)

        assert result["ignored"] == ["not_a_key", "_lock"]
        assert result["updated"] == []

    def test_type_mismatch_ignored(self):
        config = RuntimeConfig()
        before = config.max_clusters

        result = config.update(max_clusters="many")

        assert result["ignored"] == ["max_clusters"]
        assert config.max_clusters == before

    def test_bool_from_string(self):
        config = RuntimeConfig()
        config.update(preserve_sentences="false")
        assert config.preserve_sentences is False

    def test_unchanged_value_not_reported(self):
        config = RuntimeConfig()
        result = config.update(seed=config.seed)
        assert result["updated"] == []


class TestExportAndReset:
    """to_dict, CORS parsing and reset."""

    def test_to_dict_excludes_private(self):
        data = RuntimeConfig().to_dict()

        assert "default_chunk_size" in data
        assert not any(key.startswith("_") for key in data)

    def test_cors_origins(self):
        config = RuntimeConfig()
        config.update(cors_origins="http://a.test, http://b.test,")
        assert config.get_cors_origins() == ["http://a.test", "http://b.test"]

    def test_reset_to_defaults(self):
        config = RuntimeConfig()
        config.update(max_clusters=7)

        result = config.reset_to_defaults()

        assert result["changes"]["max_clusters"]["old"] == 7
        assert config.max_clusters == RuntimeConfig().max_clusters
