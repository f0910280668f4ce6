"""
Unit tests for configuration loading and validation.
"""

import pytest
from codeask.config import DEFAULT_CONFIG, Config
from codeask.errors import ConfigError


def write_config(root, text):
    path = root / ".codeask" / "config.toml"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)


def test_defaults(temp_dir):
    config = Config(project_root=temp_dir, env={})

    assert config.get("indexer", "chunk_size") == 2500
    assert config.get("indexer", "chunk_overlap") == 400
    assert config.get("indexer", "max_chunks") == 20
    assert config.get("indexer", "max_files") == 200
    assert config.get("indexer", "batch_size") == 5
    assert config.get("search", "top_k") == 10
    assert config.get("conversation", "history_cap") == 10
    assert config.get("missing", "key", default="fallback") == "fallback"


def test_file_overrides_merge_with_defaults(temp_dir):
    write_config(temp_dir, '[indexer]\nchunk_size = 1000\nexclude = ["*.min.js"]\n')

    config = Config(project_root=temp_dir, env={})

    assert config.get("indexer", "chunk_size") == 1000
    assert config.get("indexer", "exclude") == ["*.min.js"]
    assert config.get("indexer", "chunk_overlap") == 400


def test_defaults_are_not_shared(temp_dir):
    config = Config(project_root=temp_dir, env={})
    config.get("indexer", "exclude").append("*.tmp")
    assert DEFAULT_CONFIG["indexer"]["exclude"] == []


def test_invalid_toml(temp_dir):
    write_config(temp_dir, "[indexer\nchunk_size = ")
    with pytest.raises(ConfigError):
        Config(project_root=temp_dir, env={})


def test_set(config):
    config.set("search", "top_k", value=3)
    assert config.get("search", "top_k") == 3


def test_valid_config_passes(config):
    config.validate()


def test_validate_lists_every_problem(temp_dir):
    write_config(temp_dir, """
[indexer]
chunk_size = 0
batch_size = -1

[embeddings]
provider = "remote"

[generation]
temperature = 5
""")
    config = Config(project_root=temp_dir, env={})

    with pytest.raises(ConfigError) as exc_info:
        config.validate()

    problems = exc_info.value.problems
    assert "OPENAI_API_KEY is not set" in problems
    assert any("embeddings.provider" in p for p in problems)
    assert any("indexer.chunk_size" in p for p in problems)
    assert any("indexer.batch_size" in p for p in problems)
    assert any("generation.temperature" in p for p in problems)
    assert "OPENAI_API_KEY is not set" in str(exc_info.value)


def test_overlap_must_be_smaller_than_chunk_size(temp_dir):
    write_config(temp_dir, "[indexer]\nchunk_size = 500\nchunk_overlap = 500\n")
    config = Config(project_root=temp_dir, env={"OPENAI_API_KEY": "k"})

    with pytest.raises(ConfigError, match="chunk_overlap"):
        config.validate()


def test_indexing_with_local_embeddings_needs_no_key(temp_dir):
    config = Config(project_root=temp_dir, env={})
    config.validate(require_generation=False)


def test_openai_embeddings_need_key(temp_dir):
    write_config(temp_dir, '[embeddings]\nprovider = "openai"\n')
    config = Config(project_root=temp_dir, env={})

    with pytest.raises(ConfigError):
        config.validate(require_generation=False)


def test_key_from_dotenv(temp_dir, monkeypatch):
    # setenv first so teardown restores the original value after load_dotenv writes it
    monkeypatch.setenv("OPENAI_API_KEY", "placeholder")
    monkeypatch.delenv("OPENAI_API_KEY")
    (temp_dir / ".env").write_text("OPENAI_API_KEY=from-dotenv\n")

    config = Config(project_root=temp_dir)

    assert config.openai_api_key == "from-dotenv"


def test_environment_wins_over_dotenv(temp_dir, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "from-env")
    (temp_dir / ".env").write_text("OPENAI_API_KEY=from-dotenv\n")

    config = Config(project_root=temp_dir)

    assert config.openai_api_key == "from-env"
