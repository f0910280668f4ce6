"""
Tests for the command-line interface.

Commands that need an embedding model are covered through Assistant tests;
these exercise the commands that work without one.
"""

from click.testing import CliRunner
from codeask.cli import main
from codeask.models import WholeFileRecord
from codeask.store import VectorStore


def test_init_creates_config(temp_dir):
    result = CliRunner().invoke(main, ["init", "--path", str(temp_dir)])

    assert result.exit_code == 0
    assert (temp_dir / ".codeask" / "config.toml").exists()


def test_init_keeps_existing_config(temp_dir):
    config_path = temp_dir / ".codeask" / "config.toml"
    config_path.parent.mkdir()
    config_path.write_text("[search]\ntop_k = 3\n")

    result = CliRunner().invoke(main, ["init", "--path", str(temp_dir)])

    assert result.exit_code == 0
    assert config_path.read_text() == "[search]\ntop_k = 3\n"


def test_status_without_index(temp_dir, monkeypatch):
    monkeypatch.chdir(temp_dir)
    result = CliRunner().invoke(main, ["status"])

    assert result.exit_code == 0
    assert "No index found" in result.output


def test_ask_without_index(temp_dir, monkeypatch):
    monkeypatch.chdir(temp_dir)
    result = CliRunner().invoke(main, ["ask", "what does it do?"])
    assert result.exit_code == 1


def seed_index(root):
    store = VectorStore(root / ".codeask" / "data.lance", dimension=4)
    store.upsert([WholeFileRecord(
        id="main.py_f1",
        file_path="main.py",
        file_name="main.py",
        fingerprint="f1",
        vector=[0.1, 0.2, 0.3, 0.4],
        full_text="print('hi')",
    )])


def test_status_reports_counts(temp_dir, monkeypatch):
    seed_index(temp_dir)
    monkeypatch.chdir(temp_dir)

    result = CliRunner().invoke(main, ["status"])

    assert result.exit_code == 0
    assert "Total records" in result.output


def test_clean_drops_records(temp_dir, monkeypatch):
    seed_index(temp_dir)
    monkeypatch.chdir(temp_dir)

    result = CliRunner().invoke(main, ["clean", "--yes"])

    assert result.exit_code == 0
    assert VectorStore(temp_dir / ".codeask" / "data.lance", dimension=4).count() == 0


def test_index_subfolder_stores_index_in_current_directory(temp_dir, monkeypatch, fake_embedder):
    """The index of a subfolder lands where the other commands look for it."""
    monkeypatch.setattr("codeask.assistant.build_embeddings", lambda config: fake_embedder)
    sub = temp_dir / "sub"
    sub.mkdir()
    (sub / "main.py").write_text("print('hi')\n")
    monkeypatch.chdir(temp_dir)

    result = CliRunner().invoke(main, ["index", "sub"])

    assert result.exit_code == 0
    assert (temp_dir / ".codeask" / "data.lance").exists()
    assert not (sub / ".codeask").exists()
    assert VectorStore(temp_dir / ".codeask" / "data.lance").count() == 1
