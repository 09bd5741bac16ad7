"""
Tests for the command-line utilities.
"""

import importlib.util
import json
import sqlite3
from pathlib import Path

import pytest

from src.core.db import SCHEMA_VERSION

SCRIPTS_DIR = Path(__file__).parent.parent / "scripts"


def _load_script(name):
    spec = importlib.util.spec_from_file_location(f"script_{name}", SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def migrate_script():
    return _load_script("migrate")


@pytest.fixture
def seed_script():
    return _load_script("seed_corpus")


class TestMigrateScript:
    """Test scripts/migrate.py."""

    def test_fresh_database(self, migrate_script, db_path, capsys):
        assert migrate_script.main(["--db", db_path]) == 0

        output = capsys.readouterr().out
        assert "Applied migrations: 1, 2" in output
        assert f"Schema version: {SCHEMA_VERSION}" in output

    def test_second_run_has_nothing_pending(self, migrate_script, db_path, capsys):
        migrate_script.main(["--db", db_path])
        capsys.readouterr()

        assert migrate_script.main(["--db", db_path]) == 0
        assert "No pending migrations" in capsys.readouterr().out

    def test_newer_database_fails(self, migrate_script, db_path, capsys):
        conn = sqlite3.connect(db_path)
        conn.execute("PRAGMA user_version = 42")
        conn.close()

        assert migrate_script.main(["--db", db_path]) == 1
        assert "ERROR" in capsys.readouterr().out


class TestSeedScript:
    """Test scripts/seed_corpus.py with a local JSON source."""

    def test_seed_from_json_file(self, seed_script, db_path, tmp_path, capsys):
        source = tmp_path / "corpus.json"
        source.write_text(json.dumps([
            {"source": "Rule", "jurisdiction": "Federal", "citation": "FRCP Rule 12",
             "title": "Defenses and Objections", "text": "..."},
            {"source": "Rule", "jurisdiction": "Federal", "citation": "FRCP Rule 56",
             "title": "Summary Judgment", "text": "..."},
        ]))

        assert seed_script.main([str(source), "--db", db_path, "--quiet"]) == 0
        assert seed_script.main([str(source), "--db", db_path, "--quiet"]) == 0

        output = capsys.readouterr().out
        assert "0 added, 2 updated" in output
        assert "Corpus now holds 2 items" in output

    def test_missing_file_fails(self, seed_script, db_path, tmp_path, capsys):
        assert seed_script.main([str(tmp_path / "missing.json"), "--db", db_path, "--quiet"]) == 1
        assert "Seeding failed" in capsys.readouterr().out

    def test_named_sources_map_to_feeds(self, seed_script):
        assert seed_script.build_feed("frcp").name == "FRCP"
        assert seed_script.build_feed("constitution").name == "Constitution"
        assert seed_script.build_feed("rules.json").name == "rules.json"
