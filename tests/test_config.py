"""Tests for Settings — environment parsing and validation."""

from pathlib import Path

import pytest

from skillbridge.config import Settings


class TestDefaults:
    def test_defaults(self) -> None:
        s = Settings.from_env({})
        assert s.backend == "memory"
        assert s.data_dir == Path("data")
        assert s.http_timeout == 10.0
        assert s.match_workers == 8
        assert s.strict_capacity is False
        assert s.log_level == "INFO"
        assert s.state_path == Path("data") / "state.json"
        assert s.events_path == Path("data") / "events.jsonl"


class TestFromEnv:
    def test_reads_prefixed_variables(self) -> None:
        s = Settings.from_env({
            "SKILLBRIDGE_BACKEND": "PostgREST",
            "SKILLBRIDGE_API_URL": "https://example.supabase.co",
            "SKILLBRIDGE_API_KEY": "key",
            "SKILLBRIDGE_HTTP_TIMEOUT": "2.5",
            "SKILLBRIDGE_MATCH_WORKERS": "3",
            "SKILLBRIDGE_STRICT_CAPACITY": "yes",
            "SKILLBRIDGE_LOG_LEVEL": "debug",
            "SKILLBRIDGE_DATA_DIR": "/tmp/sb",
        })
        assert s.backend == "postgrest"
        assert s.api_url == "https://example.supabase.co"
        assert s.http_timeout == 2.5
        assert s.match_workers == 3
        assert s.strict_capacity is True
        assert s.log_level == "DEBUG"
        assert s.data_dir == Path("/tmp/sb")

    def test_process_environment_and_dotenv(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("SKILLBRIDGE_MATCH_WORKERS=5\nSKILLBRIDGE_LOG_LEVEL=WARNING\n", encoding="utf-8")
        # setenv first so teardown also removes the value load_dotenv writes
        monkeypatch.setenv("SKILLBRIDGE_MATCH_WORKERS", "1")
        monkeypatch.delenv("SKILLBRIDGE_MATCH_WORKERS")
        monkeypatch.setenv("SKILLBRIDGE_LOG_LEVEL", "ERROR")
        s = Settings.from_env(dotenv_path=env_file)
        assert s.match_workers == 5
        # Already-set variables win over the .env file
        assert s.log_level == "ERROR"

    @pytest.mark.parametrize("name,value", [
        ("SKILLBRIDGE_MATCH_WORKERS", "many"),
        ("SKILLBRIDGE_MATCH_WORKERS", "0"),
        ("SKILLBRIDGE_HTTP_TIMEOUT", "soon"),
        ("SKILLBRIDGE_HTTP_TIMEOUT", "-1"),
        ("SKILLBRIDGE_STRICT_CAPACITY", "maybe"),
        ("SKILLBRIDGE_BACKEND", "mysql"),
        ("SKILLBRIDGE_LOG_LEVEL", "CHATTY"),
    ])
    def test_invalid_values(self, name: str, value: str) -> None:
        with pytest.raises(ValueError):
            Settings.from_env({name: value})

    def test_postgrest_requires_credentials(self) -> None:
        with pytest.raises(ValueError, match="SKILLBRIDGE_API_URL"):
            Settings.from_env({"SKILLBRIDGE_BACKEND": "postgrest"})
