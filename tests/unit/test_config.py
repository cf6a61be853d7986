"""Unit tests for LivescribeConfig."""

import os
from pathlib import Path

import pytest

from livescribe.config import LivescribeConfig
from livescribe.models.session import SessionConfig


def write_config(directory, text):
    path = Path(directory) / "livescribe.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


@pytest.mark.unit
class TestLoading:

    def test_defaults_without_file(self):
        config = LivescribeConfig()

        assert config.get('session.provider') == "streaming"
        assert config.get('session.language') == "en"
        assert config.get_seconds('session.debounce_ms') == 1.5
        assert config.get_seconds('session.restart_backoff_ms') == 1.0
        assert config.get('audio.sample_rate') == 16000
        assert config.get('no.such.key', 'fallback') == 'fallback'

    def test_values_override_defaults(self, temp_data_dir):
        path = write_config(temp_data_dir, """
session:
  provider: mistral
  language: fi
  debounce_ms: 2000
""")
        config = LivescribeConfig(path)

        assert config.get_session_config() == SessionConfig(provider="mistral", language="fi")
        assert config.get_seconds('session.debounce_ms') == 2.0
        assert config.get_seconds('session.chunk_interval_ms') == 5.0

    def test_missing_file(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            LivescribeConfig(os.path.join(temp_data_dir, "missing.yaml"))

    def test_empty_file(self, temp_data_dir):
        with pytest.raises(ValueError):
            LivescribeConfig(write_config(temp_data_dir, ""))

    def test_invalid_yaml(self, temp_data_dir):
        with pytest.raises(ValueError):
            LivescribeConfig(write_config(temp_data_dir, "session: [unclosed"))

    def test_unknown_provider(self, temp_data_dir):
        with pytest.raises(ValueError, match="Unknown transcription provider"):
            LivescribeConfig(write_config(temp_data_dir, "session:\n  provider: whisper-local\n"))

    def test_unknown_language(self, temp_data_dir):
        with pytest.raises(ValueError, match="Unsupported language"):
            LivescribeConfig(write_config(temp_data_dir, "session:\n  language: sv\n"))

    def test_set(self):
        config = LivescribeConfig()
        config.set('session.language', 'fi')

        assert config.get('session.language') == 'fi'


@pytest.mark.unit
class TestCredentials:

    def test_api_key_from_config(self, temp_data_dir, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "from-env")
        config = LivescribeConfig(write_config(temp_data_dir, "credentials:\n  openai_api_key: ' sk-file '\n"))

        assert config.get_api_key("openai") == "sk-file"

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("MISTRAL_API_KEY", "m-env")

        assert LivescribeConfig().get_api_key("mistral") == "m-env"

    def test_api_key_missing(self, monkeypatch):
        monkeypatch.delenv("ELEVENLABS_API_KEY", raising=False)

        assert LivescribeConfig().get_api_key("elevenlabs") == ""

    def test_google_credentials_resolved_relative_to_config(self, temp_data_dir):
        Path(temp_data_dir, "google.json").write_text("{}")
        config = LivescribeConfig(write_config(temp_data_dir, "credentials:\n  google_credentials_path: google.json\n"))

        resolved = config.get_google_credentials_path()
        assert resolved == str(Path(temp_data_dir, "google.json").absolute())

    def test_google_credentials_missing_file(self, temp_data_dir):
        config = LivescribeConfig(write_config(temp_data_dir, "credentials:\n  google_credentials_path: nope.json\n"))

        assert config.get_google_credentials_path() is None


@pytest.mark.unit
class TestTriggersAndKeywords:

    def test_triggers_in_order(self, temp_data_dir):
        config = LivescribeConfig(write_config(temp_data_dir, """
triggers:
  - phrase: rickroll
    open_url: https://example.com
  - phrase: hello
    message: Hello there
keywords: [deadline, budget]
"""))

        assert [t['phrase'] for t in config.get_triggers()] == ["rickroll", "hello"]
        assert config.get_keywords() == ["deadline", "budget"]

    def test_trigger_without_phrase(self, temp_data_dir):
        config = LivescribeConfig(write_config(temp_data_dir, "triggers:\n  - message: hi\n"))

        with pytest.raises(ValueError):
            config.get_triggers()

    def test_no_triggers(self):
        assert LivescribeConfig().get_triggers() == []
        assert LivescribeConfig().get_keywords() == []
