"""
Unit tests for CLI commands.
"""

import json

import pytest
from unittest.mock import patch
from click.testing import CliRunner

from regen.cli import cli, main
from regen.core.errors import ServiceUnavailableError
from regen.db import MemoryKeyValueStore
from regen.pipeline import BatchOrchestrator, PipelineEngine


# ══════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def runner():
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def cli_store(stt, enhancer, tts):
    """Run commands against mocked services and a shared in-memory store."""
    store = MemoryKeyValueStore()

    def make_pipeline(settings_store):
        return BatchOrchestrator(PipelineEngine(stt, enhancer, tts), settings_store)

    with patch("regen.cli.create_store", return_value=store), \
         patch("regen.cli.create_pipeline", side_effect=make_pipeline), \
         patch("regen.cli.configure_logging"):
        yield store


# ══════════════════════════════════════════════════════════════
# Main CLI Tests
# ══════════════════════════════════════════════════════════════


class TestMainCLI:
    """Test main CLI group."""

    def test_cli_version(self, runner):
        """Test CLI version option."""
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_cli_help(self, runner):
        """Test CLI help output."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Regen" in result.output
        for command in ("run", "voices", "settings", "config"):
            assert command in result.output

    def test_cli_debug_mode(self, runner):
        """Test CLI debug mode."""
        result = runner.invoke(cli, ["--debug", "--help"])
        assert result.exit_code == 0

    def test_main_function(self):
        """Test main entry point."""
        with patch("regen.cli.cli") as mock_cli:
            main()
            mock_cli.assert_called_once()


# ══════════════════════════════════════════════════════════════
# Run Command Tests
# ══════════════════════════════════════════════════════════════


class TestRunCommand:
    """Test the run command."""

    def test_run_pipeline(self, runner, cli_store, enhancer, tts, tmp_path):
        """Test files are transcribed, enhanced and re-voiced."""
        source = tmp_path / "talk.mp3"
        source.write_bytes(b"mp3-data")
        out_dir = tmp_path / "out"

        result = runner.invoke(
            cli, ["run", str(source), "--output-dir", str(out_dir), "--format", "wav"]
        )

        assert result.exit_code == 0, result.output
        assert (out_dir / "talk.wav").read_bytes() == b"ID3-audio"
        assert "✓ talk.mp3" in result.output
        enhancer.enhance.assert_awaited_once()
        assert tts.synthesize.call_args.kwargs["response_format"] == "wav"

    def test_run_without_enhancement(self, runner, cli_store, enhancer, tts, tmp_path):
        """Test --no-enhance voices the raw transcript."""
        source = tmp_path / "talk.mp3"
        source.write_bytes(b"mp3-data")

        result = runner.invoke(
            cli, ["run", str(source), "--output-dir", str(tmp_path), "--no-enhance"]
        )

        assert result.exit_code == 0, result.output
        enhancer.enhance.assert_not_awaited()
        assert tts.synthesize.call_args.args[0] == "um so hello world"

    def test_run_reports_failures(self, runner, cli_store, stt, tmp_path):
        """Test a failed file is reported and the exit code is non-zero."""

        async def transcribe(payload, filename, content_type=None):
            if filename == "bad.mp3":
                raise ServiceUnavailableError("speech-to-text", "Transcription failed")
            return "hello"

        stt.transcribe.side_effect = transcribe
        good = tmp_path / "good.mp3"
        bad = tmp_path / "bad.mp3"
        good.write_bytes(b"g")
        bad.write_bytes(b"b")

        result = runner.invoke(
            cli, ["run", str(good), str(bad), "--output-dir", str(tmp_path / "out")]
        )

        assert result.exit_code == 1
        assert "✓ good.mp3" in result.output
        assert "✗ bad.mp3 [upload]: Transcription failed" in result.output
        assert (tmp_path / "out" / "good.mp3").exists()

    def test_run_unsupported_files(self, runner, cli_store, tmp_path):
        """Test non-media input is refused."""
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")

        result = runner.invoke(cli, ["run", str(notes)])

        assert result.exit_code == 1
        assert "No supported audio or video files" in result.output


# ══════════════════════════════════════════════════════════════
# Voice Command Tests
# ══════════════════════════════════════════════════════════════


class TestVoiceCommands:
    """Test voices subcommands."""

    def test_list(self, runner, cli_store):
        """Test listing shows predefined and base voices."""
        result = runner.invoke(cli, ["voices", "list"])

        assert result.exit_code == 0, result.output
        assert "Harmony" in result.output
        assert "predefined" in result.output
        assert "bm_george" in result.output

    def test_create_and_delete(self, runner, cli_store):
        """Test creating then deleting a combined voice."""
        result = runner.invoke(cli, ["voices", "create", "Duo", "af_heart", "bm_george"])
        assert result.exit_code == 0, result.output
        assert "af_heart+bm_george" in result.output

        result = runner.invoke(cli, ["voices", "list"])
        assert "custom" in result.output

        result = runner.invoke(cli, ["voices", "delete", "af_heart+bm_george"])
        assert result.exit_code == 0, result.output
        assert "Deleted combined voice Duo" in result.output

    def test_create_single_voice_fails(self, runner, cli_store):
        """Test one voice is rejected with an error."""
        result = runner.invoke(cli, ["voices", "create", "Solo", "af_heart"])

        assert result.exit_code == 1
        assert "at least 2 voices" in result.output

    def test_delete_predefined_fails(self, runner, cli_store):
        """Test predefined voices are protected."""
        result = runner.invoke(cli, ["voices", "delete", "af_heart+af_sky"])

        assert result.exit_code == 1
        assert "cannot be deleted" in result.output

    def test_preview(self, runner, cli_store, tmp_path):
        """Test a sample is written to the output file."""
        target = tmp_path / "sample.mp3"

        result = runner.invoke(cli, ["voices", "preview", "af_heart", "-o", str(target)])

        assert result.exit_code == 0, result.output
        assert target.read_bytes() == b"ID3-audio"


# ══════════════════════════════════════════════════════════════
# Settings Command Tests
# ══════════════════════════════════════════════════════════════


class TestSettingsCommands:
    """Test settings subcommands."""

    def test_show_defaults(self, runner, cli_store):
        """Test default settings are shown as JSON."""
        result = runner.invoke(cli, ["settings", "show"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["voice"]["voiceId"] == "af_heart"

    def test_set_and_show(self, runner, cli_store):
        """Test changed settings persist across invocations."""
        result = runner.invoke(
            cli, ["settings", "set", "--voice", "bm_george", "--speed", "1.5", "--instructions", "Formal"]
        )
        assert result.exit_code == 0, result.output
        assert "Settings saved" in result.output

        data = json.loads(runner.invoke(cli, ["settings", "show"]).output)
        assert data["voice"]["voiceId"] == "bm_george"
        assert data["voice"]["speed"] == 1.5
        assert data["voice"]["pitch"] == 1.0
        assert data["textProcessing"]["instructions"] == "Formal"

    def test_set_invalid_value(self, runner, cli_store):
        """Test out-of-range values are rejected."""
        result = runner.invoke(cli, ["settings", "set", "--speed", "5"])

        assert result.exit_code == 1
        assert "Invalid settings" in result.output

    def test_set_nothing(self, runner, cli_store):
        """Test set without options is a usage error."""
        result = runner.invoke(cli, ["settings", "set"])
        assert result.exit_code == 2


# ══════════════════════════════════════════════════════════════
# Config Command Tests
# ══════════════════════════════════════════════════════════════


class TestConfigCommand:
    """Test config command."""

    def test_config_masks_secrets(self, runner):
        """Test the API key is never printed."""
        with patch("regen.cli.configure_logging"), \
             patch("regen.cli.settings.openai_api_key", "sk-secret"):
            result = runner.invoke(cli, ["config"])

        assert result.exit_code == 0
        assert "Regen Configuration" in result.output
        assert "sk-secret" not in result.output
        assert "***" in result.output
