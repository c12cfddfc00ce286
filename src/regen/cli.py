"""
Regen CLI

Command-line interface for the Regen audio pipeline.
"""

import asyncio
import sys
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar
from uuid import UUID

import click
import structlog

from regen import __version__
from regen.config import settings
from regen.core import (
    ArtifactStatus,
    RegenError,
    ServiceUnavailableError,
    SettingsStore,
    ValidationError,
)
from regen.db import KeyValueStore, create_store
from regen.log import configure_logging
from regen.pipeline import BatchOrchestrator, create_pipeline
from regen.voices import VoiceRegistry

logger = structlog.get_logger()

T = TypeVar("T")

RESPONSE_FORMATS = ["mp3", "wav", "opus", "aac", "flac"]


# ══════════════════════════════════════════════════════════════
# Runtime
# ══════════════════════════════════════════════════════════════


@dataclass
class Runtime:
    """Components shared by the commands of one invocation."""

    store: KeyValueStore
    settings_store: SettingsStore
    orchestrator: BatchOrchestrator
    registry: VoiceRegistry


@asynccontextmanager
async def open_runtime() -> AsyncIterator[Runtime]:
    """Load settings and voices, and release all clients on exit."""
    store = create_store()
    settings_store = SettingsStore(store)
    orchestrator = create_pipeline(settings_store)
    registry = VoiceRegistry(orchestrator.engine.tts, store, settings_store)

    try:
        await settings_store.load()
        await registry.load()
        yield Runtime(store, settings_store, orchestrator, registry)
    finally:
        await orchestrator.engine.close()
        await store.close()


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a command coroutine, turning domain errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except RegenError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


# ══════════════════════════════════════════════════════════════
# CLI Group
# ══════════════════════════════════════════════════════════════


@click.group()
@click.version_option(version=__version__, prog_name="regen")
@click.option("--debug/--no-debug", default=False, help="Enable debug logging")
def cli(debug: bool) -> None:
    """Regen - transcribe, rewrite and re-voice audio.

    Files move through upload, transcription, text processing and speech
    generation.
    """
    configure_logging("DEBUG" if debug else settings.log_level, settings.log_json)


# ══════════════════════════════════════════════════════════════
# Pipeline Commands
# ══════════════════════════════════════════════════════════════


@cli.command()
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--output-dir", "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    help="Directory for generated audio",
)
@click.option("--voice", "-v", default=None, help="Voice id (defaults to the saved setting)")
@click.option(
    "--format", "-f", "response_format",
    type=click.Choice(RESPONSE_FORMATS),
    default=None,
    help="Output audio format",
)
@click.option("--no-enhance", is_flag=True, default=False, help="Use raw transcripts")
def run(
    files: tuple[Path, ...],
    output_dir: Path,
    voice: str | None,
    response_format: str | None,
    no_enhance: bool,
) -> None:
    """Run files through the whole pipeline.

    FILES: Audio or video files (MP3, WAV, M4A, MP4, ...)
    """

    async def run_pipeline() -> bool:
        async with open_runtime() as rt:
            engine = rt.orchestrator.engine
            current = rt.settings_store.current

            voice_settings = current.voice
            if voice:
                voice_settings = voice_settings.model_copy(
                    update={"voice_id": (await rt.registry.get_voice(voice)).id}
                )
            if response_format:
                voice_settings = voice_settings.model_copy(
                    update={"response_format": response_format}
                )

            added = await engine.add_files(files)
            if not added:
                raise ValidationError("No supported audio or video files given")
            click.echo(f"Processing {len(added)} file(s)")

            await rt.orchestrator.transcribe_all()

            failures: dict[UUID, str] = {}
            for artifact in engine.list_artifacts(ArtifactStatus.TRANSCRIBING):
                if artifact.transcription is None:
                    continue
                try:
                    if no_enhance:
                        text = artifact.transcription
                    else:
                        text = await engine.request_enhancement(
                            artifact.id,
                            current.text_processing.prompt,
                            current.text_processing.instructions,
                        )
                    engine.accept_enhancement(artifact.id, text)
                except (ServiceUnavailableError, ValidationError) as e:
                    failures[artifact.id] = str(e)

            await rt.orchestrator.generate_audio_all(voice_settings)

            output_dir.mkdir(parents=True, exist_ok=True)
            ok = True
            for artifact in engine.list_artifacts():
                if artifact.status == ArtifactStatus.COMPLETE:
                    target = output_dir / f"{Path(artifact.name).stem}.{artifact.output_format}"
                    target.write_bytes(engine.read_output(artifact.id) or b"")
                    click.echo(f"✓ {artifact.name} -> {target}")
                else:
                    ok = False
                    reason = failures.get(artifact.id) or artifact.error or "not processed"
                    click.echo(f"✗ {artifact.name} [{artifact.status.value}]: {reason}", err=True)
            return ok

    if not run_async(run_pipeline()):
        sys.exit(1)


# ══════════════════════════════════════════════════════════════
# Voice Commands
# ══════════════════════════════════════════════════════════════


@cli.group()
def voices() -> None:
    """Voice catalog commands."""
    pass


@voices.command("list")
def voices_list() -> None:
    """List predefined, custom and base voices."""

    async def list_all() -> None:
        async with open_runtime() as rt:
            for voice in await rt.registry.list_voices():
                if voice.is_base:
                    kind = "base"
                elif voice.is_predefined:
                    kind = "predefined"
                else:
                    kind = "custom"
                click.echo(f"  {voice.id:32} {voice.name:14} {voice.gender:8} {voice.accent:14} {kind}")

    run_async(list_all())


@voices.command("create")
@click.argument("name")
@click.argument("voice_ids", nargs=-1, required=True)
def voices_create(name: str, voice_ids: tuple[str, ...]) -> None:
    """Combine base voices into a new voice.

    NAME: Display name. VOICE_IDS: Base voices, in the order to combine them.
    """

    async def create() -> None:
        async with open_runtime() as rt:
            voice = await rt.registry.create_composite(name, list(voice_ids))
            click.echo(f"Created combined voice {voice.name} ({voice.id})")

    run_async(create())


@voices.command("delete")
@click.argument("voice_id")
def voices_delete(voice_id: str) -> None:
    """Delete a custom combined voice."""

    async def delete() -> None:
        async with open_runtime() as rt:
            voice = await rt.registry.delete_composite(voice_id)
            click.echo(f"Deleted combined voice {voice.name} ({voice.id})")

    run_async(delete())


@voices.command("preview")
@click.argument("voice_id")
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--format", "-f", "response_format", type=click.Choice(RESPONSE_FORMATS), default="mp3")
def voices_preview(voice_id: str, output: Path, response_format: str) -> None:
    """Write a short sample spoken with a voice."""

    async def preview() -> None:
        async with open_runtime() as rt:
            audio = await rt.registry.preview_voice(voice_id, response_format)  # type: ignore[arg-type]
            output.write_bytes(audio)
            click.echo(f"Sample written to {output}")

    run_async(preview())


# ══════════════════════════════════════════════════════════════
# Settings Commands
# ══════════════════════════════════════════════════════════════


@cli.group("settings")
def settings_group() -> None:
    """User settings commands."""
    pass


@settings_group.command("show")
def settings_show() -> None:
    """Show the saved user settings."""

    async def show() -> None:
        async with open_runtime() as rt:
            click.echo(rt.settings_store.current.model_dump_json(by_alias=True, indent=2))

    run_async(show())


@settings_group.command("set")
@click.option("--prompt", default=None, help="Text processing prompt")
@click.option("--instructions", default=None, help="Additional instructions")
@click.option("--voice", "voice_id", default=None, help="Selected voice id")
@click.option("--speed", type=float, default=None, help="Speech speed (0.5-2.0)")
@click.option("--pitch", type=float, default=None, help="Speech pitch (0.5-2.0)")
@click.option("--format", "response_format", type=click.Choice(RESPONSE_FORMATS), default=None)
def settings_set(
    prompt: str | None,
    instructions: str | None,
    voice_id: str | None,
    speed: float | None,
    pitch: float | None,
    response_format: str | None,
) -> None:
    """Change user settings."""
    text_changes = {"prompt": prompt, "instructions": instructions}
    voice_changes = {
        "voiceId": voice_id,
        "speed": speed,
        "pitch": pitch,
        "responseFormat": response_format,
    }
    text_changes = {k: v for k, v in text_changes.items() if v is not None}
    voice_changes = {k: v for k, v in voice_changes.items() if v is not None}

    if not text_changes and not voice_changes:
        raise click.UsageError("Nothing to change")

    async def update() -> None:
        async with open_runtime() as rt:
            data = rt.settings_store.current.model_dump(by_alias=True)
            data["textProcessing"].update(text_changes)
            data["voice"].update(voice_changes)

            if await rt.settings_store.save(data):
                click.echo("Settings saved")
            else:
                click.echo("Settings storage unavailable; changes were not persisted", err=True)

    run_async(update())


# ══════════════════════════════════════════════════════════════
# Config Commands
# ══════════════════════════════════════════════════════════════


@cli.command()
def config() -> None:
    """Show current configuration."""
    click.echo("Regen Configuration\n")

    config_items = [
        ("Environment", settings.app_env),
        ("Debug", str(settings.debug)),
        ("STT URL", settings.stt_base_url),
        ("TTS URL", settings.tts_base_url),
        ("LLM Model", settings.llm_model),
        ("OpenAI API Key", settings.openai_api_key),
        ("Storage", settings.storage_backend),
        ("Storage Path", settings.storage_path),
        ("Redis", str(settings.redis_url)),
        ("Default Voice", settings.default_voice_id),
    ]

    for key, value in config_items:
        # Mask sensitive values
        if "key" in key.lower() or "secret" in key.lower():
            value = "***" if value else "Not set"
        click.echo(f"  {key:20} {value}")


# ══════════════════════════════════════════════════════════════
# Entry Point
# ══════════════════════════════════════════════════════════════


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
