"""Command line entry point for DevVoice."""

import sys
import asyncio
import logging
from pathlib import Path
from typing import Optional

import click
from pubsub import pub
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from .config import DevVoiceConfig
from .exceptions import DevVoiceError
from .models.messages import EditorInfo
from .models.session import SessionState
from .recorder.devices import DeviceProbe
from .services.app import DevVoiceApp
from .services.decorations import decode_play_arguments
from .services.publisher import PANEL_TOPIC

logger = logging.getLogger(__name__)
console = Console()

LANGUAGES_BY_SUFFIX = {
    ".py": "python",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".js": "javascript",
    ".jsx": "javascriptreact",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".rb": "ruby",
    ".md": "markdown",
}


def setup_logging(config: DevVoiceConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - warnings only, the CLI prints its own progress
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info(f"DevVoice logging at {level} to {log_file_path}")


def guess_language(path: str) -> str:
    return LANGUAGES_BY_SUFFIX.get(Path(path).suffix.lower(), "plaintext")


def _print_message(message: dict) -> None:
    command = message["command"]
    if command == "status":
        console.print(f"[cyan]{message['message']}[/cyan]")
    elif command == "error":
        console.print(f"[red]Error: {message['error']}[/red]")
    elif command == "audioReady":
        console.print(f"[green]Recording ready ({len(message['audioData'])} base64 chars)[/green]")
    elif command == "recordingSaved":
        console.print(f"[green]Recording saved: {message['recordingId']}[/green]")
    elif command == "deviceList":
        for device in message["devices"]:
            console.print(f"Device: {device}")


async def _record_session(config: DevVoiceConfig, editor_info: EditorInfo, auto_save: bool) -> int:
    loop = asyncio.get_running_loop()
    app = DevVoiceApp(config, loop)
    panel = app.open_recorder(editor_info)
    finished = asyncio.Event()

    def on_message(panel_id, message):
        if panel_id != panel.panel_id:
            return
        _print_message(message)
        if message["command"] in ("audioReady", "error"):
            finished.set()

    pub.subscribe(on_message, PANEL_TOPIC)
    try:
        await panel.handle_message({"command": "start"})
        if panel.session.state != SessionState.RECORDING:
            return 1

        await loop.run_in_executor(None, console.input, "Press [bold]Enter[/bold] to stop recording...")
        await panel.handle_message({"command": "stop"})
        await finished.wait()
        if panel.session.state != SessionState.READY:
            return 1

        if not auto_save:
            auto_save = await loop.run_in_executor(None, Confirm.ask, f"Save recording for {editor_info.describe()}?")
        if not auto_save:
            console.print("Recording discarded")
            return 0

        await panel.handle_message({"command": "save", "editorInfo": editor_info.to_payload()})
        return 0 if panel.session.state == SessionState.IDLE else 1
    finally:
        pub.unsubscribe(on_message, PANEL_TOPIC)
        app.deactivate()


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              help="Path to configuration YAML file (default: ./devvoice.yaml if present)")
@click.option("--log-level", default=None,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Override logging.level from the config")
@click.option("--workspace", type=click.Path(file_okay=False), help="Workspace root holding .devvoice")
@click.version_option("0.1.0", prog_name="DevVoice")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], log_level: Optional[str], workspace: Optional[str]) -> None:
    """DevVoice - voice notes linked to lines of code."""
    try:
        config = DevVoiceConfig(config_path)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))
    if workspace:
        config.set('workspace.folders', [str(Path(workspace).absolute())])
    setup_logging(config, log_level or config.get('logging.level', 'INFO'))
    ctx.obj = config


@cli.command()
@click.argument("source_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--start", "start_line", type=int, required=True, help="First line (1-based)")
@click.option("--end", "end_line", type=int, help="Last line (1-based, inclusive); defaults to --start")
@click.option("--language", help="Language identifier; guessed from the file suffix")
@click.option("--yes", "auto_save", is_flag=True, help="Save without asking")
@click.pass_obj
def record(config: DevVoiceConfig, source_file: str, start_line: int, end_line: Optional[int],
           language: Optional[str], auto_save: bool) -> None:
    """Record a voice note for lines of SOURCE_FILE."""
    filepath = str(Path(source_file).absolute())
    try:
        editor_info = EditorInfo(
            filepath=filepath,
            start_line=start_line,
            end_line=end_line or start_line,
            language=language or guess_language(filepath),
        )
    except ValueError as e:
        raise click.BadParameter(str(e))

    sys.exit(asyncio.run(_record_session(config, editor_info, auto_save)))


@cli.command()
@click.pass_obj
def devices(config: DevVoiceConfig) -> None:
    """List audio input devices."""
    probe = DeviceProbe(config.get('devices.command'))
    try:
        names = asyncio.run(probe.list_devices())
    except DevVoiceError as e:
        raise click.ClickException(f"{e.detail}. Try recording with the default microphone.")
    for name in names:
        console.print(f"Device: {name}")
    console.print(f"Total devices found: {len(names)}")


@cli.command()
@click.argument("source_file", type=click.Path(dir_okay=False))
@click.pass_obj
def ranges(config: DevVoiceConfig, source_file: str) -> None:
    """Show the line ranges of SOURCE_FILE that carry recordings."""
    filepath = str(Path(source_file).absolute())
    app = DevVoiceApp(config)
    app.focus_editor(filepath)
    if app.decorations.last_error is not None:
        raise click.ClickException(app.decorations.last_error.detail)

    records = app.store_for(filepath).records_for(filepath)
    if not records:
        console.print("No recordings for this file")
        return

    table = Table(title=Path(filepath).name)
    table.add_column("Lines")
    table.add_column("Duration")
    table.add_column("Recorded")
    table.add_column("Audio")
    for record in records:
        table.add_row(
            f"{record.start_line}-{record.end_line}",
            f"{record.duration if record.duration else '?'}s",
            record.timestamp,
            record.audio_file,
        )
    console.print(table)


@cli.command()
@click.argument("source_file", type=click.Path(dir_okay=False))
@click.argument("line", type=click.IntRange(min=1))
@click.pass_obj
def hover(config: DevVoiceConfig, source_file: str, line: int) -> None:
    """Print the hover text for LINE (1-based) of SOURCE_FILE."""
    filepath = str(Path(source_file).absolute())
    app = DevVoiceApp(config)
    app.focus_editor(filepath)
    markdown = app.hover(filepath, line - 1)
    if markdown is None:
        console.print("No recording on this line")
        return
    console.print(markdown, markup=False)


@cli.command()
@click.argument("audio_file", required=False)
@click.argument("source_file", required=False)
@click.option("--link", help="URL-escaped JSON payload from a hover link")
@click.pass_obj
def play(config: DevVoiceConfig, audio_file: Optional[str], source_file: Optional[str],
         link: Optional[str]) -> None:
    """Play AUDIO_FILE (relative to .devvoice) recorded for SOURCE_FILE."""
    app = DevVoiceApp(config)
    try:
        if link:
            audio_file, source_file = decode_play_arguments(link)
        path = app.play_audio(audio_file, str(Path(source_file).absolute()) if source_file else "")
    except DevVoiceError as e:
        raise click.ClickException(e.detail)
    console.print(f"Playing {path}")


@cli.command()
@click.option("--file", "source_file", type=click.Path(dir_okay=False),
              help="A file inside the workspace, used when no workspace is configured")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def clear(config: DevVoiceConfig, source_file: Optional[str], yes: bool) -> None:
    """Delete all recordings of the workspace."""
    if not yes and not Confirm.ask(
            "Are you sure you want to delete all recordings? This cannot be undone.", default=False):
        console.print("Nothing deleted")
        return

    app = DevVoiceApp(config)
    try:
        result = app.clear_all_recordings(str(Path(source_file).absolute()) if source_file else None)
    except DevVoiceError as e:
        raise click.ClickException(e.detail)

    if result.success:
        console.print("[green]All recordings cleared successfully![/green]")
        return
    for path, reason in result.failed.items():
        console.print(f"[yellow]Could not delete {path}: {reason}[/yellow]")
    raise click.ClickException(f"{len(result.failed)} items could not be deleted")


def main() -> None:
    """Main entry point for DevVoice."""
    cli()


if __name__ == "__main__":
    main()
