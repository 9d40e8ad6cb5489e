"""External recorder process management."""

import shutil
import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from ..exceptions import SpawnError


logger = logging.getLogger(__name__)


def build_command(template: List[str], output_path: str, duration_seconds: int,
                  device: Optional[str] = None) -> List[str]:
    """Fill the {output}, {duration} and {device} placeholders of a command template."""
    if not template:
        raise SpawnError("Recorder command is not configured")
    if device is None and any("{device}" in arg for arg in template):
        raise SpawnError("No recording device configured; set recorder.device (see `devvoice devices`)")

    values = {
        "{output}": str(output_path),
        "{duration}": str(duration_seconds),
        "{device}": device or "",
    }
    command = []
    for arg in template:
        for placeholder, value in values.items():
            arg = arg.replace(placeholder, value)
        command.append(arg)
    return command


class RecorderProcess:
    """Handle to one out-of-process recorder writing to a single file.

    The program must write a valid audio file to the output path and exit
    when terminated or when the duration ceiling elapses.
    """

    def __init__(self, command_template: List[str], output_path: str,
                 duration_seconds: int = 300, device: Optional[str] = None):
        """Initialize recorder handle.

        Args:
            command_template: argv with {output}, {duration} and {device} placeholders
            output_path: File the recorder writes to
            duration_seconds: Hard ceiling so a forgotten session self-terminates
            device: Input device name, when the template needs one
        """
        self.command = build_command(command_template, output_path, duration_seconds, device)
        self.output_path = output_path
        self.duration_seconds = duration_seconds
        # Recorder diagnostics (stdout and stderr) land next to the output
        self.log_path = f"{output_path}.log"
        self.process: Optional[subprocess.Popen] = None

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def is_running(self) -> bool:
        return self.process is not None and self.process.poll() is None

    @property
    def has_exited(self) -> bool:
        return self.process is not None and self.process.poll() is not None

    @property
    def returncode(self) -> Optional[int]:
        return self.process.poll() if self.process else None

    def start(self) -> None:
        """Spawn the recorder without waiting for it.

        Raises:
            SpawnError: The program cannot be found or fails to launch
        """
        if self.process is not None:
            logger.warning("Recorder already started")
            return

        program = self.command[0]
        if shutil.which(program) is None:
            raise SpawnError(f"Recorder program not found: {program}")

        try:
            with open(self.log_path, 'wb') as log_file:
                self.process = subprocess.Popen(
                    self.command,
                    stdin=subprocess.DEVNULL,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                )
        except OSError as e:
            self.remove_log()
            raise SpawnError(f"Failed to spawn recorder process: {e}") from e

        logger.info(f"Recorder spawned with PID {self.pid}: {' '.join(self.command)}")

    def terminate(self) -> None:
        """Ask the recorder to finish writing and exit."""
        if self.is_running:
            logger.debug(f"Terminating recorder PID {self.pid}")
            self.process.terminate()

    def kill(self) -> None:
        """Stop the recorder immediately; the output file is abandoned."""
        if not self.is_running:
            return
        try:
            self.process.kill()
            logger.info(f"Killed recorder PID {self.pid}")
        except OSError as e:
            logger.warning(f"Could not kill recorder PID {self.pid}: {e}")

    def diagnostics(self, max_lines: int = 20) -> str:
        """Last lines the recorder printed, empty when nothing was captured."""
        try:
            with open(self.log_path, 'r', encoding='utf-8', errors='replace') as f:
                lines = f.read().splitlines()
        except OSError:
            return ""
        return "\n".join(line for line in lines[-max_lines:] if line.strip())

    def remove_log(self) -> None:
        try:
            Path(self.log_path).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not delete recorder log {self.log_path}: {e}")
