"""Input device enumeration through the media probing tool."""

import re
import html
import asyncio
import logging
from typing import List

from ..exceptions import DeviceListError

logger = logging.getLogger(__name__)

# Matches: "Device Name" (audio)
AUDIO_DEVICE_PATTERN = re.compile(r'"([^"]+)"\s*\(audio\)')


def parse_device_list(output: str) -> List[str]:
    """Extract audio input device names from probing tool diagnostics.

    Names starting with '@' are device monikers, not display names, and are
    skipped. Duplicates keep their first position.

    Raises:
        DeviceListError: No line matches the audio device pattern
    """
    devices: List[str] = []
    matched = False
    for line in output.splitlines():
        match = AUDIO_DEVICE_PATTERN.search(line)
        if not match:
            continue
        matched = True
        name = match.group(1).strip()
        if not name or name.startswith('@'):
            continue
        if name not in devices:
            devices.append(name)

    if not matched:
        raise DeviceListError("no audio devices found in probe output")

    logger.debug(f"Parsed {len(devices)} audio devices")
    return devices


def render_device_html(devices: List[str]) -> str:
    """Small escaped list fragment for the panel."""
    if not devices:
        return "<p>No audio input devices found.</p>"
    items = "".join(f"<li>{html.escape(name)}</li>" for name in devices)
    return f"<ul>{items}</ul>"


class DeviceProbe:
    """Runs the probing tool and parses its device listing."""

    def __init__(self, command: List[str]):
        """Initialize device probe.

        Args:
            command: argv that makes the tool print its input devices to stderr
        """
        self.command = list(command)

    async def list_devices(self) -> List[str]:
        """List audio input devices without blocking the event loop.

        Raises:
            DeviceListError: The tool cannot be started or lists nothing usable
        """
        logger.info(f"Listing audio devices: {' '.join(self.command)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise DeviceListError(str(e)) from e

        _, stderr = await proc.communicate()
        output = stderr.decode('utf-8', errors='replace')
        logger.debug(f"Probe exited with {proc.returncode}:\n{output}")
        return parse_device_list(output)
