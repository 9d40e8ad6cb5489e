"""External recorder, probing and playback processes."""

from .process import RecorderProcess
from .devices import DeviceProbe, parse_device_list
from .player import AudioPlayer

__all__ = [
    'RecorderProcess',
    'DeviceProbe',
    'parse_device_list',
    'AudioPlayer',
]
