from .json import json_dumps, json_loads
from .id_gen import generate_uuid
from .logging import configure_logging
from .singleflight import SingleFlight
from .timestamps import epoch_ms, now_iso

__all__ = [
    "json_dumps",
    "json_loads",
    "generate_uuid",
    "configure_logging",
    "SingleFlight",
    "epoch_ms",
    "now_iso",
]
