"""Speed probe library -- streaming measurement, statistics, and URL helpers."""

from .download import SpeedProbe, SpeedtestResult, StopReason, create_session
from .exceptions import ProbeConnectionError, ProbeError, StreamReadError
from .sampler import Measurement, Sampler
from .stats import (
    PlateauDetector,
    bucket_rate,
    bucket_rates,
    format_rate,
    format_size,
    format_with_thousands,
    group_by_second,
    is_plateau,
    max_bucket_rate,
    peak_rate,
)
from .urls import is_base64, normalize_url, url_directory

__all__ = [
    "Measurement",
    "PlateauDetector",
    "ProbeConnectionError",
    "ProbeError",
    "Sampler",
    "SpeedProbe",
    "SpeedtestResult",
    "StopReason",
    "StreamReadError",
    "bucket_rate",
    "bucket_rates",
    "create_session",
    "format_rate",
    "format_size",
    "format_with_thousands",
    "group_by_second",
    "is_base64",
    "is_plateau",
    "max_bucket_rate",
    "normalize_url",
    "peak_rate",
    "url_directory",
]
