from .step_10_fetch_container import FetchContainerStep
from .step_20_extract_container import ExtractContainerStep
from .step_30_fetch_server import FetchServerStep
from .step_40_extract_server import ExtractServerStep

__all__ = [
    "FetchContainerStep",
    "ExtractContainerStep",
    "FetchServerStep",
    "ExtractServerStep",
]
