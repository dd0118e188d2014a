from .stego import (
    CapabilityThresholds,
    StegoConfig,
    StegoFile,
    UnsetThresholdPolicy,
    load_stego,
    read_stego_file,
    select_parser,
)
from .store import StegoStore

__all__ = [
    "CapabilityThresholds",
    "StegoConfig",
    "StegoFile",
    "StegoStore",
    "UnsetThresholdPolicy",
    "load_stego",
    "read_stego_file",
    "select_parser",
]
