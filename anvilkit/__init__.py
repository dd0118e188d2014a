"""anvilkit: version-gated build orchestration wrapping make, cc and git."""

__version__ = "0.1.0"
