from enum import Enum


class RunMode(Enum):
    Base = "base"
    Git = "git"


class Capability(str, Enum):
    make = "make"
    automake = "automake"
    tests = "tests"


# Highest stego.lock format stamp this release understands
ANVIL_API_LEVEL = "2.0.0"
BASELINE_API_LEVEL = "1.0.0"

STEGO_FILENAME = "stego.lock"
DEFAULT_BUILDS_DIR = "./bin"
DEFAULT_COMPILER = "gcc"
LOG_FILENAME = "anvil.log"

# Key prefix marking a base-mode entry in [versions]
BASEMODE_PREFIX = "-"
VERSION_DIR_PREFIX = "v"

# Golden output files: <name>.k.stdout / <name>.k.stderr
GOLDEN_STDOUT_SUFFIX = ".k.stdout"
GOLDEN_STDERR_SUFFIX = ".k.stderr"

KERN_ANVILC = "anvilc"
KERN_CUSTOM = "custom"
KERN_ANVILPY = "anvilpy"
SUPPORTED_KERNS = (KERN_ANVILC, KERN_CUSTOM, KERN_ANVILPY)

# Exit codes, stable for calling scripts
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_CONFIG_ERROR = 3
EXIT_RESOLUTION_ERROR = 4
EXIT_PRECONDITION_ERROR = 5
EXIT_EXECUTION_ERROR = 6
EXIT_STATE_ERROR = 7
EXIT_TESTS_FAILED = 8
