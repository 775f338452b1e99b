from pathlib import Path

DEFAULT_CONFIG_PATH = Path("/etc/pkindex/config.yaml")
DEFAULT_INDEX_DIR = Path("/var/cache/pkindex")
DEFAULT_STATUS_FILE = Path("/var/lib/dpkg/status")

# Pin priorities, mirroring apt's defaults for the target release
DEFAULT_RELEASE_PRIORITY = 990
RELEASE_PRIORITY = 500
# apt gives the dpkg status file 100, but what is installed should always
# resolve to itself.
INSTALLED_PRIORITY = 2**63 - 1

SOURCES_INDEX = "sources.index"
URIS_INDEX = "uris.index"
COMPLETION_FILES = {
    "bin": "completion.bin.txt",
    "src": "completion.src.txt",
    "both": "completion.both.txt",
}

BINARY_PREFIX = "bin:"
SOURCE_PREFIX = "src:"

TEMP_PREFIX = "pkindex-"
