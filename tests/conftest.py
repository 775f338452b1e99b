import pytest
import yaml

from pkindex.config import Config
from pkindex.generator import Generator


def deb822(stanzas: list[dict[str, str]]) -> str:
    """
    Renders stanzas as a deb822 document, the format of Packages, Sources
    and the dpkg status file.
    """
    paragraphs = []
    for stanza in stanzas:
        lines = []
        for field, value in stanza.items():
            if "\n" in value:
                lines.append(f"{field}:")
                lines.extend(f" {line}" for line in value.splitlines())
            else:
                lines.append(f"{field}: {value}")
        paragraphs.append("\n".join(lines) + "\n")
    return "\n".join(paragraphs)


@pytest.fixture
def write_list(tmp_path):
    """
    Returns a function writing stanzas to a file in tmp_path and returning
    its path.
    """

    def write(name: str, stanzas: list[dict[str, str]]):
        path = tmp_path / name
        path.write_text(deb822(stanzas))
        return path

    return write


STABLE_PACKAGES = [
    {"Package": "alpha", "Version": "1.0-1"},
    {"Package": "libbeta1", "Source": "beta (2.0-1)", "Version": "2.0-1+b1"},
]

TESTING_PACKAGES = [
    {"Package": "libbeta1", "Source": "beta", "Version": "3.0-1"},
    {"Package": "gamma", "Version": "1.0-1"},
    {"Package": "broken", "Source": "broken (bad version", "Version": "1"},
]

STATUS = [
    {"Package": "gamma", "Status": "install ok installed", "Version": "0.5-1"},
    {"Package": "leftover", "Status": "deinstall ok config-files", "Version": "1"},
]

STABLE_SOURCES = [
    {
        "Package": "alpha",
        "Version": "1.0-1",
        "Directory": "pool/main/a/alpha",
        "Files": "aa 100 alpha_1.0-1.dsc\nbb 1000 alpha_1.0.orig.tar.gz",
    },
    {
        "Package": "beta",
        "Version": "2.0-1",
        "Directory": "pool/main/b/beta",
        "Files": "cc 200 beta_2.0-1.dsc\ndd 2000 beta_2.0.orig.tar.gz",
    },
]

TESTING_SOURCES = [
    {
        "Package": "beta",
        "Version": "2.0-1",
        "Directory": "pool/main/b/beta",
        "Files": "cc 201 beta_2.0-1.dsc",
    },
    {
        "Package": "beta",
        "Version": "3.0-1",
        "Directory": "pool/main/b/beta",
        "Files": "ee 300 beta_3.0-1.dsc\nff 3000 beta_3.0.orig.tar.xz",
    },
]


@pytest.fixture
def config_path(tmp_path, write_list):
    """
    Writes a config file describing three Packages sources (default release,
    another release and the dpkg status file) plus two Sources lists.
    """
    targets = [
        {
            "kind": "Packages",
            "filename": str(write_list("stable_Packages", STABLE_PACKAGES)),
            "release": "stable",
            "codename": "bookworm",
        },
        {
            "kind": "Packages",
            "filename": str(write_list("testing_Packages", TESTING_PACKAGES)),
            "release": "testing",
            "codename": "trixie",
        },
        {
            "kind": "Packages",
            "filename": str(tmp_path / "not-downloaded"),
            "release": "stable",
            "codename": "bookworm-debug",
        },
        {
            "kind": "Sources",
            "filename": str(write_list("stable_Sources", STABLE_SOURCES)),
            "release": "stable",
            "codename": "bookworm",
            "repo_uri": "http://deb.example.org/debian/",
        },
        {
            "kind": "Sources",
            "filename": str(write_list("testing_Sources", TESTING_SOURCES)),
            "release": "testing",
            "codename": "trixie",
            "repo_uri": "http://testing.example.org/debian/",
        },
    ]
    path = tmp_path / "config.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "index_dir": str(tmp_path / "index"),
                "default_release": "stable",
                "status_file": str(write_list("status", STATUS)),
                "targets": targets,
            }
        )
    )
    return path


@pytest.fixture
def config(config_path):
    return Config(config_path)


@pytest.fixture
def generated(config):
    """
    A config whose index files have been generated.
    """
    Generator(config).run()
    return config
