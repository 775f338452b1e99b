import logging
from pathlib import Path
from typing import Annotated

import yaml
from pydantic import AfterValidator, BaseModel

from pkindex.constants import (
    COMPLETION_FILES,
    DEFAULT_INDEX_DIR,
    DEFAULT_RELEASE_PRIORITY,
    DEFAULT_STATUS_FILE,
    INSTALLED_PRIORITY,
    RELEASE_PRIORITY,
    SOURCES_INDEX,
    URIS_INDEX,
)
from pkindex.types import CompletionFamily, TargetKind

logger = logging.getLogger(__name__)

ExpandedPath = Annotated[Path, AfterValidator(lambda v: v.expanduser())]


class TargetSchema(BaseModel):
    """
    One package list, as apt-get indextargets would describe it.
    """

    kind: TargetKind
    filename: ExpandedPath
    release: str = ""
    codename: str = ""
    repo_uri: str = ""
    priority: int | None = None
    # Only for dpkg status files: ignore removed-but-not-purged packages
    installed_only: bool = False

    @property
    def enabled(self) -> bool:
        return not self.codename.endswith("-debug")

    def priority_for(self, default_release: str) -> int:
        """
        Works out this target's pin priority given the default release.
        """
        if self.priority is not None:
            return self.priority
        if default_release and self.release == default_release:
            return DEFAULT_RELEASE_PRIORITY
        return RELEASE_PRIORITY


class ConfigSchema(BaseModel):

    index_dir: ExpandedPath = DEFAULT_INDEX_DIR
    default_release: str = ""
    status_file: ExpandedPath | None = DEFAULT_STATUS_FILE
    scratch_dir: ExpandedPath | None = None
    targets: list[TargetSchema] = []


class Config:
    """
    Config file parser
    """

    def __init__(self, config_path: Path | None = None):
        self.config_path = config_path

        # Read main config in; no file means all defaults
        data = {}
        if config_path is not None and config_path.is_file():
            with open(config_path) as fh:
                data = yaml.safe_load(fh.read()) or {}
        elif config_path is not None:
            logger.debug(f"No config file at {config_path}, using defaults")
        self.config_data = ConfigSchema(**data)

        # Calculate paths
        self.index_dir = self.config_data.index_dir
        self.sources_index_path = self.index_dir / SOURCES_INDEX
        self.uris_index_path = self.index_dir / URIS_INDEX

    @property
    def default_release(self) -> str:
        return self.config_data.default_release

    @property
    def scratch_dir(self) -> Path | None:
        return self.config_data.scratch_dir

    def completion_path(self, family: CompletionFamily) -> Path:
        return self.index_dir / COMPLETION_FILES[family]

    def targets(self, kind: TargetKind) -> list[tuple[TargetSchema, int]]:
        """
        Returns every enabled target of the given kind along with its
        priority, in configuration order. For Packages, the dpkg status file
        comes last with the highest possible priority.
        """
        result = [
            (target, target.priority_for(self.default_release))
            for target in self.config_data.targets
            if target.kind == kind and target.enabled
        ]
        if kind == "Packages" and self.config_data.status_file is not None:
            status = TargetSchema(
                kind="Packages",
                filename=self.config_data.status_file,
                priority=INSTALLED_PRIORITY,
                installed_only=True,
            )
            result.append((status, INSTALLED_PRIORITY))
        return result
