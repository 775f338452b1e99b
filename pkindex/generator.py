import logging
from collections.abc import Callable
from pathlib import Path
from typing import BinaryIO

from pkindex.atomic import atomic_write
from pkindex.config import Config, TargetSchema
from pkindex.constants import BINARY_PREFIX, SOURCE_PREFIX
from pkindex.index import encode_sources, encode_uris
from pkindex.merge import PrioritizedMapping, merge
from pkindex.records import read_binary_records, read_source_records
from pkindex.resolver import build_index, build_uri_index
from pkindex.types import Index, URIs
from pkindex.workers import BaseWorker, run_all

logger = logging.getLogger(__name__)


class PackagesWorker(BaseWorker):
    """
    Reads one Packages list and turns it into a lookup index.
    """

    log_name = "packages-worker"

    def __init__(self, target: TargetSchema, priority: int):
        super().__init__()
        self.target = target
        self.priority = priority

    def work(self) -> PrioritizedMapping:
        records = read_binary_records(
            self.target.filename, installed_only=self.target.installed_only
        )
        index = build_index(records)
        self.logger.info(f"{self.target.filename}: {len(index)} keys")
        return PrioritizedMapping(priority=self.priority, mapping=index)


class SourcesWorker(BaseWorker):
    """
    Reads one Sources list and turns it into a .dsc location index.
    """

    log_name = "sources-worker"

    def __init__(self, target: TargetSchema, priority: int):
        super().__init__()
        self.target = target
        self.priority = priority

    def work(self) -> PrioritizedMapping:
        uris = build_uri_index(
            read_source_records(self.target.filename), self.target.repo_uri
        )
        self.logger.info(f"{self.target.filename}: {len(uris)} source packages")
        return PrioritizedMapping(priority=self.priority, mapping=uris)


class WriterWorker(BaseWorker):
    """
    Writes one output file atomically.
    """

    log_name = "writer-worker"

    def __init__(
        self,
        dest: Path,
        write: Callable[[BinaryIO], None],
        scratch_dir: Path | None = None,
    ):
        super().__init__()
        self.dest = dest
        self.write = write
        self.scratch_dir = scratch_dir

    def work(self) -> Path:
        with atomic_write(self.dest, scratch_dir=self.scratch_dir) as fh:
            self.write(fh)
        self.logger.debug(f"Wrote {self.dest}")
        return self.dest


def completion_writer(keys: list[str], family: str) -> Callable[[BinaryIO], None]:
    """
    Returns a function writing the sorted keys of one alias family, one per
    line, with the family prefix stripped.
    """

    def write(fh: BinaryIO):
        for key in keys:
            if family == "bin" and key.startswith(BINARY_PREFIX):
                name = key[len(BINARY_PREFIX) :]
            elif family == "src" and key.startswith(SOURCE_PREFIX):
                name = key[len(SOURCE_PREFIX) :]
            elif family == "both" and not key.startswith(
                (BINARY_PREFIX, SOURCE_PREFIX)
            ):
                name = key
            else:
                continue
            fh.write(name.encode("utf-8") + b"\n")

    return write


class Generator:
    """
    Regenerates all index files from the configured package lists.

    Each list is read in its own thread; once all are in, the results are
    merged by priority and every output file is written in its own thread.
    Nothing is published unless the whole run succeeds.
    """

    def __init__(self, config: Config):
        self.config = config

    def run(self):
        self.generate_sources()
        self.generate_uris()

    def generate_sources(self) -> Index:
        self.config.index_dir.mkdir(parents=True, exist_ok=True)
        targets = self.config.targets("Packages")
        logger.info(f"Reading {len(targets)} Packages lists")
        mappings = run_all(
            [PackagesWorker(target, priority) for target, priority in targets]
        )
        merged, keys = merge(mappings)
        logger.info(f"Merged index has {len(merged)} keys")

        writers = [
            WriterWorker(
                self.config.sources_index_path,
                lambda fh: encode_sources(fh, merged),
                self.config.scratch_dir,
            )
        ]
        for family in ("bin", "src", "both"):
            writers.append(
                WriterWorker(
                    self.config.completion_path(family),
                    completion_writer(keys, family),
                    self.config.scratch_dir,
                )
            )
        run_all(writers)
        return merged

    def generate_uris(self) -> URIs:
        self.config.index_dir.mkdir(parents=True, exist_ok=True)
        targets = self.config.targets("Sources")
        logger.info(f"Reading {len(targets)} Sources lists")
        mappings = run_all(
            [SourcesWorker(target, priority) for target, priority in targets]
        )
        merged, _ = merge(mappings)
        logger.info(f"Merged URI index has {len(merged)} source packages")
        run_all(
            [
                WriterWorker(
                    self.config.uris_index_path,
                    lambda fh: encode_uris(fh, merged),
                    self.config.scratch_dir,
                )
            ]
        )
        return merged
