import logging
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.table import Table

from pkindex.config import Config
from pkindex.constants import DEFAULT_CONFIG_PATH
from pkindex.exceptions import PkindexError
from pkindex.generator import Generator
from pkindex.index import IndexReader, lookup
from pkindex.resolve import complete as complete_names
from pkindex.resolve import lookup_dsc, resolve as resolve_name, wait_for_index
from pkindex.types import SourceRef


class ColoredFormatter(logging.Formatter):
    """
    Custom formatter with colors for different log levels
    """

    COLORS = {
        logging.DEBUG: "\033[90m",  # Grey
        logging.INFO: "\033[37m",  # White
        logging.WARNING: "\033[33m",  # Yellow
        logging.ERROR: "\033[31m",  # Red
        logging.CRITICAL: "\033[31m",  # Red
    }
    RESET = "\033[0m"

    ABBREVIATIONS = {
        "DEBUG": "DBG",
        "INFO": "INF",
        "WARNING": "WRN",
        "ERROR": "ERR",
        "CRITICAL": "CRT",
    }

    def format(self, record):
        color = self.COLORS.get(record.levelno, self.RESET)
        levelname_abbr = self.ABBREVIATIONS.get(record.levelname, record.levelname[:3])
        record.levelname = f"{color}{levelname_abbr:>3}{self.RESET}"
        record.msg = f"{color}{record.msg}{self.RESET}"
        return super().format(record)


def family_of(src: bool, bin: bool) -> str:
    if src and bin:
        raise click.UsageError("At most one of --src or --bin may be given")
    if src:
        return "src"
    if bin:
        return "bin"
    return "both"


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    default="WARNING",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
)
@click.pass_context
def main(ctx, log_level: str, config_path: Path):
    # Configure logging with custom colored formatter
    handler = logging.StreamHandler()
    handler.setFormatter(
        ColoredFormatter("%(asctime)s | %(levelname)s | %(message)s", datefmt="%H:%M")
    )
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=[handler],
    )
    # Setup config object
    try:
        ctx.obj = Config(config_path)
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid config file {config_path}: {e}")


@main.command()
@click.pass_obj
def generate(config: Config):
    """
    Regenerate all index files from the configured package lists
    """
    try:
        Generator(config).run()
    except PkindexError as e:
        raise click.ClickException(str(e))


@main.command("lookup")
@click.argument("index", type=click.Path(path_type=Path))
@click.argument("key")
def lookup_command(index: Path, key: str):
    """
    Print the raw value stored for KEY in an index file
    """
    try:
        value = lookup(index, key)
    except PkindexError as e:
        raise click.ClickException(str(e))
    if value is None:
        raise click.ClickException(f"{key!r} not found in {index}")
    click.echo(value)


@main.command()
@click.argument("name")
@click.option("--src", is_flag=True, help="Only consider source packages")
@click.option("--bin", "bin_", is_flag=True, help="Only consider binary packages")
@click.option("--version", help="Use this source version instead of the indexed one")
@click.option(
    "--wait",
    type=float,
    default=0,
    help="Seconds to wait for the index if it is still being generated",
)
@click.pass_obj
def resolve(config: Config, name: str, src: bool, bin_: bool, version: str, wait: float):
    """
    Print the source package and version NAME belongs to
    """
    family = family_of(src, bin_)
    try:
        if wait:
            wait_for_index(config.sources_index_path, timeout=wait)
        source = resolve_name(config, name, family=family, version=version)
    except PkindexError as e:
        raise click.ClickException(str(e))
    click.echo(str(source))


@main.command()
@click.argument("package")
@click.argument("version")
@click.pass_obj
def uri(config: Config, package: str, version: str):
    """
    Print the .dsc URL and total size of a source package version
    """
    try:
        dsc = lookup_dsc(config, SourceRef(package=package, version=version))
    except PkindexError as e:
        raise click.ClickException(str(e))
    click.echo(str(dsc))


@main.command()
@click.argument("prefix", default="")
@click.option("--src", is_flag=True, help="Complete source package names")
@click.option("--bin", "bin_", is_flag=True, help="Complete binary package names")
@click.pass_obj
def complete(config: Config, prefix: str, src: bool, bin_: bool):
    """
    Print all package names starting with PREFIX
    """
    try:
        names = complete_names(config, prefix, family=family_of(src, bin_))
    except PkindexError as e:
        raise click.ClickException(str(e))
    for name in names:
        click.echo(name)


@main.group()
def debug():
    """
    Debug commands for inspecting index files
    """
    pass


@debug.command("blocks")
@click.argument("index", type=click.Path(path_type=Path))
@click.option("--all", "show_all", is_flag=True, help="Include empty blocks")
def debug_blocks(index: Path, show_all: bool):
    """
    List the same-length blocks of an index file
    """
    console = Console()
    table = Table()

    table.add_column("Key length", justify="right", style="cyan")
    table.add_column("Offset", justify="right", style="green")
    table.add_column("Size", justify="right", style="magenta")
    table.add_column("Keys", justify="right", style="yellow")

    try:
        with IndexReader(index) as reader:
            for key_length, location in reader.blocks():
                if not location.length and not show_all:
                    continue
                table.add_row(
                    str(key_length),
                    str(location.offset),
                    _format_size(location.length),
                    str(location.length // (key_length + 4)),
                )
            console.print(table)
            console.print(
                f"{_format_size(reader.size)} total, block index at "
                f"{reader.table_offset}, longest key {reader.max_key_length} bytes"
            )
    except PkindexError as e:
        raise click.ClickException(str(e))


def _format_size(size: int) -> str:
    """
    Formats a byte count in human-readable units
    """
    if size < 1024:
        return f"{size} B"
    scaled = size / 1024
    for unit in ["KiB", "MiB", "GiB"]:
        if scaled < 1024:
            return f"{scaled:.1f} {unit}"
        scaled /= 1024
    return f"{scaled:.1f} TiB"


if __name__ == "__main__":
    main()
