import os
from pathlib import Path
from typing import Tuple

import click

from typelens.logger import logger, setup_logging
from typelens.oracle.base import OracleError
from typelens.oracle.typescript import TypeScriptOracle
from typelens.resolver import TypeResolver
from typelens.settings import OracleSettings, ResolverSettings

_FILE = click.Path(
    exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path
)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
def main() -> None:
    """Extract type documentation trees from TypeScript sources."""


@main.command()
@click.argument("source", type=_FILE)
@click.argument("name", type=str)
@click.option(
    "--extra",
    "extras",
    type=_FILE,
    multiple=True,
    help="Additional source file the declaration depends on (repeatable).",
)
@click.option(
    "--expand-node-modules/--no-expand-node-modules",
    default=False,
    help="Expand types declared under node_modules instead of emitting references.",
)
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug logging of resolution decisions.",
)
def resolve(
    source: Path,
    name: str,
    extras: Tuple[Path, ...],
    expand_node_modules: bool,
    debug: bool,
) -> None:
    """
    Resolve declaration NAME from SOURCE and print its documentation tree as JSON.
    """
    setup_logging(debug)

    files = [source.resolve(), *(p.resolve() for p in extras)]
    root = Path(os.path.commonpath([str(p.parent) for p in files]))

    oracle = TypeScriptOracle(OracleSettings(root_path=str(root)))
    for path in files:
        oracle.add_file(path)

    resolver = TypeResolver(
        oracle, ResolverSettings(expand_node_modules=expand_node_modules)
    )
    relative = os.path.relpath(files[0], root)
    logger.debug("Resolving declaration", path=relative, name=name)
    try:
        node = resolver.resolve_declaration(relative, name)
    except OracleError as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo("null" if node is None else node.to_json())


if __name__ == "__main__":
    main()
