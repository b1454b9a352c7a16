"""Command-line interface for thriftgen code generation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from thriftgen.generator import load, python
from thriftgen.generator.parser import ValidationError
from thriftgen.generator.resolver import Resolver, TypeMisuseError, resolve_namespace
from thriftgen.generator.types import (
    ConstDefinition,
    Document,
    EnumDefinition,
    ServiceDefinition,
    StructDefinition,
    TypedefDefinition,
)

logger = logging.getLogger("thriftgen")


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log generator progress")
def cli(verbose: bool) -> None:
    """Thrift IDL compiler for Python."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        )


def _load(input_file: str) -> Document:
    try:
        return load(input_file)
    except (OSError, ValidationError, TypeMisuseError) as e:
        print(f"{input_file}: {e}")
        sys.exit(1)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input thrift file")
@click.option("--output", "-o", "output_file", default=None, help="Output file")
@click.option(
    "--out-dir",
    "-d",
    "out_dir",
    default=".",
    help="Output directory, used with the namespace when --output is omitted",
)
@click.option(
    "--runtime-import",
    "runtime_import",
    is_flag=False,
    flag_value="thriftgen.proto",
    default=None,
    help="Import path for runtime. No value=thriftgen.proto, omit=thriftgen_runtime",
)
def gen(
    input_file: str, output_file: str | None, out_dir: str, runtime_import: str | None
) -> None:
    """Generate Python bindings from a thrift file."""
    document = _load(input_file)

    # Default to "thriftgen_runtime" (relative import) if not specified
    import_path = runtime_import if runtime_import is not None else "thriftgen_runtime"
    try:
        generated_file = python.render(document, runtime_import=import_path)
    except (ValidationError, TypeMisuseError) as e:
        print(f"{input_file}: {e}")
        sys.exit(1)

    if output_file is None:
        namespace = resolve_namespace(out_dir, document, Path(input_file).stem)
        path = namespace.path
        logger.debug("Using namespace %r (%s)", namespace.name, namespace.scope or "none")
    else:
        path = Path(output_file)

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(generated_file, encoding="utf-8")
    logger.info("Wrote %s", path)


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="thriftgen_runtime", help="Runtime folder name")
def runtime(output_path: str, name: str) -> None:
    """Generate runtime support code."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in python.runtime().items():
        (runtime_dir / filename).write_text(content)
    print(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input thrift file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display the definitions in a thrift file."""
    document = _load(input_file)

    if output_json:
        _output_json(document)
    else:
        _output_plain(document)


def _output_json(document: Document) -> None:
    """Output the merged document as JSON."""
    print(json.dumps(document.to_dict(encode_json=True), indent=2))


def _output_plain(document: Document) -> None:
    """Output a summary using rich text formatting."""
    console = Console()
    resolver = Resolver(document)

    if document.namespaces:
        console.print("[bold cyan]Namespaces[/bold cyan]")
        ns_table = Table(show_header=False, box=None, padding=(0, 2, 0, 2))
        ns_table.add_column("Scope", style="dim")
        ns_table.add_column("Name", style="white")
        for ns in document.namespaces:
            ns_table.add_row(ns.scope, ns.name)
        console.print(ns_table)
        console.print()

    console.print("[bold cyan]Types[/bold cyan]")
    type_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    type_table.add_column("Name", style="white")
    type_table.add_column("Kind", style="dim")
    type_table.add_column("Fields", style="yellow", justify="right")

    for definition in document.definitions:
        if isinstance(definition, StructDefinition):
            type_table.add_row(definition.name, definition.kind.value, str(len(definition.fields)))
        elif isinstance(definition, EnumDefinition):
            type_table.add_row(definition.name, "enum", str(len(definition.members)))
        elif isinstance(definition, TypedefDefinition):
            type_table.add_row(definition.name, "typedef", "")
        elif isinstance(definition, ConstDefinition):
            type_table.add_row(definition.name, "const", "")

    console.print(type_table)

    services = document.of_type(ServiceDefinition)
    if services:
        console.print()
        console.print("[bold cyan]Services[/bold cyan]")
        service_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        service_table.add_column("Method", style="white")
        service_table.add_column("Kind", style="dim")
        service_table.add_column("Throws", style="green")
        for service in services:
            for function in resolver.service_functions(service):
                service_table.add_row(
                    f"{service.name}.{function.name}",
                    "oneway" if function.oneway else "call",
                    ", ".join(f.name for f in function.throws),
                )
        console.print(service_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
