import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from encapenum._compiler import CompiledUnit, compile_file
from encapenum._errors import EncapEnumError
from encapenum._io import ExternalsFileError, ExternalSymbols, UnitDescription, dump_description, load_externals

from .config import ConfigError, EncapEnumConfig, get_config

app = typer.Typer()

logger = logging.getLogger(__name__)
# Console for stderr (info/errors); results go to stdout through typer.echo
err_console = Console(stderr=True)


@app.callback()
def callback(
    *,
    verbose: bool = typer.Option(default=False, help="Enable verbose output"),
) -> None:
    """encapenum CLI."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Configure rich logging handler to output to stderr
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=err_console,
                show_time=False,
                show_path=verbose,
                rich_tracebacks=True,
            ),
        ],
        force=True,
    )


def _fail(message: str) -> typer.Exit:
    err_console.print(f"[red]✗ {escape(message)}[/red]", soft_wrap=True)
    return typer.Exit(code=1)


def _load_config() -> EncapEnumConfig:
    try:
        return get_config()
    except ConfigError as e:
        raise _fail(str(e)) from e


def _externals(config: EncapEnumConfig, externals_file: Path | None) -> ExternalSymbols:
    """Combine the externals file (option or config) with inline config constants."""
    path = externals_file or config.externals_file
    symbols = ExternalSymbols()
    if path is not None:
        err_console.print(f"[cyan]Loading externals from:[/cyan] {path}")
        try:
            symbols = load_externals(path)
        except ExternalsFileError as e:
            raise _fail(str(e)) from e
    return symbols.merged(config.externals)


def _compile(
    source: Path,
    config: EncapEnumConfig,
    externals_file: Path | None = None,
    *,
    strict: bool = False,
) -> CompiledUnit:
    symbols = _externals(config, externals_file)
    err_console.print(f"[cyan]Compiling:[/cyan] {source}")
    try:
        return compile_file(
            source,
            externals=symbols.constants,
            external_enums=symbols.enums,
            strict_externals=strict or config.strict_externals,
            preamble=config.preamble,
        )
    except OSError as e:
        raise _fail(f"Cannot read {source}: {e.strerror or e}") from e
    except EncapEnumError as e:
        raise _fail(f"{source}: {e}") from e


def _report_symbols(unit: CompiledUnit) -> None:
    if unit.symbols:
        names = ", ".join(sorted(unit.symbols))
        err_console.print(f"[yellow]⚠ Values resolved at import time from:[/yellow] {escape(names)}")


@app.command()
def generate(
    source: Annotated[
        Path,
        typer.Argument(help="Path to the declaration file"),
    ],
    *,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to the generated Python module (prints to stdout if omitted)"),
    ] = None,
    externals_file: Annotated[
        Path | None,
        typer.Option("--externals", help="TOML file with external constants and enum tables"),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Fail on external constants without a value"),
    ] = False,
) -> None:
    """Generate a Python module from a declaration file."""
    config = _load_config()
    unit = _compile(source, config, externals_file, strict=strict)
    _report_symbols(unit)

    if output is None:
        typer.echo(unit.source, nl=False)
        return

    err_console.print(f"[cyan]Writing module to:[/cyan] {output}")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(unit.source, encoding="utf-8")
    err_console.print(f"[green]✓ Generated {len(unit.types)} type(s)[/green]")


@app.command()
def check(
    source: Annotated[
        Path,
        typer.Argument(help="Path to the declaration file"),
    ],
    *,
    externals_file: Annotated[
        Path | None,
        typer.Option("--externals", help="TOML file with external constants and enum tables"),
    ] = None,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Fail on external constants without a value"),
    ] = False,
) -> None:
    """Check a declaration file and show the types it defines."""
    config = _load_config()
    unit = _compile(source, config, externals_file, strict=strict)

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Type", style="bold")
    table.add_column("Underlying", style="yellow")
    table.add_column("Visibility")
    table.add_column("Variants")

    for generated in unit.types:
        variants = ", ".join(
            f"{name}={'?' if value is None else value}"
            for name, value in zip(generated.variant_names, generated.variant_values, strict=True)
        )
        table.add_row(
            escape(generated.qualified_name),
            generated.underlying_type,
            f"{generated.type_visibility} / {generated.field_visibility}",
            escape(variants),
        )

    err_console.print(
        Panel(
            table,
            title=f"[bold]{escape(source.name)}[/bold]",
            subtitle=f"[dim]{len(unit.types)} types[/dim]",
            border_style="cyan",
        ),
    )
    _report_symbols(unit)
    err_console.print("[green]✓ Declarations are valid[/green]")


@app.command()
def describe(
    source: Annotated[
        Path,
        typer.Argument(help="Path to the declaration file"),
    ],
    *,
    output: Annotated[
        Path | None,
        typer.Option("-o", "--output", help="Path to output file (.json or .toml; prints JSON if omitted)"),
    ] = None,
    externals_file: Annotated[
        Path | None,
        typer.Option("--externals", help="TOML file with external constants and enum tables"),
    ] = None,
    indent: Annotated[
        int,
        typer.Option("--indent", help="JSON indentation spaces"),
    ] = 2,
) -> None:
    """Describe the generated types as JSON or TOML."""
    config = _load_config()
    unit = _compile(source, config, externals_file)
    description = UnitDescription.from_unit(unit, source=source.name)

    if output is None:
        typer.echo(description.model_dump_json(indent=indent))
        return

    err_console.print(f"[cyan]Writing description to:[/cyan] {output}")
    dump_description(description, output, indent=indent)
    err_console.print("[green]✓ Description written[/green]")


@app.command()
def build() -> None:
    """Generate modules for every source listed in [tool.encapenum]."""
    config = _load_config()
    if not config.sources:
        raise _fail("No sources configured in [tool.encapenum]")
    output_dir = config.output_dir or config.project_root or Path.cwd()

    # Compile everything before writing so a failure leaves no partial output
    units = [(source, _compile(source, config)) for source in config.sources]

    for source, unit in units:
        target = output_dir / f"{source.stem}.py"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(unit.source, encoding="utf-8")
        logger.debug(f"Wrote {target}")
        err_console.print(f"[green]✓[/green] {source.name} -> {target} ({len(unit.types)} types)")

    err_console.print(f"[green]✓ Built {len(units)} module(s)[/green]")


def main() -> None:
    app()
