import asyncio
import shlex
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .core.context import capture_context
from .core.errors import SetupError
from .core.models import RunReport
from .core.orchestrator import ActivityOrchestrator
from .utils.config import (
    VALID_LOG_FORMATS,
    VALID_LOG_LEVELS,
    ConfigurationError,
    build_settings,
    create_example_config,
    load_config,
)
from .utils.logging import setup_logging

app = typer.Typer(
    name="red-activity",
    help="Generate correlated process, file and network activity for detection testing",
)
console = Console()


@app.command()
def run(
        config: str = typer.Option(
            None, help="Configuration file path (auto-detected if not provided)"
        ),
        directory: str = typer.Option(None, help="Directory to create the file in"),
        extension: str = typer.Option(None, help="Extension of the created file"),
        process: str = typer.Option(None, help="Executable to run"),
        args: str = typer.Option(
            None, help="Arguments for the executable, tokenized like a shell"
        ),
        timeout: float = typer.Option(None, help="Deadline for the whole run in seconds"),
        log_format: str = typer.Option(None, help="Log format: json or console"),
        log_level: str = typer.Option(None, help="Log level"),
) -> None:
    """Run the process, file and network activity once"""
    try:
        config_data = load_config(config)
        if log_format:
            if log_format not in VALID_LOG_FORMATS:
                raise ConfigurationError(
                    f"Invalid --log-format: {log_format} (json or console)"
                )
            config_data["logging"]["format"] = log_format
        if log_level:
            if log_level.upper() not in VALID_LOG_LEVELS:
                raise ConfigurationError(f"Invalid --log-level: {log_level}")
            config_data["logging"]["level"] = log_level.upper()
        setup_logging(config_data)

        settings = build_settings(
            config_data,
            directory=directory,
            extension=extension,
            process_path=process,
            process_args=shlex.split(args) if args is not None else None,
            timeout_seconds=timeout,
        )
    except ConfigurationError as e:
        console.print(f"❌ [bold red]Configuration Error:[/bold red] {e}")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"❌ [bold red]Invalid arguments:[/bold red] {e}")
        raise typer.Exit(1)

    orchestrator = ActivityOrchestrator(settings)
    try:
        report = asyncio.run(orchestrator.run())
    except KeyboardInterrupt:
        console.print("\n🛑 [yellow]Run interrupted by user[/yellow]")
        raise typer.Exit(130)

    _show_report(report)
    if not report.success:
        raise typer.Exit(1)


def _show_report(report: RunReport) -> None:
    if report.success:
        console.print(f"✅ [bold green]{report.summary()}[/bold green]")
    else:
        console.print(f"❌ [bold red]{report.summary()}[/bold red]")

    table = Table(title="Activity Run")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("State", report.state.value)
    if report.process_exit_code is not None:
        table.add_row("Process exit code", str(report.process_exit_code))
    if report.file_path:
        table.add_row("File path", report.file_path)
    if report.transmit:
        table.add_row("Source address", report.transmit.source_address)
        table.add_row("Destination address", report.transmit.destination_address)
        table.add_row("Bytes sent", str(report.transmit.bytes_sent))
    if report.error_type:
        table.add_row("Error type", report.error_type)
    table.add_row("Elapsed", f"{report.elapsed_seconds:.3f}s")
    console.print(table)


@app.command()
def context() -> None:
    """Show the correlation fields attached to every event"""
    try:
        captured = capture_context()
    except SetupError as e:
        console.print(f"❌ [bold red]Setup Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title="Correlation Context")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in captured.log_fields().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def validate_config(
        config: str = typer.Option(
            None, help="Configuration file path (auto-detected if not provided)"
        ),
) -> None:
    """Validate configuration file syntax and structure"""
    console.print("📋 [bold blue]Validating Configuration[/bold blue]")

    try:
        config_data = load_config(config)
        settings = build_settings(config_data)
    except ConfigurationError as e:
        console.print("❌ [bold red]Configuration Validation Failed:[/bold red]")
        console.print(f"   {e}")
        raise typer.Exit(1)

    console.print("✅ Configuration is valid")
    console.print("\n📋 [bold blue]Configuration Summary:[/bold blue]")
    console.print(f"  • Directory: {settings.directory}")
    console.print(f"  • Extension: {settings.extension or '(none)'}")
    console.print(f"  • Process: {settings.process_path} {shlex.join(settings.process_args)}")
    console.print(f"  • Timeout: {settings.timeout_seconds}s")
    console.print(f"  • Log format: {config_data['logging']['format']}")


@app.command()
def create_config(
        output: str = typer.Option("config.yaml", help="Output configuration file path"),
        force: bool = typer.Option(False, help="Overwrite existing file"),
) -> None:
    """Create an example configuration file"""
    output_path = Path(output)

    if output_path.exists() and not force:
        console.print(f"❌ File already exists: {output_path}")
        console.print("Use --force to overwrite")
        raise typer.Exit(1)

    if create_example_config(str(output_path)):
        console.print(f"✅ Configuration file created: {output_path}")
    else:
        console.print(f"❌ Failed to create configuration file: {output_path}")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information"""
    console.print(f"red-activity {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
