"""Configuration validation and helper utilities for the tree pipeline."""

from pathlib import Path
from rich.console import Console

from phyloatlas.core.distances import DistanceModel, IMPLEMENTED_MODELS
from phyloatlas.cluster.linkage import LinkageMethod, IMPLEMENTED_METHODS

console = Console()


def validate_config(config):
    """Validate TreeConfig object.

    Parameters:
        config: TreeConfig instance

    Raises:
        ValueError: If configuration is invalid
    """
    errors = []

    # Check required fields
    if not config.alignment:
        errors.append("alignment is required")
    elif not Path(config.alignment).exists():
        errors.append(f"Input alignment file not found: {config.alignment}")

    if not config.outdir:
        errors.append("outdir is required")

    # Check methods
    valid_models = [m.value for m in IMPLEMENTED_MODELS]
    if config.distance_model not in [m.value for m in DistanceModel]:
        errors.append(f"distance_model must be one of: {valid_models}")
    elif config.distance_model not in valid_models:
        errors.append(f"distance_model '{config.distance_model}' is not implemented; use one of: {valid_models}")

    valid_methods = [m.value for m in IMPLEMENTED_METHODS]
    if config.linkage_method not in [m.value for m in LinkageMethod]:
        errors.append(f"linkage_method must be one of: {valid_methods}")
    elif config.linkage_method not in valid_methods:
        errors.append(f"linkage_method '{config.linkage_method}' is not implemented; use one of: {valid_methods}")

    # Check numeric parameters
    if config.gamma_shape <= 0:
        errors.append("gamma_shape must be > 0")

    if errors:
        console.print("[bold red]Configuration Errors:[/bold red]")
        for error in errors:
            console.print(f"  ✗ {error}")
        raise ValueError(f"Invalid configuration: {len(errors)} error(s)")

    console.print("[green]✓[/green] Configuration validated")


def print_config_summary(config):
    """Print a summary of the configuration."""
    console.print("\n[bold]Configuration Summary:[/bold]")
    console.print(f"  Input: {config.alignment} ({config.alignment_format})")
    console.print(f"  Output: {config.outdir}")
    console.print("\n  [bold]Distances:[/bold]")
    console.print(f"    model: {config.distance_model}")
    if config.distance_model == DistanceModel.GAMMA.value:
        console.print(f"    gamma shape: {config.gamma_shape}")
    console.print(f"    gaps: {'pairwise deletion' if config.pairwise_deletion else 'strict'}")
    console.print("\n  [bold]Tree:[/bold]")
    console.print(f"    linkage: {config.linkage_method}")
    console.print(f"    pretty order: {config.pretty_order}")
    console.print(f"    plot: {config.plot}")


__all__ = [
    'validate_config',
    'print_config_summary',
]
