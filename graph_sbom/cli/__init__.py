"""CLI module for graph-sbom.

It supports both CLI arguments and environment variables for configuration.
"""

from .main import (
    build_config,
    cli,
    main,
    run_pipeline,
)

__all__ = [
    "cli",
    "main",
    "build_config",
    "run_pipeline",
]
