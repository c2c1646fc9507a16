"""Command-line entry point: compile a graph export into an SPDX document.

Every option can also be set through a ``GRAPH_SBOM_*`` environment variable;
command-line arguments take precedence.
"""

import sys
from pathlib import Path
from typing import Optional

import click
from spdx_tools.spdx.model import Document

from .. import __version__
from .._licenses import KnownLicenses
from ..compiler import SbomCompiler
from ..config import LOG_LEVELS, Config, DocumentInfo, build_scm_info
from ..console import (
    gha_warning,
    print_document_summary,
    print_final_failure,
    print_final_success,
    print_step_end,
    print_step_header,
)
from ..exceptions import GraphSbomError
from ..graph_loader import load_graph_export
from ..logging_config import logger, setup_logging
from ..serialization import write_spdx_document
from ..validation import validate_document

ENV_PREFIX = "GRAPH_SBOM_"
DEFAULT_OUTPUT_FILE = "sbom.spdx.json"


def build_config(
    graph_file: str,
    output_file: str = DEFAULT_OUTPUT_FILE,
    document_name: Optional[str] = None,
    document_namespace: Optional[str] = None,
    creator: Optional[str] = None,
    package_supplier: Optional[str] = None,
    root_package_name: Optional[str] = None,
    root_package_version: Optional[str] = None,
    root_package_supplier: Optional[str] = None,
    scm_tool: Optional[str] = None,
    scm_uri: Optional[str] = None,
    scm_revision: Optional[str] = None,
    license_list_file: Optional[str] = None,
    ignore_non_maven_dependencies: bool = False,
    log_level: str = "INFO",
) -> Config:
    """
    Build and validate a Config from option values.

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    document_info = DocumentInfo.from_options(
        name=document_name,
        namespace=document_namespace,
        creator=creator,
        package_supplier=package_supplier,
        root_package_name=root_package_name,
        root_package_version=root_package_version,
        root_package_supplier=root_package_supplier,
    )
    config = Config(
        graph_file=Path(graph_file),
        output_file=Path(output_file),
        document_info=document_info,
        scm_info=build_scm_info(scm_tool, scm_uri, scm_revision),
        license_list_file=Path(license_list_file) if license_list_file else None,
        ignore_non_maven_dependencies=ignore_non_maven_dependencies,
        log_level=log_level.upper(),
    )
    config.validate()
    return config


def load_known_licenses(config: Config) -> KnownLicenses:
    """Load the known-license table from the configured file, or from spdx.org."""
    if config.license_list_file is not None:
        logger.info(f"Loading SPDX license list from {config.license_list_file}")
        return KnownLicenses.from_file(config.license_list_file)
    return KnownLicenses.from_remote()


def run_pipeline(config: Config, known_licenses: Optional[KnownLicenses] = None) -> Document:
    """
    Load the graph, compile, validate and write the document.

    Args:
        config: Validated configuration
        known_licenses: Preloaded license table (loaded per config when omitted)

    Returns:
        The compiled document

    Raises:
        GraphSbomError: On any fatal configuration, input or compilation error
        OSError: If the output file cannot be written
    """
    print_step_header(1, "Load Dependency Graph")
    export = load_graph_export(config.graph_file)
    logger.info(f"Loaded {export.component_count} component(s) reachable from {len(export.roots)} root(s)")
    print_step_end(1)

    print_step_header(2, "Load License List")
    if known_licenses is None:
        known_licenses = load_known_licenses(config)
    logger.info(f"Known-license table holds {len(known_licenses)} url(s)")
    print_step_end(2)

    print_step_header(3, "Compile SPDX Document")
    compiler = SbomCompiler(
        document_info=config.document_info,
        known_licenses=known_licenses,
        projects=export.projects,
        resolved_artifacts=export.artifacts,
        repositories=export.repositories,
        manifests=export.manifests,
        scm_info=config.scm_info,
        ignore_non_maven_dependencies=config.ignore_non_maven_dependencies,
        project_path=export.project_path,
    )
    document = compiler.compile(export.roots)
    print_step_end(3)

    print_step_header(4, "Validate and Write")
    result = validate_document(document)
    if not result.valid:
        gha_warning(
            f"{len(result.messages)} SPDX validation message(s), writing document anyway",
            title="SPDX Validation",
        )
    write_spdx_document(document, config.output_file)
    print_step_end(4)

    print_document_summary(document, result.messages)
    return document


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="graph-sbom")
@click.option(
    "--graph-file",
    envvar=f"{ENV_PREFIX}GRAPH_FILE",
    required=True,
    help="Resolved dependency graph export (JSON).",
)
@click.option(
    "--output-file",
    envvar=f"{ENV_PREFIX}OUTPUT_FILE",
    default=DEFAULT_OUTPUT_FILE,
    show_default=True,
    help="Where to write the SPDX document; the extension selects the format.",
)
@click.option("--document-name", envvar=f"{ENV_PREFIX}DOCUMENT_NAME", help="SPDX document name.")
@click.option("--document-namespace", envvar=f"{ENV_PREFIX}DOCUMENT_NAMESPACE", help="SPDX document namespace URI.")
@click.option("--creator", envvar=f"{ENV_PREFIX}CREATOR", help="Additional creator, e.g. 'Organization: Example'.")
@click.option(
    "--package-supplier",
    envvar=f"{ENV_PREFIX}PACKAGE_SUPPLIER",
    help="Supplier of workspace project packages, e.g. 'Organization: Example'.",
)
@click.option("--root-package-name", envvar=f"{ENV_PREFIX}ROOT_PACKAGE_NAME", help="Name of the top-level package.")
@click.option(
    "--root-package-version", envvar=f"{ENV_PREFIX}ROOT_PACKAGE_VERSION", help="Version of the top-level package."
)
@click.option(
    "--root-package-supplier", envvar=f"{ENV_PREFIX}ROOT_PACKAGE_SUPPLIER", help="Supplier of the top-level package."
)
@click.option("--scm-tool", envvar=f"{ENV_PREFIX}SCM_TOOL", help="Version control tool (default: git).")
@click.option("--scm-uri", envvar=f"{ENV_PREFIX}SCM_URI", help="Repository URI of the workspace.")
@click.option("--scm-revision", envvar=f"{ENV_PREFIX}SCM_REVISION", help="Revision the workspace was built from.")
@click.option(
    "--license-list-file",
    envvar=f"{ENV_PREFIX}LICENSE_LIST_FILE",
    help="Local copy of the SPDX licenses.json (fetched from spdx.org when omitted).",
)
@click.option(
    "--ignore-non-maven-dependencies/--no-ignore-non-maven-dependencies",
    envvar=f"{ENV_PREFIX}IGNORE_NON_MAVEN_DEPENDENCIES",
    default=False,
    help="Skip dependencies without a manifest instead of failing.",
)
@click.option(
    "--log-level",
    envvar=f"{ENV_PREFIX}LOG_LEVEL",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
)
@click.option(
    "--structured-logs/--no-structured-logs",
    envvar=f"{ENV_PREFIX}STRUCTURED_LOGS",
    default=False,
    help="Emit JSON log lines.",
)
def cli(structured_logs: bool, **options) -> None:
    """Compile a resolved dependency graph into an SPDX 2.3 document."""
    setup_logging(options["log_level"], structured=structured_logs)

    try:
        config = build_config(**options)
        run_pipeline(config)
    except GraphSbomError as e:
        logger.error(str(e))
        print_final_failure(str(e))
        sys.exit(1)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to write SPDX document: {e}")
        print_final_failure(str(e))
        sys.exit(1)

    print_final_success(str(config.output_file))


def main() -> None:
    """Console script entry point."""
    cli()
