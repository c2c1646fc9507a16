"""Configuration of a document target.

Configuration errors are raised before any graph traversal starts, so a
misconfigured target never produces a partial document.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from spdx_tools.spdx.model import Actor
from spdx_tools.spdx.parser.actor_parser import ActorParser
from spdx_tools.spdx.parser.error import SPDXParsingError

from .exceptions import ConfigurationError
from .logging_config import logger
from .models import ScmInfo

DEFAULT_SCM_TOOL = "git"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def parse_actor(value: str, field_name: str) -> Actor:
    """
    Parse an SPDX actor string such as ``Organization: Example``.

    Raises:
        ConfigurationError: If the value is not ``Person:``, ``Organization:`` or ``Tool:`` syntax
    """
    try:
        return ActorParser.parse_actor(value)
    except SPDXParsingError as e:
        raise ConfigurationError(
            f"Invalid {field_name} '{value}': expected 'Person: name (email)', 'Organization: name' or 'Tool: name'"
        ) from e


@dataclass(frozen=True)
class RootPackageInfo:
    """Synthetic top-level package the document is described as depending on."""

    name: str
    version: str
    supplier: str


@dataclass(frozen=True)
class DocumentInfo:
    """Document-level metadata of one target."""

    name: str
    namespace: str
    creator: Optional[str] = None
    package_supplier: Optional[str] = None
    root_package: Optional[RootPackageInfo] = None

    @classmethod
    def from_options(
        cls,
        name: Optional[str],
        namespace: Optional[str],
        creator: Optional[str] = None,
        package_supplier: Optional[str] = None,
        root_package_name: Optional[str] = None,
        root_package_version: Optional[str] = None,
        root_package_supplier: Optional[str] = None,
    ) -> "DocumentInfo":
        """
        Build and validate document info.

        The root package is all-or-nothing: setting only some of its name,
        version and supplier is a configuration error.

        Raises:
            ConfigurationError: If a required value is missing or inconsistent
        """
        if not name:
            raise ConfigurationError("Document name is not defined")
        if not namespace:
            raise ConfigurationError("Document namespace is not defined")

        if creator:
            parse_actor(creator, "document creator")
        if package_supplier:
            parse_actor(package_supplier, "package supplier")

        root_values = (root_package_name, root_package_version, root_package_supplier)
        root_package = None
        if all(root_values):
            parse_actor(root_package_supplier, "root package supplier")
            root_package = RootPackageInfo(
                name=root_package_name,
                version=root_package_version,
                supplier=root_package_supplier,
            )
        elif any(root_values):
            raise ConfigurationError(
                f"Must configure all properties of root package (name, version, supplier) "
                f"if setting a root package on document '{name}'"
            )

        return cls(
            name=name,
            namespace=namespace,
            creator=creator or None,
            package_supplier=package_supplier or None,
            root_package=root_package,
        )


def build_scm_info(tool: Optional[str], uri: Optional[str], revision: Optional[str]) -> Optional[ScmInfo]:
    """
    Build SCM info from optional values.

    Raises:
        ConfigurationError: If only one of uri and revision is set
    """
    if bool(uri) != bool(revision):
        raise ConfigurationError("SCM uri and revision must be set together")
    if not uri:
        return None
    return ScmInfo(tool=tool or DEFAULT_SCM_TOOL, uri=uri, revision=revision)


@dataclass
class Config:
    """Configuration of one ``graph-sbom`` run."""

    graph_file: Path
    output_file: Path
    document_info: DocumentInfo
    scm_info: Optional[ScmInfo] = None
    license_list_file: Optional[Path] = None
    ignore_non_maven_dependencies: bool = False
    log_level: str = "INFO"

    def validate(self) -> None:
        """
        Validate configuration settings.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.graph_file.is_file():
            raise ConfigurationError(f"Graph export file not found: {self.graph_file}")
        if self.license_list_file is not None and not self.license_list_file.is_file():
            raise ConfigurationError(f"License list file not found: {self.license_list_file}")
        if self.output_file.exists() and self.output_file.is_dir():
            raise ConfigurationError(f"Output file is a directory: {self.output_file}")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level '{self.log_level}', expected one of {', '.join(LOG_LEVELS)}")
        if self.document_info.package_supplier is None:
            logger.warning("No package supplier configured; workspace packages will use NOASSERTION")
