"""Data models for parsed upstream manifests (effective POMs)."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class LicenseInfo:
    """A license declared in a manifest."""

    name: Optional[str]
    url: Optional[str]


@dataclass(frozen=True)
class DeveloperInfo:
    """A developer entry. Absent fields are None, never blank strings."""

    name: Optional[str] = None
    email: Optional[str] = None
    organization: Optional[str] = None


@dataclass(frozen=True)
class OrganizationInfo:
    """The organization block of a manifest."""

    name: Optional[str] = None
    url: str = ""


@dataclass(frozen=True)
class ManifestInfo:
    """Metadata extracted from a component's upstream manifest.

    Attributes:
        licenses: Declared licenses, in manifest order
        homepage: Project URL, or an empty string when absent or invalid
        organization: Organization block, if any
        developers: Developer entries, in manifest order
        packaging: Manifest packaging type (jar, aar, pom, bom, ...)
    """

    licenses: tuple[LicenseInfo, ...] = ()
    homepage: str = ""
    organization: Optional[OrganizationInfo] = None
    developers: tuple[DeveloperInfo, ...] = ()
    packaging: str = "jar"
