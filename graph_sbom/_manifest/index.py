"""Manifest index: coordinate string -> parsed upstream manifest.

The index is built once per run from manifest records that an external
collaborator has already fetched and parsed (effective POMs rendered as JSON
objects). Building the index is where manifest data quality is enforced:
blank fields become absent values and malformed URLs are dropped with a
warning, so the compiler only ever sees clean ``ManifestInfo`` values.

Record format::

    {
        "licenses": [{"name": "Apache License 2.0", "url": "https://..."}],
        "url": "https://example.com",
        "organization": {"name": "Example", "url": "https://example.com"},
        "developers": [{"name": "A", "email": "a@example.com", "organization": "Example"}],
        "packaging": "jar"
    }
"""

import re
from typing import Any, Iterator, Mapping, Optional
from urllib.parse import urlparse

from graph_sbom.logging_config import logger

from ..models import ComponentId
from .models import DeveloperInfo, LicenseInfo, ManifestInfo, OrganizationInfo

# Schemes accepted for homepage and organization URLs
ALLOWED_URL_SCHEMES = {"http", "https", "git", "git+ssh", "git+https", "git+http", "ftp"}

CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

DEFAULT_PACKAGING = "jar"


def non_empty(value: Any) -> Optional[str]:
    """Return the stripped string, or None for missing or blank values."""
    if value is None:
        return None
    text = CONTROL_CHAR_PATTERN.sub("", str(value)).strip()
    return text or None


def validate_url(value: Any, display_name: str, field_name: str = "url") -> str:
    """
    Validate a URL taken from manifest data.

    Invalid URLs are not an error: they are logged and replaced with an
    empty string.

    Args:
        value: Raw URL value from the manifest
        display_name: Coordinates of the component, for logging
        field_name: Name of the manifest field, for logging

    Returns:
        The URL, or "" if absent or malformed
    """
    url = non_empty(value)
    if url is None:
        return ""

    try:
        parsed = urlparse(url)
    except ValueError:
        parsed = None

    if (
        parsed is None
        or parsed.scheme.lower() not in ALLOWED_URL_SCHEMES
        or not parsed.netloc
        or any(ch.isspace() for ch in url)
    ):
        logger.warning(f"Ignoring invalid {field_name} detected in project '{display_name}': {url}")
        return ""

    return url


def parse_manifest(record: Mapping[str, Any], display_name: str) -> ManifestInfo:
    """Convert one raw manifest record into a ManifestInfo."""
    licenses = tuple(
        LicenseInfo(name=non_empty(entry.get("name")), url=non_empty(entry.get("url")))
        for entry in record.get("licenses") or []
    )

    organization = None
    raw_org = record.get("organization")
    if isinstance(raw_org, Mapping):
        organization = OrganizationInfo(
            name=non_empty(raw_org.get("name")),
            url=validate_url(raw_org.get("url"), display_name, "organization url"),
        )
    elif raw_org is not None:
        # Some exporters flatten the organization block to its name
        organization = OrganizationInfo(name=non_empty(raw_org))

    developers = tuple(
        DeveloperInfo(
            name=non_empty(dev.get("name")),
            email=non_empty(dev.get("email")),
            organization=non_empty(dev.get("organization")),
        )
        for dev in record.get("developers") or []
    )

    return ManifestInfo(
        licenses=licenses,
        homepage=validate_url(record.get("url") or record.get("homepage"), display_name, "url"),
        organization=organization,
        developers=developers,
        packaging=non_empty(record.get("packaging")) or DEFAULT_PACKAGING,
    )


class ManifestIndex:
    """Read-only lookup of manifests keyed by component display name."""

    def __init__(self, manifests: Optional[Mapping[str, ManifestInfo]] = None):
        self._manifests: dict[str, ManifestInfo] = dict(manifests or {})

    @classmethod
    def from_records(cls, records: Mapping[str, Mapping[str, Any]]) -> "ManifestIndex":
        """Build an index from raw manifest records keyed by ``group:name:version``."""
        manifests = {}
        for display_name, record in records.items():
            manifests[display_name] = parse_manifest(record, display_name)
        logger.debug(f"Indexed {len(manifests)} manifest(s)")
        return cls(manifests)

    def get(self, component_id: ComponentId) -> Optional[ManifestInfo]:
        return self._manifests.get(component_id.display_name)

    def __contains__(self, component_id: object) -> bool:
        if isinstance(component_id, ComponentId):
            return component_id.display_name in self._manifests
        return component_id in self._manifests

    def __len__(self) -> int:
        return len(self._manifests)

    def __iter__(self) -> Iterator[str]:
        return iter(self._manifests)
