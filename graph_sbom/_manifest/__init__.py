"""Upstream manifest models and the manifest index."""

from .index import ManifestIndex, parse_manifest
from .models import DeveloperInfo, LicenseInfo, ManifestInfo, OrganizationInfo

__all__ = [
    "DeveloperInfo",
    "LicenseInfo",
    "ManifestIndex",
    "ManifestInfo",
    "OrganizationInfo",
    "parse_manifest",
]
