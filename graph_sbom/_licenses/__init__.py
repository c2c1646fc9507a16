"""License resolution: known-license table and per-document resolver."""

from .known_licenses import (
    CURATED_OVERRIDES,
    REMOTE_LICENSES_URL,
    KnownLicenses,
    license_url_key,
    normalize_license_url,
)
from .resolver import LicenseResolver

__all__ = [
    "CURATED_OVERRIDES",
    "REMOTE_LICENSES_URL",
    "KnownLicenses",
    "LicenseResolver",
    "license_url_key",
    "normalize_license_url",
]
