"""Known-license table: license URL -> SPDX license identifier.

The table is built from the SPDX license list table of contents
(``licenses.json``). Every listed license contributes its canonical
``https://spdx.org/licenses/<id>`` URL and all of its ``seeAlso`` URLs. A URL
that appears under more than one identifier is ambiguous and is left out, then
a handful of curated overrides for URLs commonly found in maven manifests are
applied on top.

The table is an immutable value. It is loaded once and passed to every
compilation that needs it.
"""

import json
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

import requests

from graph_sbom.logging_config import logger

from ..exceptions import KnownLicensesError
from ..http_client import get_default_headers

SPDX_LICENSE_URL_PREFIX = "https://spdx.org/licenses/"
REMOTE_LICENSES_URL = SPDX_LICENSE_URL_PREFIX + "licenses.json"
DEFAULT_TIMEOUT = 30

# URLs not reflected in the license list, or listed under several identifiers
# but commonly meant for a single one
CURATED_OVERRIDES: dict[str, str] = {
    "http://www.apache.org/licenses/LICENSE-2.0.txt": "Apache-2.0",
    "http://www.opensource.org/licenses/cpl1.0.txt": "CPL-1.0",
    "http://www.opensource.org/licenses/mit-license.php": "MIT",
    "http://www.mozilla.org/MPL/MPL-1.0.txt": "MPL-1.0",
}


def normalize_license_url(url: str) -> str:
    """Normalize a license URL so http and https variants collide."""
    normalized = url.strip()
    if normalized[:8].lower() == "https://":
        normalized = "http://" + normalized[8:]
    elif normalized[:7].lower() == "http://":
        normalized = "http://" + normalized[7:]
    return normalized


def license_url_key(url: str) -> str:
    """Case-insensitive lookup key of a license URL."""
    return normalize_license_url(url).casefold()


class KnownLicenses:
    """Immutable mapping of normalized license URLs to SPDX license identifiers."""

    def __init__(self, url_to_id: Mapping[str, str], license_list_version: Optional[str] = None):
        self._licenses = MappingProxyType({license_url_key(url): spdx_id for url, spdx_id in url_to_id.items()})
        self.license_list_version = license_list_version

    @classmethod
    def from_license_list(cls, toc: Mapping[str, Any]) -> "KnownLicenses":
        """
        Build the table from a parsed SPDX ``licenses.json`` document.

        Args:
            toc: The license list table of contents

        Returns:
            KnownLicenses instance

        Raises:
            KnownLicensesError: If the document has no license list
        """
        entries = toc.get("licenses")
        if not isinstance(entries, list):
            raise KnownLicensesError("License list has no 'licenses' array")

        url_to_id: dict[str, str] = {}
        ambiguous: set[str] = set()
        for entry in entries:
            license_id = entry.get("licenseId")
            if not license_id:
                continue
            url_to_id[license_url_key(SPDX_LICENSE_URL_PREFIX + license_id)] = license_id
            for other_url in entry.get("seeAlso") or []:
                key = license_url_key(other_url)
                if key in url_to_id and url_to_id[key] != license_id:
                    ambiguous.add(key)
                else:
                    url_to_id[key] = license_id

        for key in ambiguous:
            url_to_id.pop(key, None)
        if ambiguous:
            logger.debug(f"Dropped {len(ambiguous)} license URL(s) mapping to several identifiers")

        for url, license_id in CURATED_OVERRIDES.items():
            url_to_id[license_url_key(url)] = license_id

        return cls(url_to_id, license_list_version=toc.get("licenseListVersion"))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "KnownLicenses":
        """Load the table from a local copy of ``licenses.json``."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                toc = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise KnownLicensesError(f"Could not read license list from {path}: {e}") from e
        return cls.from_license_list(toc)

    @classmethod
    def from_remote(
        cls,
        session: Optional[requests.Session] = None,
        url: str = REMOTE_LICENSES_URL,
        timeout: int = DEFAULT_TIMEOUT,
    ) -> "KnownLicenses":
        """
        Fetch the license list from spdx.org.

        Args:
            session: Optional requests session to reuse
            url: Location of ``licenses.json``
            timeout: Request timeout in seconds

        Returns:
            KnownLicenses instance

        Raises:
            KnownLicensesError: If the list cannot be fetched or parsed
        """
        http = session or requests.Session()
        logger.info(f"Fetching SPDX license list from {url}")
        try:
            response = http.get(url, headers=get_default_headers(), timeout=timeout)
            response.raise_for_status()
            toc = response.json()
        except requests.exceptions.RequestException as e:
            raise KnownLicensesError(f"Failed to fetch SPDX license list: {e}") from e
        except ValueError as e:
            raise KnownLicensesError(f"Invalid SPDX license list JSON: {e}") from e

        known = cls.from_license_list(toc)
        logger.info(f"Loaded SPDX license list version {known.license_list_version or 'unknown'}")
        return known

    def get_id(self, url: str) -> Optional[str]:
        """SPDX identifier for a license URL, or None if unknown."""
        return self._licenses.get(license_url_key(url))

    def __len__(self) -> int:
        return len(self._licenses)
