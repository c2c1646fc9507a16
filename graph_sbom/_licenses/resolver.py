"""Resolve manifest license declarations into SPDX license expressions.

Each manifest license is keyed by its normalized URL. A URL in the known-license
table resolves to the listed SPDX identifier; any other URL gets an extracted
licensing info (``LicenseRef-...``) holding the declared name. Both outcomes are
cached per document, so every package declaring the same license URL shares a
single license object and a single extracted licensing entry.
"""

import re
from typing import Optional, Sequence, Union

from license_expression import LicenseExpression, get_spdx_licensing
from spdx_tools.spdx.model import ExtractedLicensingInfo, SpdxNoAssertion

from graph_sbom.logging_config import logger

from .._manifest.models import LicenseInfo
from .known_licenses import KnownLicenses, license_url_key, normalize_license_url

_spdx_licensing = get_spdx_licensing()

LICENSE_REF_PREFIX = "LicenseRef-"
_INVALID_IDSTRING_CHARS = re.compile(r"[^a-zA-Z0-9.\-]+")

ResolvedLicense = Union[LicenseExpression, SpdxNoAssertion]


class LicenseResolver:
    """Per-document license resolution with identity-preserving deduplication."""

    def __init__(self, known_licenses: KnownLicenses):
        self._known_licenses = known_licenses
        self._licenses: dict[str, LicenseExpression] = {}
        self._extracted: list[ExtractedLicensingInfo] = []
        self._license_ref_ids: set[str] = set()

    @property
    def extracted_licenses(self) -> list[ExtractedLicensingInfo]:
        """Extracted licensing infos minted so far, in creation order."""
        return list(self._extracted)

    def resolve(self, licenses: Sequence[LicenseInfo]) -> ResolvedLicense:
        """
        Resolve the licenses declared by one manifest.

        Several licenses form a conjunction, in declaration order. Members that
        resolve to NOASSERTION cannot take part in an expression and are left
        out of it.

        Args:
            licenses: Declared licenses

        Returns:
            License expression, or SpdxNoAssertion when nothing can be asserted
        """
        if not licenses:
            return SpdxNoAssertion()
        if len(licenses) == 1:
            return self.resolve_one(licenses[0])

        members = [resolved for resolved in map(self.resolve_one, licenses) if not isinstance(resolved, SpdxNoAssertion)]
        if not members:
            return SpdxNoAssertion()
        if len(members) == 1:
            return members[0]
        return _spdx_licensing.AND(*members)

    def resolve_one(self, license_info: LicenseInfo) -> ResolvedLicense:
        """Resolve a single declared license."""
        if not license_info.url:
            logger.warning(f"Ignoring license without url: {license_info.name or '<unnamed>'}")
            return SpdxNoAssertion()

        key = license_url_key(license_info.url)
        cached = self._licenses.get(key)
        if cached is not None:
            return cached

        spdx_id = self._known_licenses.get_id(license_info.url)
        if spdx_id is not None:
            resolved = _spdx_licensing.parse(spdx_id)
        else:
            logger.debug(f"Non spdx-standard license detected: {license_info.name} ({license_info.url})")
            resolved = self._create_extracted_license(license_info)

        self._licenses[key] = resolved
        return resolved

    def _create_extracted_license(self, license_info: LicenseInfo) -> LicenseExpression:
        license_id = self._next_license_ref_id(license_info.name)
        name = license_info.name or "NOASSERTION"
        self._extracted.append(
            ExtractedLicensingInfo(
                license_id=license_id,
                extracted_text=name,
                license_name=name,
                cross_references=[normalize_license_url(license_info.url)],
            )
        )
        return _spdx_licensing.parse(license_id)

    def _next_license_ref_id(self, name: Optional[str]) -> str:
        idstring = _INVALID_IDSTRING_CHARS.sub("-", name or "").strip("-.") or "unknown"
        base_id = f"{LICENSE_REF_PREFIX}{idstring}"
        license_id = base_id
        counter = 1
        while license_id in self._license_ref_ids:
            license_id = f"{base_id}-{counter}"
            counter += 1
        self._license_ref_ids.add(license_id)
        return license_id
