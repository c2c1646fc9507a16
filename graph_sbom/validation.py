"""SPDX document validation.

Validation never blocks output: problems are reported as warnings and the
document is written regardless.

Usage:
    from graph_sbom.validation import validate_document

    result = validate_document(document)
    if not result.valid:
        print(f"{len(result.messages)} validation message(s)")
"""

from dataclasses import dataclass, field

from spdx_tools.spdx.model import Document
from spdx_tools.spdx.validation.document_validator import validate_full_spdx_document

from graph_sbom.logging_config import logger

from .serialization import detect_spdx_version


@dataclass
class ValidationResult:
    """Result of validating one document."""

    valid: bool
    spec_version: str
    messages: list[str] = field(default_factory=list)

    @classmethod
    def success(cls, spec_version: str) -> "ValidationResult":
        return cls(valid=True, spec_version=spec_version)

    @classmethod
    def failure(cls, spec_version: str, messages: list[str]) -> "ValidationResult":
        return cls(valid=False, spec_version=spec_version, messages=messages)


def validate_document(document: Document) -> ValidationResult:
    """
    Validate an in-memory SPDX document with the spdx-tools validator.

    Each validation message is logged as a warning.

    Args:
        document: SPDX document object

    Returns:
        ValidationResult with validation status and messages
    """
    spec_version = detect_spdx_version(document)
    validation_messages = validate_full_spdx_document(document, f"SPDX-{spec_version}")
    if not validation_messages:
        logger.info(f"Document validated successfully against SPDX {spec_version}")
        return ValidationResult.success(spec_version)

    messages = []
    for message in validation_messages:
        context = message.context.spdx_id if message.context and message.context.spdx_id else None
        text = f"{message.validation_message} ({context})" if context else message.validation_message
        logger.warning(f"SPDX validation: {text}")
        messages.append(text)
    return ValidationResult.failure(spec_version, messages)
