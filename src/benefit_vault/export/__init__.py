"""Benefit Vault - Portable export/import and print output."""

from .envelope import (
    ENVELOPE_VERSION,
    ExportEnvelope,
    ExportEnvelopeCodec,
    ExportMetadata,
    SealedPackage,
    export_results,
    import_results,
)
from .package_file import PACKAGE_EXTENSION, generate_export_filename, read_package, write_package
from .print_document import PrintDocumentBuilder, PrintUserInfo

__all__ = [
    "ENVELOPE_VERSION",
    "ExportEnvelope",
    "ExportEnvelopeCodec",
    "ExportMetadata",
    "SealedPackage",
    "export_results",
    "import_results",
    "PACKAGE_EXTENSION",
    "generate_export_filename",
    "read_package",
    "write_package",
    "PrintDocumentBuilder",
    "PrintUserInfo",
]
