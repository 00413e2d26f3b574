# wimservice/tools/__init__.py
from .base import (
    Disposition,
    HiveService,
    ImageService,
    PackageService,
    ProvisionedPackage,
    RegistryImportService,
    ToolResult,
)
from .dism import DismImageService, DismPackageService, parse_provisioned_packages
from .reg import RegHiveService, RegImportService

__all__ = [
    "Disposition",
    "DismImageService",
    "DismPackageService",
    "HiveService",
    "ImageService",
    "PackageService",
    "ProvisionedPackage",
    "RegHiveService",
    "RegImportService",
    "RegistryImportService",
    "ToolResult",
    "parse_provisioned_packages",
]
