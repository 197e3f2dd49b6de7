# qmodpack/__init__.py
from .core.errors import (
    ArchiveWriteFailed,
    DerivationError,
    FileCreateFailed,
    ParseError,
    QmodError,
    SerializationFailed,
)
from .modjson import CopyExtension, FileCopy, Manifest, ModDependency
from .packages.derive import deriveManifest
from .packages.types import ResolvedPackage
from .qmod.packager import Qmod, packageManifest

__version__ = "0.1.0"

__all__ = [
    "Manifest",
    "ModDependency",
    "FileCopy",
    "CopyExtension",
    "ResolvedPackage",
    "deriveManifest",
    "Qmod",
    "packageManifest",
    "QmodError",
    "ParseError",
    "SerializationFailed",
    "DerivationError",
    "FileCreateFailed",
    "ArchiveWriteFailed",
]
