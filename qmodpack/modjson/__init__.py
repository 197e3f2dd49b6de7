# qmodpack/modjson/__init__.py
from .models import CopyExtension, FileCopy, Manifest, ModDependency
from .schema import (
    DEFAULT_MODLOADER,
    GENERATIONS,
    LATEST,
    SCHEMA_VERSION_KEY,
    SchemaGeneration,
    generationFor,
)

__all__ = [
    "Manifest",
    "ModDependency",
    "FileCopy",
    "CopyExtension",
    "SchemaGeneration",
    "GENERATIONS",
    "LATEST",
    "DEFAULT_MODLOADER",
    "SCHEMA_VERSION_KEY",
    "generationFor",
]
