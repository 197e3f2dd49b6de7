# qmodpack/modjson/schema.py
from __future__ import annotations
from dataclasses import dataclass

from qmodpack.semver.semver import SemVerPackVersion, parseSemVerPackVersion

__all__ = [
    "SCHEMA_VERSION_KEY",
    "DEFAULT_MODLOADER",
    "SchemaGeneration",
    "LEGACY",
    "V1",
    "V1_2",
    "GENERATIONS",
    "LATEST",
    "generationFor",
]



# Key the manifest schema version lives under, regardless of the camelCase convention
SCHEMA_VERSION_KEY = "_QPVersion"
DEFAULT_MODLOADER = "Scotland2"



@dataclass(frozen=True)
class SchemaGeneration:
    """
    One generation of the mod.json schema.

    Generations only differ in which optional fields exist and which
    `_QPVersion` a manifest gets when it does not name one.
    """
    name: str
    minVersion: SemVerPackVersion   # Inclusive lower bound of `_QPVersion`
    defaultVersion: str
    hasModloader: bool = False
    hasLateModFiles: bool = False
    hasRequiredDependencies: bool = False



LEGACY = SchemaGeneration(
    name="legacy",
    minVersion=SemVerPackVersion(0, 0, 0),
    defaultVersion="0.1.1",
)
V1 = SchemaGeneration(
    name="v1",
    minVersion=SemVerPackVersion(1, 0, 0),
    defaultVersion="1.0.0",
)
V1_2 = SchemaGeneration(
    name="v1.2",
    minVersion=SemVerPackVersion(1, 2, 0),
    defaultVersion="1.2.0",
    hasModloader=True,
    hasLateModFiles=True,
    hasRequiredDependencies=True,
)

# Oldest first
GENERATIONS: tuple[SchemaGeneration, ...] = (LEGACY, V1, V1_2)
LATEST = GENERATIONS[-1]



def generationFor(schemaVersion: str | SemVerPackVersion) -> SchemaGeneration:
    """Newest generation whose lower bound is <= `schemaVersion`. Raises ValueError for bad versions."""
    if isinstance(schemaVersion, SemVerPackVersion):
        version = schemaVersion
    else:
        version = parseSemVerPackVersion(schemaVersion)
    for generation in reversed(GENERATIONS):
        if version >= generation.minVersion:
            return generation
    return GENERATIONS[0]
