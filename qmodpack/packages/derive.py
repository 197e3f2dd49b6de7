# qmodpack/packages/derive.py
from __future__ import annotations
import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from qmodpack.app.settings import settings, settingsBool
from qmodpack.core.errors import DerivationError
from qmodpack.modjson.models import Manifest, ModDependency
from qmodpack.modjson.schema import DEFAULT_MODLOADER, LATEST
from qmodpack.semver.semver import parseSemVerPackRequirement, parseSemVerPackVersion, versionSatisfiesRequirement
from .types import DeclaredDependency, ResolvedPackage, RestoredDependency

logger = logging.getLogger(__name__)

__all__ = ["LOADER_ID", "CALLER_FIELDS", "deriveManifest"]



# Id of the mod loader itself; present on every device, never shipped
LOADER_ID = "modloader"

# Manifest fields the resolver knows nothing about; passed through from the caller
CALLER_FIELDS = frozenset({
    "modloader",
    "author",
    "porter",
    "packageId",
    "packageVersion",
    "description",
    "coverImage",
    "isLibrary",
    "lateModFiles",
    "fileCopies",
    "copyExtensions",
})



def deriveManifest(
    package: ResolvedPackage,
    *,
    schemaVersion: str | None = None,
    strict: bool | None = None,
    loaderIds: Iterable[str] | None = None,
    **fields: Any,
) -> Manifest:
    """
    Classify every dependency of `package` and build its mod.json.

    Each dependency ends up in exactly one place:
      - `dependencies`: declared mods the resolver found a download link for,
      - `libraryFiles`: declared shared libraries shipped inside the archive,
      - nowhere: header-only, statically linked, transitive-only or loader deps.

    Declared dependencies missing from the resolver output, or resolved to a
    version outside their declared range, are reported with a warning, or
    raise DerivationError when `strict` is set.
    """
    unknown = set(fields) - CALLER_FIELDS
    if unknown:
        raise TypeError(f"Unknown manifest fields: {', '.join(sorted(unknown))}")

    if strict is None:
        strict = settingsBool("derivation.strict", False)
    if loaderIds is None:
        loaderIds = settings("derivation.loaderIds", [LOADER_ID])
    if isinstance(loaderIds, str):
        loaderIds = [loaderIds]
    loaderIdSet = frozenset(loaderIds)

    info = package.info
    if not info.id.strip():
        raise DerivationError("Resolved package has no id")

    # First declaration of an id wins
    declared: dict[str, DeclaredDependency] = {}
    for dep in package.dependencies:
        declared.setdefault(dep.id, dep)

    _checkRestored(package, strict)

    bundlable = [dep for dep in package.restoredDependencies if _isBundlable(dep, declared.get(dep.id))]

    remoteMods: list[ModDependency] = []
    for dep in package.dependencies:
        restored = next((entry for entry in bundlable if entry.id == dep.id), None)
        if restored is None or restored.additionalData.downloadUrl is None:
            continue
        try:
            remoteMods.append(ModDependency(
                id=dep.id,
                versionRange=dep.versionRange,
                downloadUrl=restored.additionalData.downloadUrl,
            ))
        except ValidationError as err:
            raise DerivationError(f"Dependency {dep.id!r} has an invalid version range {dep.versionRange!r}") from err
    remoteIds = {mod.id for mod in remoteMods}

    libraryFiles = [
        dep.libraryFileName()
        for dep in package.restoredDependencies
        if _isBundledLibrary(dep, declared.get(dep.id), loaderIdSet, remoteIds)
    ]

    logger.debug(
        "Derived mod.json for %s: %d remote mod(s) %s, %d library file(s) %s",
        info.id, len(remoteMods), sorted(remoteIds), len(libraryFiles), libraryFiles,
    )

    fields.setdefault("modloader", settings("manifest.defaultModloader", DEFAULT_MODLOADER))
    try:
        return Manifest(
            schemaVersion=schemaVersion or LATEST.defaultVersion,
            name=info.name,
            id=info.id,
            version=info.version,
            dependencies=tuple(remoteMods),
            modFiles=(info.outputFileName(),),
            libraryFiles=tuple(libraryFiles),
            **fields,
        )
    except ValidationError as err:
        raise DerivationError(f"Cannot build mod.json for {info.id!r}") from err



def _checkRestored(package: ResolvedPackage, strict: bool) -> None:
    for dep in package.dependencies:
        restored = package.restored(dep.id)
        if restored is None:
            problem = f"Dependency {dep.id!r} of {package.info.id!r} was not restored by the resolver"
        else:
            problem = _versionMismatch(dep, restored)
        if problem is None:
            continue
        if strict:
            raise DerivationError(problem)
        logger.warning("%s", problem)



def _versionMismatch(declared: DeclaredDependency, restored: RestoredDependency) -> str | None:
    if not restored.version:
        return None
    try:
        requirement = parseSemVerPackRequirement(declared.versionRange)
        version = parseSemVerPackVersion(restored.version)
    except ValueError as err:
        raise DerivationError(f"Dependency {declared.id!r} has an unreadable version") from err
    if versionSatisfiesRequirement(version, requirement):
        return None
    return f"Dependency {declared.id!r} resolved to {version}, outside its declared range {declared.versionRange!r}"



def _isBundlable(restored: RestoredDependency, declared: DeclaredDependency | None) -> bool:
    if declared is not None and declared.additionalData.includeInPackage is not None:
        return declared.additionalData.includeInPackage

    # Header-only deps without a download have nothing to ship
    flags = restored.additionalData
    return flags.downloadUrl is not None or not flags.headerOnly



def _isBundledLibrary(
    restored: RestoredDependency,
    declared: DeclaredDependency | None,
    loaderIds: frozenset[str],
    remoteIds: set[str],
) -> bool:
    # Transitive deps ride along with whichever direct dep pulls them in
    if declared is None:
        return False
    if restored.id in loaderIds or restored.id in remoteIds:
        return False

    forced = declared.additionalData.includeInPackage
    if forced is False:
        return False

    flags = restored.additionalData
    if flags.staticLinking or flags.includeInPackage is False:
        return False
    # Forcing a dep in only lifts the header-only check
    return forced is True or not flags.headerOnly
