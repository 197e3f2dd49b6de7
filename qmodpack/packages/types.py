# qmodpack/packages/types.py
from __future__ import annotations
import json
from pathlib import Path
from typing import Any

import json5
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

from qmodpack.core.errors import DerivationError, ParseError

__all__ = [
    "AdditionalData",
    "PackageInfo",
    "DeclaredDependency",
    "RestoredDependency",
    "ResolvedPackage",
    "sharedObjectName",
]



def sharedObjectName(packageId: str, overrideSoName: str | None = None) -> str:
    """File name of the shared library a package builds: the override, or lib<id>.so."""
    if overrideSoName is not None:
        name = overrideSoName.strip()
    else:
        packageId = (packageId or "").strip()
        name = f"lib{packageId}.so" if packageId else ""
    if not name or "/" in name or "\\" in name:
        raise DerivationError(f"Package {packageId!r} has no usable library file name ({name!r})")
    return name



class AdditionalData(BaseModel):
    """Producer-supplied flags attached to a dependency by the resolver."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    headerOnly: bool | None = Field(default=None, validation_alias=AliasChoices("headerOnly", "headersOnly"))
    staticLinking: bool | None = None
    # False keeps the dependency out of the archive; True overrides headerOnly only
    includeInPackage: bool | None = Field(default=None, validation_alias=AliasChoices("includeInPackage", "includeQmod"))
    downloadUrl: str | None = Field(default=None, validation_alias=AliasChoices("downloadUrl", "modLink"))
    overrideSoName: str | None = None



class PackageInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    version: str = ""
    overrideSoName: str | None = None

    @model_validator(mode="before")
    @classmethod
    def liftAdditionalData(cls, data: Any) -> Any:
        # Resolver output keeps overrideSoName under additionalData
        if isinstance(data, dict) and "overrideSoName" not in data:
            extra = data.get("additionalData")
            if isinstance(extra, dict) and extra.get("overrideSoName") is not None:
                data = {**data, "overrideSoName": extra["overrideSoName"]}
        return data

    def outputFileName(self) -> str:
        return sharedObjectName(self.id, self.overrideSoName)



class DeclaredDependency(BaseModel):
    """A dependency as the package itself declares it."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    versionRange: str = "*"
    additionalData: AdditionalData = Field(default_factory=AdditionalData)



class RestoredDependency(BaseModel):
    """A dependency the resolver settled on, direct or transitive."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    version: str = ""
    additionalData: AdditionalData = Field(default_factory=AdditionalData)

    @model_validator(mode="before")
    @classmethod
    def unwrapDependency(cls, data: Any) -> Any:
        # {"dependency": {"id", "versionRange", "additionalData"}, "version": "..."}
        if isinstance(data, dict) and isinstance(data.get("dependency"), dict):
            inner = data["dependency"]
            return {
                "id": inner.get("id"),
                "version": data.get("version", ""),
                "additionalData": inner.get("additionalData") or {},
            }
        return data

    def libraryFileName(self) -> str:
        return sharedObjectName(self.id, self.additionalData.overrideSoName)



class ResolvedPackage(BaseModel):
    """
    A package plus its resolved dependency graph, as produced by the resolver.

    Also accepts the resolver's shared-config layout:
        {"config": {"info": {...}, "dependencies": [...]}, "restoredDependencies": [...]}
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    info: PackageInfo
    dependencies: tuple[DeclaredDependency, ...] = ()
    restoredDependencies: tuple[RestoredDependency, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def flattenSharedConfig(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("config"), dict):
            config = data["config"]
            return {
                "info": config.get("info"),
                "dependencies": config.get("dependencies") or [],
                "restoredDependencies": data.get("restoredDependencies") or [],
            }
        return data

    def declared(self, depId: str) -> DeclaredDependency | None:
        for dep in self.dependencies:
            if dep.id == depId:
                return dep
        return None

    def restored(self, depId: str) -> RestoredDependency | None:
        for dep in self.restoredDependencies:
            if dep.id == depId:
                return dep
        return None

    @classmethod
    def fromDict(cls, raw: Any) -> ResolvedPackage:
        try:
            return cls.model_validate(raw)
        except ValidationError as err:
            raise ParseError("Invalid resolved package") from err

    @classmethod
    def load(cls, path: str | Path) -> ResolvedPackage:
        """Read resolver output from a JSON or JSON5 file."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as err:
            raise ParseError(f"Cannot read resolved package '{path}'") from err
        try:
            if path.suffix == ".json5":
                raw = json5.loads(text)
            else:
                raw = json.loads(text)
        except ValueError as err:
            raise ParseError(f"Resolved package '{path}' is not valid JSON") from err
        if not isinstance(raw, dict):
            raise ParseError(f"Resolved package '{path}' is not a JSON object")
        return cls.fromDict(raw)
