# qmodpack/modjson/models.py
from __future__ import annotations
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    ValidationError,
    model_serializer,
    model_validator,
)
from pydantic_core import PydanticSerializationError

from qmodpack.core.errors import ParseError, SerializationFailed
from qmodpack.core.jsonutils import prettyJsonDumps
from qmodpack.semver.semver import parseSemVerPackRequirement, parseSemVerPackVersion
from .schema import DEFAULT_MODLOADER, LATEST, SCHEMA_VERSION_KEY, SchemaGeneration, generationFor

__all__ = ["ModDependency", "FileCopy", "CopyExtension", "Manifest"]



def _normalizeVersion(value: str) -> str:
    return str(parseSemVerPackVersion(value))



def _checkRequirement(value: str) -> str:
    # Kept verbatim; consumers re-parse it with their own resolver
    requirement = parseSemVerPackRequirement(value)
    if requirement is None:
        return value.strip() or "*"
    return requirement.raw



SchemaVersionStr = Annotated[str, AfterValidator(_normalizeVersion)]
VersionRangeStr = Annotated[str, AfterValidator(_checkRequirement)]



class ModDependency(BaseModel):
    """A mod that must be installed alongside this one, downloaded on demand when a link is given."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    versionRange: VersionRangeStr = Field(
        default="*",
        validation_alias=AliasChoices("version", "versionRange"),
        serialization_alias="version",
    )
    # Absent: the dependency must already be installed
    downloadUrl: str | None = Field(
        default=None,
        validation_alias=AliasChoices("downloadIfMissing", "downloadUrl", "modLink"),
        serialization_alias="downloadIfMissing",
    )
    required: bool = True



class FileCopy(BaseModel):
    """A file inside the archive and the full path it is copied to on the device."""
    model_config = ConfigDict(frozen=True)

    name: str = ""
    destination: str = ""



class CopyExtension(BaseModel):
    """Files with this extension are copied to `destination` at install time."""
    model_config = ConfigDict(frozen=True)

    extension: str = ""
    destination: str = ""



class Manifest(BaseModel):
    """
    The mod.json of a qmod.

    One type covers every schema generation. Fields a generation does not
    know are reset on construction and never written, so a manifest always
    round-trips through its own generation unchanged.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schemaVersion: SchemaVersionStr = Field(
        default=LATEST.defaultVersion,
        validation_alias=AliasChoices(SCHEMA_VERSION_KEY, "schemaVersion"),
        serialization_alias=SCHEMA_VERSION_KEY,
    )
    name: str = ""
    id: str = ""
    modloader: str | None = Field(default=None, validation_alias=AliasChoices("modloader", "modloaderName"))
    author: str | None = None
    porter: str | None = None               # Set when the mod was ported by someone else
    version: str = ""
    packageId: str | None = None            # e.g. com.beatgames.beatsaber
    packageVersion: str | None = None
    description: str | None = None
    coverImage: str | None = Field(default=None, validation_alias=AliasChoices("coverImage", "coverImageFilename"))
    isLibrary: bool | None = None
    dependencies: tuple[ModDependency, ...] = ()
    modFiles: tuple[str, ...] = ()          # Early-loaded mods
    lateModFiles: tuple[str, ...] = ()      # Loaded after modFiles
    libraryFiles: tuple[str, ...] = ()      # Shared libraries, linked but not loaded as mods
    fileCopies: tuple[FileCopy, ...] = ()
    copyExtensions: tuple[CopyExtension, ...] = ()

    # --------------
    #   Validators
    # --------------
    @model_validator(mode="before")
    @classmethod
    def normalizeGatedFields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        rawVersion = data.get(SCHEMA_VERSION_KEY, data.get("schemaVersion"))
        if rawVersion is None:
            generation = LATEST
        else:
            try:
                generation = generationFor(rawVersion)
            except (TypeError, ValueError):
                # Reported by the field validator
                return data

        data = dict(data)
        if generation.hasModloader:
            if data.get("modloader") is None and data.get("modloaderName") is None:
                data["modloader"] = DEFAULT_MODLOADER
        else:
            data.pop("modloader", None)
            data.pop("modloaderName", None)

        if not generation.hasLateModFiles:
            data.pop("lateModFiles", None)

        if not generation.hasRequiredDependencies:
            deps = data.get("dependencies")
            if isinstance(deps, (list, tuple)):
                data["dependencies"] = [_withDefaultRequired(dep) for dep in deps]

        return data

    @model_serializer(mode="wrap")
    def dropGatedFields(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        generation = self.generation
        if not generation.hasModloader:
            data.pop("modloader", None)
        if not generation.hasLateModFiles:
            data.pop("lateModFiles", None)
        if not generation.hasRequiredDependencies:
            for dep in data.get("dependencies", ()):
                if isinstance(dep, dict):
                    dep.pop("required", None)
        return data

    # --------------
    #   Accessors
    # --------------
    @property
    def generation(self) -> SchemaGeneration:
        return generationFor(self.schemaVersion)

    # ------------------
    #   (De)serialization
    # ------------------
    def serialize(self) -> str:
        """Pretty-printed mod.json text. Absent optionals are omitted."""
        try:
            payload = self.model_dump(mode="json", by_alias=True, exclude_none=True)
            return prettyJsonDumps(payload)
        except (PydanticSerializationError, TypeError, ValueError) as err:
            raise SerializationFailed(f"Failed to serialize mod.json for {self.id!r}") from err

    @classmethod
    def deserialize(cls, content: str | bytes) -> Manifest:
        """
        Parse mod.json text. Missing fields take their defaults; malformed JSON,
        wrongly shaped fields and bad version syntax raise ParseError.
        """
        try:
            return cls.model_validate_json(content)
        except ValidationError as err:
            raise ParseError("Invalid mod.json") from err



def _withDefaultRequired(dep: Any) -> Any:
    if isinstance(dep, ModDependency):
        return dep if dep.required else dep.model_copy(update={"required": True})
    if isinstance(dep, dict):
        return {key: value for key, value in dep.items() if key != "required"}
    return dep
