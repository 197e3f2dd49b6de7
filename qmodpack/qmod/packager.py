# qmodpack/qmod/packager.py
from __future__ import annotations
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path

from qmodpack.core.errors import ArchiveWriteFailed, FileCreateFailed, ParseError
from qmodpack.modjson.models import Manifest

logger = logging.getLogger(__name__)

__all__ = ["MOD_JSON_NAME", "Qmod", "packageManifest"]



MOD_JSON_NAME = "mod.json"

# Fixed entry metadata so the same manifest always gives the same bytes
_ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_ENTRY_MODE = 0o644



@dataclass(frozen=True, slots=True)
class Qmod:
    """A qmod archive: a zip whose only entry written here is mod.json."""
    manifest: Manifest

    def package(self, path: str | Path) -> Path:
        """
        Write the archive to `path`, overwriting it.

        Raises SerializationFailed, FileCreateFailed or ArchiveWriteFailed.
        A failed write never leaves a partial archive behind.
        """
        path = Path(path)
        payload = self.manifest.serialize().encode("utf-8")

        try:
            handle = path.open("wb")
        except OSError as err:
            raise FileCreateFailed(f"Cannot create '{path}'") from err

        try:
            with handle, zipfile.ZipFile(handle, mode="w", compression=zipfile.ZIP_STORED) as archive:
                info = zipfile.ZipInfo(MOD_JSON_NAME, date_time=_ENTRY_DATE_TIME)
                info.compress_type = zipfile.ZIP_STORED
                info.external_attr = _ENTRY_MODE << 16
                archive.writestr(info, payload)
        except (OSError, ValueError, zipfile.BadZipFile, zipfile.LargeZipFile) as err:
            path.unlink(missing_ok=True)
            raise ArchiveWriteFailed(f"Cannot write archive '{path}'") from err

        logger.info("Packaged %s %s into %s (%d bytes of mod.json)", self.manifest.id, self.manifest.version, path, len(payload))
        return path

    @classmethod
    def read(cls, path: str | Path) -> Qmod:
        """Load the mod.json back out of an existing archive."""
        path = Path(path)
        try:
            with zipfile.ZipFile(path) as archive:
                content = archive.read(MOD_JSON_NAME)
        except KeyError as err:
            raise ParseError(f"'{path}' has no {MOD_JSON_NAME}") from err
        except (OSError, zipfile.BadZipFile) as err:
            raise ParseError(f"'{path}' is not a readable qmod") from err
        return cls(manifest=Manifest.deserialize(content))



def packageManifest(manifest: Manifest, path: str | Path) -> Path:
    return Qmod(manifest).package(path)
