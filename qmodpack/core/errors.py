# qmodpack/core/errors.py
from __future__ import annotations

from typing import ClassVar, Literal

__all__ = [
    "Stage",
    "QmodError",
    "ParseError",
    "SerializationFailed",
    "DerivationError",
    "FileCreateFailed",
    "ArchiveWriteFailed",
]



Stage = Literal["parse", "serialize", "derive", "io"]



class QmodError(Exception):
    """Base error. `stage` tells callers which step failed."""
    stage: ClassVar[Stage]

    def __str__(self) -> str:
        message = super().__str__()
        cause = self.__cause__
        if cause is not None and str(cause):
            return f"{message}: {cause}"
        return message



class ParseError(QmodError):
    """Manifest text is not well-formed or a field has the wrong shape."""
    stage = "parse"



class SerializationFailed(QmodError):
    """Manifest could not be encoded. Indicates a defect, never user input."""
    stage = "serialize"



class DerivationError(QmodError):
    """Resolver output cannot be turned into a manifest."""
    stage = "derive"



class FileCreateFailed(QmodError):
    stage = "io"



class ArchiveWriteFailed(QmodError):
    stage = "io"
