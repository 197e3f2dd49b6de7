# qmodpack/semver/semver.py
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Literal

__all__ = [
    "SEMVER_PATTERN_RE",
    "SemVerPackVersion",
    "SemVerComparator",
    "SemVerPackRequirement",
    "parseSemVerPackVersion",
    "parseSemVerPackRequirement",
    "versionSatisfiesRequirement",
]



SEMVER_PATTERN_RE = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)"
    r"\.(?P<minor>0|[1-9]\d*)"
    r"\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|[0-9A-Za-z-]*[A-Za-z-][0-9A-Za-z-]*)"
    r"(?:\.(?:0|[1-9]\d*|[0-9A-Za-z-]*[A-Za-z-][0-9A-Za-z-]*))*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_HYPHEN_RANGE_RE = re.compile(r"^(?P<left>\S+)\s+-\s+(?P<right>\S+)$")

# Stand-ins for "any value" in a requirement component
_WILDCARDS = frozenset({"*", "x", "X"})



@total_ordering
@dataclass(frozen=True)
class SemVerPackVersion:
    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()

    def __str__(self) -> str:
        base = f"{self.major}.{self.minor}.{self.patch}"
        prerelease = f"-{'.'.join(self.prerelease)}" if self.prerelease else ""
        build = f"+{'.'.join(self.build)}" if self.build else ""
        return f"{base}{prerelease}{build}"

    def _prereleaseCmpKey(self) -> tuple:
        # Numeric identifiers sort before alphanumeric ones: (0, int) < (1, str)
        parts: list[tuple[int, int | str]] = []
        for ident in self.prerelease:
            if ident.isdigit():
                parts.append((0, int(ident)))
            else:
                parts.append((1, ident))
        return tuple(parts)

    def _cmpKey(self) -> tuple:
        # Build metadata is ignored for ordering; a release outranks its prereleases
        releaseFlag = 1 if not self.prerelease else 0
        return (
            self.major,
            self.minor,
            self.patch,
            releaseFlag,
            self._prereleaseCmpKey()
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVerPackVersion):
            return NotImplemented
        return (
            self.major == other.major
            and self.minor == other.minor
            and self.patch == other.patch
            and self.prerelease == other.prerelease
        )

    def __hash__(self) -> int:
        return hash((self.major, self.minor, self.patch, self.prerelease))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVerPackVersion):
            return NotImplemented
        return self._cmpKey() < other._cmpKey()



def parseSemVerPackVersion(raw: str) -> SemVerPackVersion:
    """
    Parse a semantic version string into SemVerPackVersion.

    Accepted forms (examples):
        "1"             -> 1.0.0
        "1.2"           -> 1.2.0
        "1.2.3"         -> 1.2.3
        "1.2.3-alpha.1"
        "1.2.3+build.1"
        "v1.2.3"

    Rejected:
        ".1", "1.", "1..3", "1.2.3.4", "01.2.3" (leading zeroes), etc.
    """
    if raw is None:
        raise ValueError("Version string cannot be None")

    if not isinstance(raw, str):
        raise TypeError(f"Version string must be a string type, got {type(raw).__name__}")

    raw = raw.strip()
    if not raw:
        raise ValueError("Version string cannot be empty or whitespace only")

    if raw.startswith("v") and len(raw) > 1 and "0" <= raw[1] <= "9":
        raw = raw[1:]

    # Split into core (numeric) and suffix (-prerelease +build)
    sepIndex = len(raw)
    for ch in ("-", "+"):
        idx = raw.find(ch)
        if idx != -1 and idx < sepIndex:
            sepIndex = idx

    core = raw[:sepIndex]
    suffix = raw[sepIndex:]

    coreParts = core.split(".")
    if not 1 <= len(coreParts) <= 3:
        raise ValueError(f"Invalid version core {core!r} in {raw!r}")

    if any(part == "" for part in coreParts):
        raise ValueError(f"Empty numeric component in version {raw!r}")

    numericParts: list[int] = []
    for part in coreParts:
        if not re.fullmatch(r"0|[1-9]\d*", part):
            raise ValueError(f"Invalid numeric component {part!r} in version {raw!r}")
        numericParts.append(int(part))

    while len(numericParts) < 3:
        numericParts.append(0)

    major, minor, patch = numericParts

    normalized = f"{major}.{minor}.{patch}{suffix}"

    mtch = SEMVER_PATTERN_RE.match(normalized)
    if not mtch:
        raise ValueError(f"Invalid semantic version {raw!r} (normalized {normalized!r})")

    prereleaseGroup = mtch.group("prerelease")
    buildGroup = mtch.group("build")

    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = ()
    if prereleaseGroup is not None:
        prerelease = tuple(prereleaseGroup.split("."))
    if buildGroup is not None:
        build = tuple(buildGroup.split("."))

    return SemVerPackVersion(
        major=major,
        minor=minor,
        patch=patch,
        prerelease=prerelease,
        build=build
    )



@dataclass(frozen=True)
class SemVerComparator:
    operator: Literal["<", "<=", ">", ">=", "=="]
    version: SemVerPackVersion



@dataclass(frozen=True)
class SemVerPackRequirement:
    # All comparators are AND-ed.
    comparators: tuple[SemVerComparator, ...] = ()
    # Verbatim requirement text as declared
    raw: str = ""



def _makeComparator(op: str, versionStr: str, rawRequirement: str) -> SemVerComparator:
    if not versionStr:
        raise ValueError(f"Missing version after operator {op!r} in requirement {rawRequirement!r}")
    parsedVersion = parseSemVerPackVersion(versionStr)
    canonOp = "==" if op == "=" else op
    if canonOp not in ("<", "<=", ">", ">=", "=="):
        raise ValueError(f"Unsupported operator {op!r} in requirement {rawRequirement!r}")
    return SemVerComparator(canonOp, parsedVersion)



def _parsePartialVersion(raw: str, rawRequirement: str) -> tuple[SemVerPackVersion | None, int]:
    """
    Parse a version that may end in wildcard components ("1.*", "1.2.x", "*").

    Returns the lowest matching version and how many components were given
    before the first wildcard (3 when there is none, 0 for a bare wildcard).
    Missing trailing components without a wildcard are zero, as in "1.2".
    """
    text = raw[1:] if raw.startswith("v") and raw[1:2].isdigit() else raw
    core = re.split(r"[-+]", text, maxsplit=1)[0]
    parts = core.split(".")
    if not any(part in _WILDCARDS for part in parts):
        return parseSemVerPackVersion(raw), 3

    precision = next(idx for idx, part in enumerate(parts) if part in _WILDCARDS)
    if len(parts) > 3 or any(part not in _WILDCARDS for part in parts[precision:]):
        raise ValueError(f"Invalid wildcard version {raw!r} in requirement {rawRequirement!r}")
    if core != text:
        raise ValueError(f"Wildcard version {raw!r} cannot carry prerelease or build in requirement {rawRequirement!r}")
    if precision == 0:
        return None, 0
    return parseSemVerPackVersion(".".join(parts[:precision])), precision



def _wildcardUpperBound(version: SemVerPackVersion, precision: int) -> SemVerPackVersion:
    # First version past everything "M.*" or "M.m.*" matches
    if precision == 1:
        return SemVerPackVersion(version.major + 1, 0, 0)
    return SemVerPackVersion(version.major, version.minor + 1, 0)



def _caretToComparators(version: SemVerPackVersion, precision: int = 3) -> tuple[SemVerComparator, SemVerComparator]:
    """
    ^M.m.p -> caret expansion following SemVer semantics:

    - If M > 0:
        >= M.m.p  and  < (M+1).0.0
    - If M == 0 and m > 0:
        >= 0.m.p  and  < 0.(m+1).0
    - If M == 0 and m == 0
        >= 0.0.p  and  < 0.0.(p+1)

    A wildcard widens the bound to the last given component: ^0.x -> < 1.0.0, ^0.0.x -> < 0.1.0.
    """
    Major, minor, patch = version.major, version.minor, version.patch
    greaterOrEqual = SemVerComparator(">=", version)
    if Major > 0 or precision == 1:
        upperVersion = SemVerPackVersion(Major + 1, 0, 0)
    elif minor > 0 or precision == 2:
        upperVersion = SemVerPackVersion(0, minor + 1, 0)
    else:
        upperVersion = SemVerPackVersion(0, 0, patch + 1)
    return greaterOrEqual, SemVerComparator("<", upperVersion)



def _tildeToComparators(version: SemVerPackVersion, precision: int = 3) -> tuple[SemVerComparator, SemVerComparator]:
    """
    ~M.m.p -> >= M.m.p and < M.(m+1).0, or < (M+1).0.0 when only Major is given ('~1', '~1.x').
    """
    Major, minor, patch = version.major, version.minor, version.patch
    greaterOrEqual = SemVerComparator(">=", version)
    if precision == 1 or (precision == 3 and minor == 0 and patch == 0):
        upperVersion = SemVerPackVersion(Major + 1, 0, 0)
    else:
        upperVersion = SemVerPackVersion(Major, minor + 1, 0)
    return greaterOrEqual, SemVerComparator("<", upperVersion)



def _wildcardToComparators(op: str, version: SemVerPackVersion, precision: int) -> tuple[SemVerComparator, ...]:
    upperVersion = _wildcardUpperBound(version, precision)
    if op in ("", "=", "=="):
        return SemVerComparator(">=", version), SemVerComparator("<", upperVersion)
    if op == ">":
        return (SemVerComparator(">=", upperVersion),)
    if op == "<=":
        return (SemVerComparator("<", upperVersion),)
    return (SemVerComparator(op, version),)



def parseSemVerPackRequirement(rawVersion: str | None) -> SemVerPackRequirement | None:
    """
    Parse a requirement string into SemVerPackRequirement.

    Accepted forms:

        None, "", "*", "x"      -> wildcard (no constraint)

        "1.2.3", "=1.2.3"       -> == 1.2.3
        ">=1.2.0"               -> >= 1.2.0
        ">=1.2.0 <2.0.0"        -> >=1.2.0 AND <2.0.0
        ">=0.1.0, <1.0.0"       -> >=0.1.0 AND <1.0.0

        "^1.2.3"                -> >=1.2.3 AND <2.0.0 (with 0.x semantics)
        "~1.2.3"                -> >=1.2.3 AND <1.3.0

        "1.*", "1.x"            -> >=1.0.0 AND <2.0.0
        "1.2.*"                 -> >=1.2.0 AND <1.3.0
        ">1.*"                  -> >=2.0.0

        "1.2.3 - 2.0.0"         -> >=1.2.3 AND <=2.0.0

    Comparators are separated by whitespace and/or commas when not a hyphen range.
    """
    if rawVersion is None:
        return None
    if not isinstance(rawVersion, str):
        raise TypeError(f"Requirement must be a string or None, got {type(rawVersion).__name__}")

    rawVersion = rawVersion.strip()
    if not rawVersion or rawVersion in _WILDCARDS:
        return None

    mtch = _HYPHEN_RANGE_RE.match(rawVersion)
    if mtch:
        versionLeft = parseSemVerPackVersion(mtch.group("left"))
        versionRight = parseSemVerPackVersion(mtch.group("right"))
        if versionRight < versionLeft:
            raise ValueError(f"Invalid hyphen range {rawVersion!r}: upper < lower")
        return SemVerPackRequirement(
            comparators=(SemVerComparator(">=", versionLeft), SemVerComparator("<=", versionRight)),
            raw=rawVersion,
        )

    if rawVersion.startswith(",") or rawVersion.endswith(","):
        raise ValueError(f"Dangling comma in requirement {rawVersion!r}")

    comparators: list[SemVerComparator] = []
    # "a, b" and "a b" are equivalent; an operator may be followed by a space (">= 1.0")
    tokens = re.sub(r"(<=|>=|==|<|>|=|\^|~)\s+", r"\1", rawVersion).replace(",", " ").split()
    for token in tokens:
        op = ""
        for candidate in ("<=", ">=", "==", "<", ">", "=", "^", "~"):
            if token.startswith(candidate):
                op = candidate
                break
        versionPart = token[len(op):]
        if op and not versionPart:
            raise ValueError(f"Missing version after operator {op!r} in requirement {rawVersion!r}")

        parsedVersion, precision = _parsePartialVersion(versionPart, rawVersion)
        if parsedVersion is None:
            if op in ("<", ">"):
                raise ValueError(f"Operator {op!r} cannot take a bare wildcard in requirement {rawVersion!r}")
            continue

        if op == "^":
            comparators.extend(_caretToComparators(parsedVersion, precision))
        elif op == "~":
            comparators.extend(_tildeToComparators(parsedVersion, precision))
        elif precision < 3:
            comparators.extend(_wildcardToComparators(op, parsedVersion, precision))
        elif op:
            comparators.append(_makeComparator(op, versionPart, rawVersion))
        else:
            comparators.append(SemVerComparator("==", parsedVersion))

    if not comparators:
        return None

    return SemVerPackRequirement(comparators=tuple(comparators), raw=rawVersion)



def versionSatisfiesRequirement(
    version: SemVerPackVersion,
    requirement: SemVerPackRequirement | None,
) -> bool:
    """
    Checks if a version satisfies the given requirement.

    requirement None => always returns True.
    """
    if requirement is None:
        return True

    for comparator in requirement.comparators:
        if comparator.operator == "==":
            if not (version == comparator.version):
                return False
        elif comparator.operator == ">=":
            if not (version >= comparator.version):
                return False
        elif comparator.operator == "<=":
            if not (version <= comparator.version):
                return False
        elif comparator.operator == ">":
            if not (version > comparator.version):
                return False
        elif comparator.operator == "<":
            if not (version < comparator.version):
                return False
        else:
            raise ValueError(f"Unknown operator {comparator.operator!r}")
    return True
