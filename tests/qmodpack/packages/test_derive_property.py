# tests/qmodpack/packages/test_derive_property.py
from __future__ import annotations
from typing import Any

import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import given, strategies as st  # type: ignore[no-redef]

from qmodpack.packages.derive import LOADER_ID, deriveManifest
from qmodpack.packages.types import ResolvedPackage


# Every combination of the resolver and declaration flags for one dependency
flag_strat = st.sampled_from([None, True, False])
dep_strat = st.fixed_dictionaries({
    "isDeclared": st.booleans(),
    "isRestored": st.booleans(),
    "forced": flag_strat,
    "headerOnly": flag_strat,
    "staticLinking": flag_strat,
    "restoredInclude": flag_strat,
    "hasDownload": st.booleans(),
})


def _buildPackage(deps: list[dict[str, Any]], withLoader: bool) -> ResolvedPackage:
    declared: list[dict] = []
    restored: list[dict] = []
    ids = [f"dep{idx}" for idx in range(len(deps))]
    if withLoader:
        ids.append(LOADER_ID)
        deps = [*deps, {"isDeclared": True, "isRestored": True, "forced": True, "headerOnly": False,
                        "staticLinking": False, "restoredInclude": True, "hasDownload": False}]

    for depId, dep in zip(ids, deps):
        if dep["isDeclared"]:
            declared.append({"id": depId, "versionRange": "^1.0.0", "additionalData": {"includeInPackage": dep["forced"]}})
        if dep["isRestored"]:
            restored.append({
                "id": depId,
                "version": "1.0.0",
                "additionalData": {
                    "headerOnly": dep["headerOnly"],
                    "staticLinking": dep["staticLinking"],
                    "includeInPackage": dep["restoredInclude"],
                    "downloadUrl": f"http://x/{depId}.qmod" if dep["hasDownload"] else None,
                },
            })
    return ResolvedPackage.model_validate({
        "info": {"id": "mymod", "name": "MyMod", "version": "1.0.0"},
        "dependencies": declared,
        "restoredDependencies": restored,
    })


@given(st.lists(dep_strat, max_size=8), st.booleans())
def test_remote_mods_and_library_files_never_overlap(deps: list[dict[str, Any]], withLoader: bool) -> None:
    package = _buildPackage(deps, withLoader)
    manifest = deriveManifest(package, strict=False)

    fileToId = {dep.libraryFileName(): dep.id for dep in package.restoredDependencies}
    remoteIds = {dep.id for dep in manifest.dependencies}
    libraryIds = {fileToId[name] for name in manifest.libraryFiles}

    assert remoteIds.isdisjoint(libraryIds)
    assert LOADER_ID not in libraryIds
    declaredIds = {dep.id for dep in package.dependencies}
    assert remoteIds <= declaredIds
    assert libraryIds <= declaredIds


@given(st.lists(dep_strat, max_size=8))
def test_flags_that_rule_out_bundling_always_win(deps: list[dict[str, Any]]) -> None:
    package = _buildPackage(deps, withLoader=False)
    manifest = deriveManifest(package, strict=False)
    libraryIds = {name[len("lib"):-len(".so")] for name in manifest.libraryFiles}
    remoteIds = {dep.id for dep in manifest.dependencies}

    for idx, dep in enumerate(deps):
        depId = f"dep{idx}"
        if dep["forced"] is False:
            assert depId not in libraryIds
            assert depId not in remoteIds
        if dep["staticLinking"] or dep["restoredInclude"] is False:
            assert depId not in libraryIds
        forcedIn = dep["isDeclared"] and dep["isRestored"] and dep["forced"] is True
        if forcedIn and not dep["hasDownload"] and not dep["staticLinking"] and dep["restoredInclude"] is not False:
            assert depId in libraryIds
