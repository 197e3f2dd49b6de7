# tests/qmodpack/packages/test_derive.py
from __future__ import annotations
import logging

import pytest

from qmodpack.core.errors import DerivationError
from qmodpack.modjson import ModDependency
from qmodpack.packages.derive import deriveManifest
from qmodpack.packages.types import ResolvedPackage


def _package(declared: list[dict] | None = None, restored: list[dict] | None = None, **info) -> ResolvedPackage:
    return ResolvedPackage.model_validate({
        "info": {"id": "mymod", "name": "MyMod", "version": "1.0.0", **info},
        "dependencies": declared or [],
        "restoredDependencies": restored or [],
    })


def _dep(depId: str, versionRange: str = "^1.0.0", **flags) -> dict:
    return {"id": depId, "versionRange": versionRange, "additionalData": flags}


def _restored(depId: str, version: str = "1.0.0", **flags) -> dict:
    return {"id": depId, "version": version, "additionalData": flags}


# ----- Scenarios -----

def test_package_without_dependencies():
    manifest = deriveManifest(_package())
    assert manifest.dependencies == ()
    assert manifest.libraryFiles == ()
    assert manifest.modFiles == ("libmymod.so",)
    assert (manifest.id, manifest.name, manifest.version) == ("mymod", "MyMod", "1.0.0")


def test_downloadable_dependency_becomes_remote_mod():
    manifest = deriveManifest(_package(
        declared=[_dep("libA", "^1.0.0")],
        restored=[_restored("libA", downloadUrl="http://x/libA.qmod")],
    ))
    assert manifest.dependencies == (
        ModDependency(id="libA", versionRange="^1.0.0", downloadUrl="http://x/libA.qmod"),
    )
    assert manifest.libraryFiles == ()


def test_plain_shared_library_is_bundled():
    manifest = deriveManifest(_package(
        declared=[_dep("libB")],
        restored=[_restored("libB", headerOnly=False, staticLinking=False)],
    ))
    assert manifest.libraryFiles == ("liblibB.so",)
    assert manifest.dependencies == ()


# ----- Classification rules -----

def test_remote_mod_keeps_declared_range_not_resolved_version():
    manifest = deriveManifest(_package(
        declared=[_dep("libA", ">=1.2.0, <2.0.0")],
        restored=[_restored("libA", version="1.4.2", downloadUrl="http://x/libA.qmod")],
    ))
    assert manifest.dependencies[0].versionRange == ">=1.2.0, <2.0.0"


def test_header_only_without_download_is_excluded():
    manifest = deriveManifest(_package(
        declared=[_dep("headers")],
        restored=[_restored("headers", headerOnly=True)],
    ))
    assert manifest.dependencies == ()
    assert manifest.libraryFiles == ()


def test_header_only_with_download_is_a_remote_mod():
    manifest = deriveManifest(_package(
        declared=[_dep("core")],
        restored=[_restored("core", headerOnly=True, downloadUrl="http://x/core.qmod")],
    ))
    assert [dep.id for dep in manifest.dependencies] == ["core"]
    assert manifest.libraryFiles == ()


def test_transitive_dependencies_are_never_bundled():
    manifest = deriveManifest(_package(
        declared=[_dep("libB")],
        restored=[_restored("libB"), _restored("transitive"), _restored("transitiveMod", downloadUrl="http://x/t.qmod")],
    ))
    assert manifest.libraryFiles == ("liblibB.so",)
    assert manifest.dependencies == ()


def test_statically_linked_dependency_is_not_bundled():
    manifest = deriveManifest(_package(
        declared=[_dep("static")],
        restored=[_restored("static", staticLinking=True)],
    ))
    assert manifest.libraryFiles == ()


def test_restored_exclusion_flag_keeps_library_out():
    manifest = deriveManifest(_package(
        declared=[_dep("libB")],
        restored=[_restored("libB", includeInPackage=False)],
    ))
    assert manifest.libraryFiles == ()


@pytest.mark.parametrize("flags", [{}, {"headerOnly": False}, {"includeInPackage": True}, {"staticLinking": False}])
def test_loader_is_never_bundled(flags):
    manifest = deriveManifest(_package(
        declared=[_dep("modloader", includeInPackage=True)],
        restored=[_restored("modloader", **flags)],
    ))
    assert manifest.libraryFiles == ()


def test_loader_ids_can_be_overridden():
    manifest = deriveManifest(
        _package(declared=[_dep("scotland2"), _dep("modloader")], restored=[_restored("scotland2"), _restored("modloader")]),
        loaderIds=["scotland2"],
    )
    assert manifest.libraryFiles == ("libmodloader.so",)


def test_loader_ids_from_settings(writeSettings):
    writeSettings({"derivation": {"loaderIds": ["modloader", "scotland2"]}})
    manifest = deriveManifest(_package(
        declared=[_dep("scotland2"), _dep("libB")],
        restored=[_restored("scotland2"), _restored("libB")],
    ))
    assert manifest.libraryFiles == ("liblibB.so",)


def test_loader_ids_setting_may_be_a_single_id(writeSettings):
    writeSettings({"derivation": {"loaderIds": "scotland2"}})
    manifest = deriveManifest(_package(
        declared=[_dep("scotland2"), _dep("s")],
        restored=[_restored("scotland2"), _restored("s")],
    ))
    assert manifest.libraryFiles == ("libs.so",)


# ----- Force include / exclude -----

def test_force_exclude_wins_over_every_other_flag():
    manifest = deriveManifest(_package(
        declared=[_dep("libB", includeInPackage=False), _dep("libA", includeInPackage=False)],
        restored=[_restored("libB", headerOnly=False), _restored("libA", downloadUrl="http://x/libA.qmod")],
    ))
    assert manifest.libraryFiles == ()
    assert manifest.dependencies == ()


def test_force_include_bundles_header_only_dependency():
    manifest = deriveManifest(_package(
        declared=[_dep("headers", includeInPackage=True)],
        restored=[_restored("headers", headerOnly=True)],
    ))
    assert manifest.libraryFiles == ("libheaders.so",)


def test_force_include_does_not_bundle_static_library():
    manifest = deriveManifest(_package(
        declared=[_dep("static", includeInPackage=True)],
        restored=[_restored("static", staticLinking=True)],
    ))
    assert manifest.libraryFiles == ()
    assert manifest.dependencies == ()


def test_force_include_keeps_restored_exclusion():
    manifest = deriveManifest(_package(
        declared=[_dep("libB", includeInPackage=True)],
        restored=[_restored("libB", includeInPackage=False)],
    ))
    assert manifest.libraryFiles == ()


def test_force_include_of_downloadable_mod_stays_remote():
    manifest = deriveManifest(_package(
        declared=[_dep("libA", includeInPackage=True)],
        restored=[_restored("libA", headerOnly=True, downloadUrl="http://x/libA.qmod")],
    ))
    assert [dep.id for dep in manifest.dependencies] == ["libA"]
    assert manifest.libraryFiles == ()


# ----- Partition -----

def test_remote_mods_and_library_files_are_disjoint():
    declared = [_dep(f"dep{i}", includeInPackage=force) for i, force in enumerate([None, True, False, None, None, True])]
    restored = [
        _restored("dep0", downloadUrl="http://x/0.qmod"),
        _restored("dep1", downloadUrl="http://x/1.qmod", headerOnly=True),
        _restored("dep2"),
        _restored("dep3", headerOnly=True),
        _restored("dep4", staticLinking=True, downloadUrl="http://x/4.qmod"),
        _restored("dep5"),
        _restored("dep6"),
    ]
    manifest = deriveManifest(_package(declared=declared, restored=restored))

    remoteIds = {dep.id for dep in manifest.dependencies}
    libraryIds = {name[len("lib"):-len(".so")] for name in manifest.libraryFiles}
    assert remoteIds == {"dep0", "dep1", "dep4"}
    assert libraryIds == {"dep5"}
    assert remoteIds.isdisjoint(libraryIds)


def test_remote_mods_follow_declaration_order():
    manifest = deriveManifest(_package(
        declared=[_dep("b"), _dep("a")],
        restored=[_restored("a", downloadUrl="http://x/a.qmod"), _restored("b", downloadUrl="http://x/b.qmod")],
    ))
    assert [dep.id for dep in manifest.dependencies] == ["b", "a"]


# ----- Missing resolver data -----

def test_unrestored_dependency_is_skipped_in_lenient_mode(caplog):
    with caplog.at_level(logging.WARNING, logger="qmodpack.packages.derive"):
        manifest = deriveManifest(_package(declared=[_dep("ghost")]), strict=False)
    assert manifest.dependencies == ()
    assert manifest.libraryFiles == ()
    assert "ghost" in caplog.text


def test_unrestored_dependency_fails_in_strict_mode():
    with pytest.raises(DerivationError) as excinfo:
        deriveManifest(_package(declared=[_dep("ghost")]), strict=True)
    assert excinfo.value.stage == "derive"


def test_strict_mode_from_settings(writeSettings):
    writeSettings({"derivation": {"strict": True}})
    with pytest.raises(DerivationError):
        deriveManifest(_package(declared=[_dep("ghost")]))


def test_resolved_version_outside_range_warns_in_lenient_mode(caplog):
    with caplog.at_level(logging.WARNING, logger="qmodpack.packages.derive"):
        manifest = deriveManifest(_package(
            declared=[_dep("libB", "^1.0.0")],
            restored=[_restored("libB", version="2.1.0")],
        ), strict=False)
    assert manifest.libraryFiles == ("liblibB.so",)
    assert "2.1.0" in caplog.text


def test_resolved_version_outside_range_fails_in_strict_mode():
    with pytest.raises(DerivationError):
        deriveManifest(_package(
            declared=[_dep("libA", "1.2.*")],
            restored=[_restored("libA", version="1.3.0", downloadUrl="http://x/libA.qmod")],
        ), strict=True)


def test_wildcard_range_is_checked_and_kept_verbatim():
    manifest = deriveManifest(_package(
        declared=[_dep("libA", "1.x")],
        restored=[_restored("libA", version="1.7.2", downloadUrl="http://x/libA.qmod")],
    ), strict=True)
    assert manifest.dependencies[0].versionRange == "1.x"


def test_unreadable_resolved_version_is_a_derivation_error():
    with pytest.raises(DerivationError):
        deriveManifest(_package(declared=[_dep("libB")], restored=[_restored("libB", version="one")]))


def test_unusable_library_name_is_a_derivation_error():
    with pytest.raises(DerivationError):
        deriveManifest(_package(declared=[_dep("libB")], restored=[_restored("libB", overrideSoName="  ")]))


def test_invalid_declared_range_is_a_derivation_error():
    with pytest.raises(DerivationError):
        deriveManifest(_package(
            declared=[_dep("libA", "^nope")],
            restored=[_restored("libA", downloadUrl="http://x/libA.qmod")],
        ))


# ----- Other fields -----

def test_override_so_names():
    manifest = deriveManifest(_package(
        declared=[_dep("libB")],
        restored=[_restored("libB", overrideSoName="libbeeb.so")],
        overrideSoName="libcustom.so",
    ))
    assert manifest.modFiles == ("libcustom.so",)
    assert manifest.libraryFiles == ("libbeeb.so",)


def test_caller_fields_are_copied():
    manifest = deriveManifest(
        _package(),
        author="someone",
        packageId="com.beatgames.beatsaber",
        packageVersion="1.37.0",
        isLibrary=True,
        copyExtensions=[{"extension": "qsaber", "destination": "/sdcard/sabers"}],
    )
    assert manifest.author == "someone"
    assert manifest.packageId == "com.beatgames.beatsaber"
    assert manifest.isLibrary is True
    assert manifest.copyExtensions[0].extension == "qsaber"


def test_unknown_caller_field_is_rejected():
    with pytest.raises(TypeError):
        deriveManifest(_package(), libraryFiles=["nope.so"])


def test_targets_newest_generation_by_default():
    manifest = deriveManifest(_package())
    assert manifest.schemaVersion == "1.2.0"
    assert manifest.modloader == "Scotland2"


def test_default_modloader_from_settings(writeSettings):
    writeSettings({"manifest": {"defaultModloader": "QuestLoader"}})
    assert deriveManifest(_package()).modloader == "QuestLoader"


def test_explicit_schema_version():
    manifest = deriveManifest(_package(), schemaVersion="1.0.0")
    assert manifest.schemaVersion == "1.0.0"
    assert manifest.modloader is None


def test_package_without_id_fails():
    with pytest.raises(DerivationError):
        deriveManifest(_package(id=""))


def test_derivation_does_not_touch_input():
    package = _package(declared=[_dep("libB")], restored=[_restored("libB")])
    before = package.model_dump()
    deriveManifest(package)
    assert package.model_dump() == before
