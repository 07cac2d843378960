"""Tests for collecting, checking and writing project builds."""

import zipfile

import pytest

from tontoo import bundle
from tontoo.builder import build_in_memory, build_project, check_project, collect_project_files
from tontoo.errors import BuildError, BuildSyntaxError


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "demo"
    root.mkdir()
    (root / "tontoo.json").write_text('{"name": "shop", "main": "Main.tont"}')
    (root / "Main.tont").write_text('# entry point\nload:\n{\n  "greeter"\n}\nconsole.log: "ready"\n')
    (root / "public").mkdir()
    (root / "public" / "index.html").write_text("<h1>shop</h1>")
    packages = root / "tont-packets" / "greeter"
    packages.mkdir(parents=True)
    (packages / "main.tont").write_text('# greet\nconsole.log: "hello"\n')
    (root / "build").mkdir()
    (root / "build" / "old.tontoo").write_text("stale")
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref")
    return root


def test_collect_skips_build_output_and_vcs(project, settings) -> None:
    files = collect_project_files(project, settings)
    assert "build/old.tontoo" not in files
    assert ".git/HEAD" not in files
    assert files["public/index.html"] == "<h1>shop</h1>"


def test_packages_are_collected_under_their_prefix(project, settings) -> None:
    files = collect_project_files(project, settings)
    assert files["tont-packets/greeter/main.tont"].endswith('console.log: "hello"\n')
    keys = list(files)
    assert keys.index("tont-packets/greeter/main.tont") > keys.index("public/index.html")


def test_empty_project_is_rejected(tmp_path, settings) -> None:
    with pytest.raises(BuildError, match="No data found to build"):
        collect_project_files(tmp_path, settings)


def test_check_project_only_inspects_sources(settings) -> None:
    check_project({"Main.tont": 'console.log: "x"', "notes.txt": "load:"}, settings)
    with pytest.raises(BuildSyntaxError):
        check_project({"Main.tont": "copyFile {\n"}, settings)


def test_build_writes_all_artefacts(project, settings) -> None:
    result = build_project(project, settings=settings)

    assert result.name == "shop"
    assert result.bundle.name == "shop.tontoo"
    assert result.distributable.name == "shop_no_comments.tontoo"
    assert result.source_archive.name == "shop_source.zip"
    assert result.bundle.parent == project / "build"

    files = bundle.decode(result.bundle.read_bytes(), secret=settings.secret_key)
    assert files["Main.tont"].startswith("# entry point")
    assert result.file_count == len(files)

    stripped = bundle.decode(result.distributable.read_bytes(), secret=settings.secret_key)
    assert "# entry point" not in stripped["Main.tont"]
    assert "# greet" not in stripped["tont-packets/greeter/main.tont"]
    assert stripped["public/index.html"] == "<h1>shop</h1>"

    with zipfile.ZipFile(result.source_archive) as archive:
        assert sorted(archive.namelist()) == sorted(files)


def test_build_name_falls_back_to_directory(tmp_path, settings) -> None:
    root = tmp_path / "plain"
    root.mkdir()
    (root / "Main.tont").write_text('console.log: "x"\n')
    out = tmp_path / "out"
    result = build_project(root, out, settings)
    assert result.bundle == out / "plain.tontoo"


def test_syntax_error_writes_nothing(project, settings) -> None:
    (project / "Broken.tont").write_text('VB: A: "1"\nrun:\n')
    out = project / "fresh-build"
    with pytest.raises(BuildSyntaxError) as info:
        build_project(project, out, settings)
    assert info.value.path == "Broken.tont"
    assert not out.exists()


def test_build_in_memory_returns_bundle_and_manifest(project, settings) -> None:
    data, manifest = build_in_memory(project, settings)
    assert manifest.main == "Main.tont"
    assert "Main.tont" in bundle.decode(data, secret=settings.secret_key)
