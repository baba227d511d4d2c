import zipfile
from pathlib import Path

import pytest

from conftest import FakeRunner, build_ipa
from iparesign.src.core.errors import (
    ExtractionFailed,
    InvalidArchiveLayout,
    InvalidArchivePath,
    PackagingFailed,
)
from iparesign.src.ipa.archive import (
    extract_archive,
    locate_app_bundle,
    package_archive,
    resolve_output_path,
)


def test_extract_archive(tmp_path, ipa_path, config, runner):
    dest = tmp_path / "work"
    dest.mkdir()
    extract_archive(runner, config, ipa_path, dest)

    assert (dest / "Payload" / "App.app" / "Info.plist").is_file()
    assert runner.calls[0] == [config.unzip, "-q", str(ipa_path.resolve()), "-d", str(dest)]


def test_extract_missing_archive(tmp_path, config, runner):
    with pytest.raises(InvalidArchivePath):
        extract_archive(runner, config, tmp_path / "missing.ipa", tmp_path)
    assert runner.calls == []


def test_extract_failure(tmp_path, ipa_path, config):
    with pytest.raises(ExtractionFailed) as excinfo:
        extract_archive(FakeRunner(unzip_returncode=1), config, ipa_path, tmp_path)
    assert excinfo.value.diagnostic == "unzip: bad archive"


def test_extract_empty_archive(tmp_path, config, runner):
    empty = tmp_path / "empty.ipa"
    zipfile.ZipFile(empty, "w").close()
    dest = tmp_path / "work"
    dest.mkdir()
    with pytest.raises(ExtractionFailed):
        extract_archive(runner, config, empty, dest)


def test_locate_app_bundle(tmp_path):
    app = tmp_path / "Payload" / "App.app"
    app.mkdir(parents=True)
    (tmp_path / "Payload" / ".DS_Store").write_bytes(b"")
    assert locate_app_bundle(tmp_path) == app


def test_locate_without_payload(tmp_path):
    with pytest.raises(InvalidArchiveLayout):
        locate_app_bundle(tmp_path)


def test_locate_multiple_bundles(tmp_path):
    for name in ("One.app", "Two.app"):
        (tmp_path / "Payload" / name).mkdir(parents=True)
    with pytest.raises(InvalidArchiveLayout) as excinfo:
        locate_app_bundle(tmp_path)
    assert "One.app" in excinfo.value.message


@pytest.mark.parametrize(
    "requested, expected",
    [("out/App", "out/App.ipa"), ("out/App.ipa", "out/App.ipa"), ("out/App.IPA", "out/App.IPA"), ("out/My.app", "out/My.app.ipa")],
)
def test_resolve_output_path(tmp_path, requested, expected):
    assert resolve_output_path(tmp_path / requested) == (tmp_path / expected).resolve()


def test_package_archive_runs_zip_from_scratch_root(tmp_path, config, runner):
    root = tmp_path / "work"
    (root / "Payload" / "App.app").mkdir(parents=True)
    (root / "Payload" / "App.app" / "Info.plist").write_bytes(b"plist")
    (root / "entitlements.plist").write_bytes(b"ents")

    output = package_archive(runner, config, root, tmp_path / "dist" / "App")

    assert output == (tmp_path / "dist" / "App.ipa").resolve()
    cmd = runner.calls[-1]
    assert cmd == [config.zip, "-qry", str(output), "Payload"]
    with zipfile.ZipFile(output) as zf:
        assert "Payload/App.app/Info.plist" in zf.namelist()
        assert "entitlements.plist" not in zf.namelist()


def test_package_archive_failure(tmp_path, config):
    root = tmp_path / "work"
    (root / "Payload").mkdir(parents=True)
    output = tmp_path / "App.ipa"
    output.write_bytes(b"old")

    with pytest.raises(PackagingFailed) as excinfo:
        package_archive(FakeRunner(zip_returncode=15), config, root, output)

    assert excinfo.value.diagnostic == "zip I/O error"
    # Old file is removed before zipping
    assert not output.exists()


def test_package_archive_output_parent_is_a_file(tmp_path, config, runner):
    root = tmp_path / "work"
    (root / "Payload").mkdir(parents=True)
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"")

    with pytest.raises(PackagingFailed) as excinfo:
        package_archive(runner, config, root, blocker / "out")

    assert excinfo.value.diagnostic
    assert "zip" not in runner.tools()


def test_package_archive_output_is_a_directory(tmp_path, config, runner):
    root = tmp_path / "work"
    (root / "Payload").mkdir(parents=True)
    output = tmp_path / "out.ipa"
    output.mkdir()

    with pytest.raises(PackagingFailed):
        package_archive(runner, config, root, output)

    assert output.is_dir()
    assert "zip" not in runner.tools()
