"""Tests for .bfx package files and export filenames."""

from datetime import datetime

import pytest

PASSWORD = "SuperSecret123!"


class TestExportFilename:

    def test_timestamped_name(self):
        from benefit_vault.export.package_file import generate_export_filename

        name = generate_export_filename(now=datetime(2024, 5, 1, 14, 3, 9))
        assert name == "eligibility-results-2024-05-01-14-03-09"

    def test_custom_prefix(self):
        from benefit_vault.export.package_file import generate_export_filename

        assert generate_export_filename("snap", datetime(2024, 1, 2, 3, 4, 5)) == "snap-2024-01-02-03-04-05"


class TestPackageFile:

    def test_write_read_roundtrip(self, sample_results, tmp_path):
        from benefit_vault.export.envelope import ExportEnvelopeCodec
        from benefit_vault.export.package_file import read_package, write_package

        codec = ExportEnvelopeCodec()
        package = codec.build(sample_results, PASSWORD)
        path = write_package(tmp_path / "export", package)

        assert path.suffix == ".bfx"
        loaded = read_package(path)
        assert loaded == package
        assert codec.parse(loaded, PASSWORD).results.program_ids() == sample_results.program_ids()

    def test_missing_file(self, tmp_path):
        from benefit_vault.exceptions import StorageError
        from benefit_vault.export.package_file import read_package

        with pytest.raises(StorageError):
            read_package(tmp_path / "nope.bfx")

    def test_not_a_package(self, tmp_path):
        from benefit_vault.exceptions import MalformedPackageError
        from benefit_vault.export.package_file import read_package

        path = tmp_path / "bad.bfx"
        path.write_text('{"hello": "world"}', encoding="utf-8")
        with pytest.raises(MalformedPackageError):
            read_package(path)

    def test_binary_garbage(self, tmp_path):
        from benefit_vault.exceptions import MalformedPackageError
        from benefit_vault.export.package_file import read_package

        path = tmp_path / "bad.bfx"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(MalformedPackageError):
            read_package(path)
