"""Tests for the benefit-vault command line."""

import json

import pytest

PASSWORD = "SuperSecret123!"


@pytest.fixture
def results_file(tmp_path, sample_results):
    path = tmp_path / "results.json"
    path.write_text(json.dumps(sample_results.to_dict()), encoding="utf-8")
    return path


@pytest.fixture
def answer_prompts(monkeypatch):
    """Feed getpass prompts from a list."""
    import getpass

    def _answer(*answers):
        replies = iter(answers)
        monkeypatch.setattr(getpass, "getpass", lambda prompt="": next(replies))

    return _answer


class TestExportImport:

    def test_export_then_import(self, tmp_path, results_file, answer_prompts, capsys):
        from benefit_vault.__main__ import main

        package = tmp_path / "out.bfx"
        answer_prompts(PASSWORD, PASSWORD)
        assert main(["export", str(results_file), "-o", str(package), "--user-name", "Jane"]) == 0
        assert set(json.loads(package.read_text(encoding="utf-8"))) == {"salt", "encrypted"}
        assert "Strong" in capsys.readouterr().out

        decrypted = tmp_path / "decrypted.json"
        answer_prompts(PASSWORD)
        assert main(["import", str(package), "-o", str(decrypted)]) == 0
        envelope = json.loads(decrypted.read_text(encoding="utf-8"))
        assert envelope["version"] == "1.0.0"
        assert envelope["metadata"]["userName"] == "Jane"
        assert [p["programId"] for p in envelope["results"]["qualified"]] == ["snap"]

    def test_import_wrong_password(self, tmp_path, results_file, answer_prompts, capsys):
        from benefit_vault.__main__ import main

        package = tmp_path / "out.bfx"
        answer_prompts(PASSWORD, PASSWORD)
        main(["export", str(results_file), "-o", str(package)])

        answer_prompts("WrongPassword123!")
        assert main(["import", str(package)]) == 1
        assert "Invalid password or corrupted file" in capsys.readouterr().err

    def test_export_password_mismatch(self, tmp_path, results_file, answer_prompts, capsys):
        from benefit_vault.__main__ import main

        package = tmp_path / "out.bfx"
        answer_prompts(PASSWORD, "SomethingElse123!")
        assert main(["export", str(results_file), "-o", str(package)]) == 1
        assert not package.exists()
        assert "Passwords do not match" in capsys.readouterr().err

    def test_bad_results_file(self, tmp_path, answer_prompts, capsys):
        from benefit_vault.__main__ import main

        bad = tmp_path / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        answer_prompts(PASSWORD, PASSWORD)
        assert main(["export", str(bad)]) == 1
        assert "not valid JSON" in capsys.readouterr().err


class TestPrint:

    def test_print_writes_html(self, tmp_path, results_file):
        from benefit_vault.__main__ import main

        out = tmp_path / "results.html"
        assert main(["print", str(results_file), "-o", str(out), "--name", "Jane"]) == 0
        html = out.read_text(encoding="utf-8")
        assert "Prepared for: Jane" in html


class TestVaultCommands:

    def test_save_list_show_tag_delete(self, tmp_path, results_file, answer_prompts, capsys):
        from benefit_vault.__main__ import main

        db = str(tmp_path / "vault.db")

        answer_prompts(PASSWORD)
        assert main(["vault", "--db", db, "save", str(results_file), "--tag", "renewal"]) == 0
        record_id = capsys.readouterr().out.strip().splitlines()[-1]
        assert len(record_id) == 32

        answer_prompts(PASSWORD)
        assert main(["vault", "--db", db, "list"]) == 0
        listing = capsys.readouterr().out
        assert record_id in listing
        assert "1/4 qualified" in listing
        assert "[renewal]" in listing

        answer_prompts(PASSWORD)
        assert main(["vault", "--db", db, "tag", record_id, "done", "--notes", "submitted"]) == 0
        capsys.readouterr()

        answer_prompts(PASSWORD)
        assert main(["vault", "--db", db, "show", record_id]) == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["tags"] == ["done"]
        assert shown["notes"] == "submitted"

        answer_prompts(PASSWORD)
        assert main(["vault", "--db", db, "delete", record_id]) == 0
        capsys.readouterr()

        answer_prompts(PASSWORD)
        assert main(["vault", "--db", db, "show", record_id]) == 1

    def test_wrong_vault_password(self, tmp_path, results_file, answer_prompts, capsys):
        from benefit_vault.__main__ import main

        db = str(tmp_path / "vault.db")
        answer_prompts(PASSWORD)
        main(["vault", "--db", db, "save", str(results_file)])
        capsys.readouterr()

        answer_prompts("NotTheVaultPassword")
        assert main(["vault", "--db", db, "list"]) == 1
        assert "Incorrect vault password" in capsys.readouterr().err

    def test_tag_unknown_record(self, tmp_path, answer_prompts, capsys):
        from benefit_vault.__main__ import main

        db = str(tmp_path / "vault.db")
        answer_prompts(PASSWORD)
        assert main(["vault", "--db", db, "tag", "missing", "x"]) == 1
        assert "Saved result not found" in capsys.readouterr().err

    def test_notes_only_keeps_tags(self, tmp_path, results_file, answer_prompts, capsys):
        from benefit_vault.__main__ import main

        db = str(tmp_path / "vault.db")
        answer_prompts(PASSWORD)
        main(["vault", "--db", db, "save", str(results_file), "--tag", "renewal"])
        record_id = capsys.readouterr().out.strip().splitlines()[-1]

        answer_prompts(PASSWORD)
        assert main(["vault", "--db", db, "tag", record_id, "--notes", "called office"]) == 0
        capsys.readouterr()

        answer_prompts(PASSWORD)
        main(["vault", "--db", db, "show", record_id])
        shown = json.loads(capsys.readouterr().out)
        assert shown["tags"] == ["renewal"]
        assert shown["notes"] == "called office"

        answer_prompts(PASSWORD)
        assert main(["vault", "--db", db, "tag", record_id, "--clear-tags"]) == 0
        capsys.readouterr()

        answer_prompts(PASSWORD)
        main(["vault", "--db", db, "show", record_id])
        shown = json.loads(capsys.readouterr().out)
        assert shown["tags"] == []
        assert shown["notes"] == "called office"
