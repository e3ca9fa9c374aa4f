import json

from doctorfinder.cli import main


def test_cli_add_list_search_delete(monkeypatch, tmp_path, capsys):
    monkeypatch.setenv("DOCTORFINDER_STORE_BACKEND", "json")
    monkeypatch.setenv("DOCTORFINDER_STORE_PATH", str(tmp_path / "doctors.json"))

    assert main(["add", "--name", "Dr. Rao", "--specialty", "Cardiology", "--lat", "12.97", "--lng", "77.59", "--json"]) == 0
    created = json.loads(capsys.readouterr().out)
    assert main(["add", "--name", "Dr. Far", "--specialty", "Neurology", "--lat", "13.5", "--lng", "78.2"]) == 0
    capsys.readouterr()

    assert main(["list", "--json"]) == 0
    assert [d["name"] for d in json.loads(capsys.readouterr().out)] == ["Dr. Rao", "Dr. Far"]

    assert main(["search", "--lat", "12.98", "--lng", "77.60", "--radius", "10", "--mode", "within", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["count"] == 1
    assert data["results"][0]["id"] == created["id"]

    assert main(["delete", created["id"]]) == 0
    assert main(["delete", created["id"]]) == 1


def test_cli_reports_domain_errors(capsys):
    assert main(["search", "--lat", "95", "--lng", "0"]) == 2
    assert "Invalid" in capsys.readouterr().err


def test_cli_import_missing_file_is_a_clean_error(tmp_path, capsys):
    assert main(["import", str(tmp_path / "missing.csv")]) == 2
    err = capsys.readouterr().err
    assert err.startswith("Error:")
    assert "missing.csv" in err
