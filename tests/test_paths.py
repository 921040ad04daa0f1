from sketchbox.paths import ensure_directories, get_data_root


def test_ensure_directories(tmp_path):
    root = tmp_path / "data"
    dirs = ensure_directories(root)
    assert root.exists()
    assert (root / "logs").exists()
    assert dirs["settings"] == root / "settings.json"
    assert dirs["database"] == root / "drawings.db"


def test_get_data_root_expands_user(monkeypatch, tmp_path):
    monkeypatch.setenv("HOME", str(tmp_path))
    assert get_data_root({"data_root": "~/sketches"}) == (tmp_path / "sketches").resolve()
