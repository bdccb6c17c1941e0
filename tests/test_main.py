"""Tests for the command-line entry point."""

import pytest

from main_vision_loop import main
from vision_loop.constants import APP_HOME_ENV


@pytest.fixture
def run(data_dir, monkeypatch, capsys):
    monkeypatch.setenv(APP_HOME_ENV, str(data_dir))

    def _run(*args):
        code = main(["--data-dir", str(data_dir), *[str(a) for a in args]])
        out, err = capsys.readouterr()
        return code, out, err

    return _run


def test_create_add_and_list(run, make_file):
    code, out, _ = run("create", "Holiday")
    assert code == 0
    playlist_id = out.strip()

    code, out, _ = run("add", playlist_id, make_file("a.jpg", b"a"), make_file("b.mp4", b"b"))
    assert code == 0
    assert "\timage\t" in out
    assert "\tvideo\t" in out

    code, out, _ = run("playlists")
    assert code == 0
    assert f"{playlist_id}\tHoliday\t2 items\tloop" in out


def test_add_reports_partial_failure(run, make_file, tmp_path):
    _, out, _ = run("create", "Holiday")
    code, out, _ = run("add", out.strip(), make_file("a.jpg"), tmp_path / "missing.jpg")
    assert code == 1
    assert out.count("\n") == 1


def test_order_follows_mode(run, make_file):
    _, out, _ = run("create", "Holiday")
    playlist_id = out.strip()
    run("add", playlist_id, *[make_file(f"{n}.jpg", bytes([n])) for n in range(3)])

    _, out, _ = run("order", playlist_id, "--count", "5")
    assert out.split() == ["0", "1", "2", "0", "1"]

    _, out, _ = run("order", playlist_id, "--count", "3", "--mode", "reverse")
    assert out.split() == ["2", "1", "0"]

    _, out, _ = run("order", playlist_id, "--count", "3", "--mode", "random", "--seed", "4")
    assert sorted(out.split()) == ["0", "1", "2"]


def test_delete_releases_files(run, make_file, data_dir):
    _, out, _ = run("create", "Holiday")
    playlist_id = out.strip()
    run("add", playlist_id, make_file("a.jpg"))

    code, _, _ = run("delete", playlist_id)
    assert code == 0
    _, out, _ = run("stats")
    assert "total_files: 0" in out
    assert "hash_mappings: 0" in out


def test_sweep_removes_orphans(run, data_dir):
    run("stats")
    (data_dir / "media_files" / "stray.jpg").write_bytes(b"x")
    code, out, _ = run("sweep")
    assert code == 0
    assert "Orphans deleted: 1" in out


def test_settings(run):
    code, out, _ = run("settings", "--mode", "random", "--slide", "6", "--limit", "0")
    assert code == 0
    assert "playbackMode: random" in out
    assert "slideDurationSeconds: 6" in out
    assert "maxPlaybackDurationSeconds: -1" in out
    assert "limit: unlimited" in out


def test_settings_amounts_use_units(run):
    code, out, _ = run("settings", "--limit", "2", "--limit-unit", "minutes")
    assert code == 0
    assert "maxPlaybackDurationSeconds: 120" in out
    assert "playbackDurationUnit: minutes" in out
    assert "limit: 2 minutes" in out


def test_errors_exit_non_zero(run):
    code, _, err = run("remove", "pl_missing", "mi_missing")
    assert code == 1
    assert "not found" in err

    code, _, err = run("settings", "--slide", "0")
    assert code == 1
