from vision_loop.app import VisionLoopApp
from vision_loop.core.models import PlaybackMode


def test_build_wires_managers_and_sweeps(data_dir):
    media_dir = data_dir / "media_files"
    media_dir.mkdir()
    (media_dir / "leftover.jpg").write_bytes(b"x")

    app = VisionLoopApp(user_data_dir=data_dir).build(background_sweep=False)

    assert app.playlist_manager.content_store is app.content_store
    assert not (media_dir / "leftover.jpg").exists()


def test_session_uses_current_settings(data_dir, make_file, fake_clock):
    app = VisionLoopApp(user_data_dir=data_dir).build(sweep=False)
    app.settings_manager.set_playback_mode("reverse")
    playlist = app.playlist_manager.create_playlist("Trip")
    app.playlist_manager.add_media_files(playlist.id, [make_file("a.jpg", b"a"), make_file("b.jpg", b"b")])

    session = app.create_session(playlist.id, clock=fake_clock)
    session.start()
    assert session.sequencer.mode is PlaybackMode.REVERSE
    assert session.current_index == 1

    replacement = app.create_session(playlist.id, clock=fake_clock)
    assert not session.is_active
    assert replacement is app.session

    replacement.start()
    app.on_stop()
    assert not replacement.is_active
    assert fake_clock.pending == []
