from unittest.mock import patch

import pytest

from conftest import PLAYLIST_ID, FakeCapturer, FakeCatalog, FakeSummarizer, make_items
from playlist_digest import pipeline
from playlist_digest.cli import build_parser, main
from playlist_digest.models import DigestConfig, RunConfig


def test_cli_help_displays():
    """Test --help works without errors."""
    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0


def test_cli_summarize_help():
    with pytest.raises(SystemExit) as exc_info:
        main(["summarize", "--help"])
    assert exc_info.value.code == 0


def test_parse_summarize_options():
    args = build_parser().parse_args(
        ["summarize", "-p", "PL1", "-l", "en", "-o", "out", "-c", "3", "--no-screenshots", "-r", "2"]
    )
    assert args.playlist == "PL1"
    assert args.locale == "en"
    assert args.output == "out"
    assert args.concurrency == 3
    assert args.no_screenshots is True
    assert args.retry == 2


def test_status_requires_playlist():
    with pytest.raises(SystemExit) as exc_info:
        main(["status"])
    assert exc_info.value.code == 2


def test_summarize_requires_playlist_or_video(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["summarize"])
    assert exc_info.value.code == 1
    assert "--playlist or --video" in capsys.readouterr().out


def test_summarize_missing_api_key_exits_1(monkeypatch, capsys):
    monkeypatch.delenv("YOUTUBE_API_KEY", raising=False)
    with pytest.raises(SystemExit) as exc_info:
        main(["summarize", "-p", "PL1"])
    assert exc_info.value.code == 1
    assert "YOUTUBE_API_KEY" in capsys.readouterr().out


def test_summarize_playlist_runs_pipeline(temp_output):
    collaborators = (FakeCatalog(make_items("A")), FakeSummarizer(), FakeCapturer())
    with patch("playlist_digest.cli._build_collaborators", return_value=collaborators):
        with pytest.raises(SystemExit) as exc_info:
            main(["summarize", "-p", PLAYLIST_ID, "-o", str(temp_output), "-l", "en"])
    assert exc_info.value.code == 0
    assert (temp_output / f"playlist-{PLAYLIST_ID}" / "state.json").exists()


def test_status_output(temp_output, capsys):
    config = DigestConfig(run=RunConfig(output_dir=str(temp_output)))
    pipeline.run_playlist(
        config,
        PLAYLIST_ID,
        FakeCatalog(make_items("A", "B")),
        FakeSummarizer(fail_ids={"B"}),
        FakeCapturer(),
    )
    capsys.readouterr()

    with pytest.raises(SystemExit) as exc_info:
        main(["status", "-p", PLAYLIST_ID, "-o", str(temp_output)])
    assert exc_info.value.code == 0

    out = capsys.readouterr().out
    assert "Completed:            1" in out
    assert "Failed:               1" in out
    assert "Video B" in out
    assert "exploded" in out


def test_status_missing_state_exits_1(temp_output, capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["status", "-p", "missing", "-o", str(temp_output)])
    assert exc_info.value.code == 1
    assert "No state file" in capsys.readouterr().out


def test_retry_command(temp_output, capsys):
    config = DigestConfig(run=RunConfig(output_dir=str(temp_output)))
    pipeline.run_playlist(
        config,
        PLAYLIST_ID,
        FakeCatalog(make_items("A")),
        FakeSummarizer(fail_ids={"A"}),
        FakeCapturer(),
    )

    with pytest.raises(SystemExit) as exc_info:
        main(["retry", "-p", PLAYLIST_ID, "-o", str(temp_output)])
    assert exc_info.value.code == 0
    assert "Marked 1 failed videos for retry" in capsys.readouterr().out


def test_no_command_shows_help(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 0
    assert "usage:" in capsys.readouterr().out.lower()
