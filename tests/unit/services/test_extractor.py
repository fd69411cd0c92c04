"""Tests for the external extractor wrapper.

Shell scripts stand in for yt-dlp so the real tool is never needed.
"""

from pathlib import Path

from audiodrop.services.extractor import (
    NOT_STARTED_RETURNCODE,
    TIMEOUT_RETURNCODE,
    ExternalExtractor,
)


def test_build_command(tmp_path):
    extractor = ExternalExtractor(executable="yt-dlp", audio_format="mp3")

    cmd = extractor.build_command("https://youtu.be/x", tmp_path)

    assert cmd == [
        "yt-dlp",
        "-x",
        "--audio-format",
        "mp3",
        "-o",
        str(tmp_path / "%(title).100B.%(ext)s"),
        "https://youtu.be/x",
    ]


def test_from_config(make_config):
    config = make_config(extractor_executable="/opt/yt-dlp", audio_format="opus")

    extractor = ExternalExtractor.from_config(config)

    assert extractor.executable == "/opt/yt-dlp"
    assert extractor.audio_format == "opus"
    assert extractor.timeout_seconds == config.extractor_timeout_seconds


def test_collect_outputs_filters_by_format(tmp_path):
    (tmp_path / "b.mp3").write_bytes(b"b")
    (tmp_path / "a.mp3").write_bytes(b"a")
    (tmp_path / "cover.jpg").write_bytes(b"j")
    (tmp_path / "dir.mp3").mkdir()

    outputs = ExternalExtractor(audio_format="mp3").collect_outputs(tmp_path)

    assert [p.name for p in outputs] == ["a.mp3", "b.mp3"]


class TestRun:
    async def test_success_writes_into_workspace(self, tmp_path, write_script):
        script = write_script('out=$(dirname "$5")\nprintf song > "$out/song.mp3"\necho done')
        workspace = tmp_path / "job"
        workspace.mkdir()
        extractor = ExternalExtractor(executable=str(script), timeout_seconds=10)

        result = await extractor.run("https://youtu.be/x", workspace)

        assert result.ok
        assert result.returncode == 0
        assert "done" in result.stdout
        assert (workspace / "song.mp3").read_bytes() == b"song"

    async def test_failure_captures_stderr(self, tmp_path, write_script):
        script = write_script('echo "ERROR: unsupported URL: $6" >&2\nexit 1')
        extractor = ExternalExtractor(executable=str(script), timeout_seconds=10)

        result = await extractor.run("not-a-url", tmp_path)

        assert not result.ok
        assert result.returncode == 1
        assert "ERROR: unsupported URL: not-a-url" in result.stderr
        assert not result.timed_out

    async def test_timeout_kills_process(self, tmp_path, write_script):
        script = write_script("sleep 30")
        extractor = ExternalExtractor(executable=str(script), timeout_seconds=0.5)

        result = await extractor.run("https://youtu.be/x", tmp_path)

        assert result.timed_out
        assert not result.ok
        assert result.returncode == TIMEOUT_RETURNCODE
        assert "timed out" in result.stderr
        assert result.duration_ms < 30_000

    async def test_missing_executable(self, tmp_path):
        extractor = ExternalExtractor(executable=str(tmp_path / "does-not-exist"))

        result = await extractor.run("https://youtu.be/x", tmp_path)

        assert result.returncode == NOT_STARTED_RETURNCODE
        assert not result.ok
        assert "Could not start" in result.stderr

    async def test_url_is_passed_verbatim(self, tmp_path, write_script):
        script = write_script('printf "%s" "$6"')
        extractor = ExternalExtractor(executable=str(script), timeout_seconds=10)

        result = await extractor.run("https://x.test/?a=1&b=two words", tmp_path)

        assert result.stdout == "https://x.test/?a=1&b=two words"

    async def test_timeout_keeps_output_written_before_kill(self, tmp_path, write_script):
        script = write_script('echo "starting"\necho "ERROR: partial diag" >&2\nsleep 30')
        extractor = ExternalExtractor(executable=str(script), timeout_seconds=1)

        result = await extractor.run("https://youtu.be/x", tmp_path)

        assert result.timed_out
        assert "starting" in result.stdout
        assert result.stderr.startswith("ERROR: partial diag\n")
        assert result.stderr.endswith("Extraction timed out after 1 seconds")

    async def test_large_output_is_fully_captured(self, tmp_path, write_script):
        script = write_script(
            'i=0\nwhile [ $i -lt 5000 ]; do echo "line $i of progress output"; '
            'echo "warn $i" >&2; i=$((i+1)); done'
        )
        extractor = ExternalExtractor(executable=str(script), timeout_seconds=30)

        result = await extractor.run("https://youtu.be/x", tmp_path)

        assert result.ok
        assert result.stdout.count("\n") == 5000
        assert result.stderr.rstrip().endswith("warn 4999")
