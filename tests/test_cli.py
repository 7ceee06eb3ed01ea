"""Tests for the vpm command line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from vpm.cli.vpm_cli import cli
from vpm.realtime.errors import ServiceError
from vpm.realtime.presets import FALLBACK_PRESETS, tags_for_mode


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, tmp_path, fake_client):
    monkeypatch.setenv("DAYDREAM_API_KEY", "test-key")
    monkeypatch.delenv("NEXT_PUBLIC_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("VPM_LOGS_DIR", str(tmp_path / "logs"))
    with (
        patch("vpm.cli.vpm_cli.configure_logging"),
        patch("vpm.cli.vpm_cli.DaydreamClient", return_value=fake_client),
    ):
        yield


def invoke(runner, *args, **kwargs):
    return runner.invoke(cli, ["--no-pretty", "--no-log-file", *args], **kwargs)


class TestStreamCommands:
    def test_create(self, runner, fake_client):
        result = invoke(runner, "create")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["id"] == "stream-1"
        assert data["playback_url"] == "https://lvpr.tv/?v=play-1&embed=1&lowLatency=force"
        fake_client.close.assert_awaited()

    def test_submit_creates_and_patches(self, runner, fake_client):
        result = invoke(runner, "submit", "neon", "--motion", "fast")

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["stream"]["id"] == "stream-1"
        assert "performer in neon" in data["prompt"]
        assert data["motion"] == "fast"
        assert data["style_adapter"] is False

        _, params = fake_client.patch_parameters.await_args.args
        assert params.sampler.num_inference_steps == 50

    def test_submit_to_existing_stream(self, runner, fake_client):
        result = invoke(runner, "submit", "fire", "--stream-id", "abc123")

        assert result.exit_code == 0, result.output
        fake_client.create_session.assert_not_awaited()
        session, _ = fake_client.patch_parameters.await_args.args
        assert session.id == "abc123"

    def test_submit_with_style_image(self, runner, fake_client, tmp_path):
        image = tmp_path / "ref.png"
        image.write_bytes(b"\x89PNG")

        result = invoke(
            runner, "submit", "fire", "--style-image", str(image), "--style-strength", "0.5"
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["style_adapter"] is True
        _, params = fake_client.patch_parameters.await_args.args
        assert params.style_adapter.scale == 0.5

    def test_submit_with_disabled_layer(self, runner, fake_client):
        result = invoke(runner, "submit", "fire", "--disable-layer", "depth")

        assert result.exit_code == 0, result.output
        _, params = fake_client.patch_parameters.await_args.args
        assert [(c.name, c.enabled) for c in params.controlnets] == [
            ("pose", True),
            ("color", True),
            ("depth", False),
        ]

    def test_submit_create_failure(self, runner, fake_client):
        fake_client.create_session.side_effect = ServiceError(401, "Unauthorized")

        result = invoke(runner, "submit", "neon")

        assert result.exit_code == 1
        assert "SessionCreateError" in result.output
        assert '"status": 401' in result.output

    def test_submit_gemini_without_key(self, runner):
        result = invoke(runner, "submit", "Umbrella", "--source", "gemini")

        assert result.exit_code == 1
        assert "GEMINI_API_KEY" in result.output

    def test_missing_api_key(self, runner, monkeypatch):
        monkeypatch.delenv("DAYDREAM_API_KEY")

        result = invoke(runner, "create")

        assert result.exit_code == 2
        assert "MissingCredentialError" in result.output

    def test_live(self, runner, fake_client):
        result = invoke(runner, "live", "--stream-id", "abc123")

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"stream_id": "abc123", "passthrough": True}
        (session,) = fake_client.clear_parameters.await_args.args
        assert session.id == "abc123"

    def test_live_failure(self, runner, fake_client):
        fake_client.clear_parameters.side_effect = ServiceError(500, "boom")

        result = invoke(runner, "live", "--stream-id", "abc123")

        assert result.exit_code == 1
        assert "DispatchError" in result.output

    def test_style(self, runner, fake_client):
        result = invoke(
            runner,
            "style",
            "--stream-id",
            "abc123",
            "--image-url",
            "https://img/1.png",
            "--image-url",
            "https://img/2.png",
            "--scale",
            "0.8",
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["images"] == 2
        _, update = fake_client.patch_parameters.await_args.args
        assert update.scale == 0.8

    def test_status(self, runner, fake_client):
        fake_client.get_stream.return_value = {"id": "abc123", "status": "ONLINE"}

        result = invoke(runner, "status", "--stream-id", "abc123")

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["status"] == "ONLINE"
        fake_client.get_stream.assert_awaited_once_with("abc123")

    def test_interactive(self, runner, fake_client):
        result = invoke(runner, "interactive", input="neon\n:live\n:quit\n")

        assert result.exit_code == 0, result.output
        lines = [json.loads(line) for line in result.output.strip().splitlines()]
        assert lines[0]["stream"]["id"] == "stream-1"
        assert lines[1] == {"passthrough": True}
        fake_client.clear_parameters.assert_awaited_once()


class TestPromptCommands:
    def test_tags(self, runner):
        result = invoke(runner, "tags", "karaoke")

        assert result.exit_code == 0
        assert json.loads(result.output)["tags"] == tags_for_mode("karaoke")

    def test_presets_lists_artists(self, runner):
        result = invoke(runner, "presets")

        assert result.exit_code == 0
        assert "fletch" in json.loads(result.output)["artists"]

    def test_presets_for_artist(self, runner):
        result = invoke(runner, "presets", "Fletch")

        assert result.exit_code == 0
        assert json.loads(result.output)["presets"]

    def test_presets_unknown_artist(self, runner):
        result = invoke(runner, "presets", "nobody")

        assert result.exit_code == 1
        assert "KeyError" in result.output

    def test_questionnaire_without_gemini_uses_fallback(self, runner):
        result = invoke(runner, "questionnaire", "--emotion", "euphoric")

        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["presets"] == list(FALLBACK_PRESETS)

    def test_suggest_song_without_gemini(self, runner):
        result = invoke(runner, "suggest-song", "Umbrella")

        assert result.exit_code == 1
        assert "GEMINI_API_KEY" in result.output
