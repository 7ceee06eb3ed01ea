"""CLI interface for VPM stream control.

Drives a Daydream stream directly from the terminal. All commands print JSON.
Errors go to stderr as JSON with exit code 1; a missing API key exits with 2.
"""

import asyncio
import json
import sys

import click

from vpm.logs_config import cleanup_old_logs, configure_logging
from vpm.realtime.augment import create_augmenter
from vpm.realtime.composer import load_style_reference
from vpm.realtime.config import StreamConfig
from vpm.realtime.controller import SessionController
from vpm.realtime.dispatch import DaydreamClient
from vpm.realtime.errors import MissingCredentialError, ServiceError, SubmitError
from vpm.realtime.params import (
    ArtistQuestionnaire,
    GenerationIntent,
    ModeTag,
    MotionProfile,
    Session,
)
from vpm.realtime.presets import (
    CANONICAL_LAYER_ORDER,
    artist_presets,
    list_artists,
    tags_for_mode,
)

MODE_CHOICES = [m.value for m in ModeTag]
MOTION_CHOICES = [m.value for m in MotionProfile]


def output(data, ctx):
    if ctx.obj.get("pretty"):
        click.echo(json.dumps(data, indent=2))
    else:
        click.echo(json.dumps(data))


def handle_error(error: Exception):
    payload = {"error": str(error), "type": type(error).__name__}
    service_error = getattr(error, "service_error", error)
    if isinstance(service_error, ServiceError):
        payload["status"] = service_error.status
    click.echo(json.dumps(payload), err=True)
    sys.exit(1)


def load_config(ctx) -> StreamConfig:
    try:
        return StreamConfig.from_env()
    except MissingCredentialError as e:
        click.echo(json.dumps({"error": str(e), "type": type(e).__name__}), err=True)
        sys.exit(2)


def build_controller(ctx, source: str = "local") -> SessionController:
    config = load_config(ctx)
    try:
        augmenter = create_augmenter(source, config.gemini_api_key, config.gemini_model)
    except ValueError as e:
        handle_error(e)
    return SessionController(DaydreamClient(config), config, augmenter=augmenter)


def session_info(session: Session | None) -> dict | None:
    if session is None:
        return None
    return {
        "id": session.id,
        "playback_id": session.output_playback_id,
        "playback_url": session.playback_url,
        "whip_url": session.whip_url,
    }


def attach_stream(controller: SessionController, stream_id, playback_id, whip_url):
    """Adopt an existing stream instead of creating one."""
    if stream_id:
        controller.store.set(
            Session(
                id=stream_id,
                output_playback_id=playback_id or "",
                whip_url=whip_url or "",
            )
        )


def stream_options(f):
    f = click.option("--whip-url", default=None, help="WHIP URL of an existing stream")(f)
    f = click.option("--playback-id", default=None, help="Playback ID of an existing stream")(f)
    f = click.option("--stream-id", default=None, help="Reuse an existing stream")(f)
    return f


@click.group()
@click.option("--pretty/--no-pretty", default=True, help="Pretty print JSON output")
@click.option("--verbose", is_flag=True, help="Debug logging")
@click.option("--log-file/--no-log-file", default=True, help="Also log to a rotating file")
@click.pass_context
def cli(ctx, pretty, verbose, log_file):
    """VPM stream control - steer a Daydream generative-video stream."""
    ctx.ensure_object(dict)
    ctx.obj["pretty"] = pretty
    configure_logging(verbose=verbose, log_to_file=log_file)
    if log_file:
        cleanup_old_logs()


# --- Stream lifecycle ---


@cli.command()
@click.pass_context
def create(ctx):
    """Create a new stream."""
    controller = build_controller(ctx)

    async def _run():
        try:
            return await controller.ensure_session()
        finally:
            await controller.close()

    try:
        session = asyncio.run(_run())
    except SubmitError as e:
        handle_error(e)
    output(session_info(session), ctx)


@cli.command()
@click.argument("text")
@click.option("--mode", type=click.Choice(MODE_CHOICES), default=ModeTag.AMBIENT.value)
@click.option(
    "--motion", type=click.Choice(MOTION_CHOICES), default=MotionProfile.MEDIUM.value
)
@click.option("--style-image", type=click.Path(exists=True, dir_okay=False), default=None)
@click.option("--style-strength", type=click.FloatRange(0.0, 2.0), default=1.3)
@click.option(
    "--disable-layer",
    "disabled_layers",
    type=click.Choice(list(CANONICAL_LAYER_ORDER)),
    multiple=True,
    help="Turn off a conditioning layer (repeatable)",
)
@click.option(
    "--source",
    type=click.Choice(["local", "gemini"]),
    default="local",
    help="Prompt source: text as-is, or a Gemini scene for a song/artist name",
)
@stream_options
@click.pass_context
def submit(
    ctx,
    text,
    mode,
    motion,
    style_image,
    style_strength,
    disabled_layers,
    source,
    stream_id,
    playback_id,
    whip_url,
):
    """Compose parameters for TEXT and apply them to the stream."""
    controller = build_controller(ctx, source)
    attach_stream(controller, stream_id, playback_id, whip_url)

    intent = GenerationIntent(
        base_text=text,
        mode_tag=ModeTag(mode),
        motion_profile=MotionProfile(motion),
        style_reference_image=load_style_reference(style_image) if style_image else None,
        style_strength=style_strength,
        enabled_layers={name: False for name in disabled_layers},
    )

    async def _run():
        try:
            return await controller.submit(intent)
        finally:
            await controller.close()

    try:
        result = asyncio.run(_run())
    except SubmitError as e:
        handle_error(e)

    output(
        {
            "stream": session_info(result.session),
            "prompt": result.params.prompt,
            "seed": result.params.seed,
            "motion": motion,
            "style_adapter": result.params.style_adapter.enabled,
        },
        ctx,
    )


@cli.command()
@click.option("--stream-id", required=True, help="Stream to return to passthrough")
@click.pass_context
def live(ctx, stream_id):
    """Return a stream to live (passthrough) mode."""
    controller = build_controller(ctx)
    attach_stream(controller, stream_id, None, None)

    async def _run():
        try:
            await controller.return_to_live()
        finally:
            await controller.close()

    try:
        asyncio.run(_run())
    except SubmitError as e:
        handle_error(e)
    output({"stream_id": stream_id, "passthrough": True}, ctx)


@cli.command()
@click.option("--stream-id", required=True)
@click.option("--image-url", "image_urls", multiple=True, required=True)
@click.option("--scale", type=click.FloatRange(0.0, 2.0), default=1.0)
@click.pass_context
def style(ctx, stream_id, image_urls, scale):
    """Apply style reference images to a running stream."""
    controller = build_controller(ctx)
    attach_stream(controller, stream_id, None, None)

    async def _run():
        try:
            await controller.apply_style(list(image_urls), scale)
        finally:
            await controller.close()

    try:
        asyncio.run(_run())
    except SubmitError as e:
        handle_error(e)
    output({"stream_id": stream_id, "images": len(image_urls), "scale": scale}, ctx)


@cli.command()
@click.option("--stream-id", required=True)
@click.pass_context
def status(ctx, stream_id):
    """Fetch the remote status of a stream."""
    config = load_config(ctx)

    async def _run():
        async with DaydreamClient(config) as client:
            return await client.get_stream(stream_id)

    try:
        data = asyncio.run(_run())
    except ServiceError as e:
        handle_error(e)
    output(data, ctx)


@cli.command()
@click.option("--mode", type=click.Choice(MODE_CHOICES), default=ModeTag.AMBIENT.value)
@click.option(
    "--motion", type=click.Choice(MOTION_CHOICES), default=MotionProfile.MEDIUM.value
)
@stream_options
@click.pass_context
def interactive(ctx, mode, motion, stream_id, playback_id, whip_url):
    """Submit prompts line by line on one stream.

    Type a prompt to apply it, ":live" to return to passthrough, ":quit" to exit.
    """
    controller = build_controller(ctx)
    attach_stream(controller, stream_id, playback_id, whip_url)

    async def _run():
        try:
            while True:
                line = await asyncio.to_thread(sys.stdin.readline)
                if not line:
                    break
                line = line.strip()
                if line == ":quit":
                    break
                try:
                    if line == ":live":
                        await controller.return_to_live()
                        output({"passthrough": True}, ctx)
                        continue
                    result = await controller.submit(
                        GenerationIntent(
                            base_text=line,
                            mode_tag=ModeTag(mode),
                            motion_profile=MotionProfile(motion),
                        )
                    )
                    output(
                        {
                            "stream": session_info(result.session),
                            "prompt": result.params.prompt,
                        },
                        ctx,
                    )
                except SubmitError as e:
                    click.echo(
                        json.dumps({"error": str(e), "type": type(e).__name__}),
                        err=True,
                    )
        finally:
            await controller.close()

    asyncio.run(_run())


# --- Prompt sources ---


@cli.command()
@click.argument("mode", type=click.Choice(MODE_CHOICES))
@click.pass_context
def tags(ctx, mode):
    """List quick-pick tags for a mode."""
    output({"mode": mode, "tags": tags_for_mode(mode)}, ctx)


@cli.command()
@click.argument("artist", required=False)
@click.pass_context
def presets(ctx, artist):
    """List artists, or the preset prompts for ARTIST."""
    if artist is None:
        output({"artists": list_artists()}, ctx)
        return
    try:
        output({"artist": artist, "presets": artist_presets(artist)}, ctx)
    except KeyError as e:
        handle_error(e)


@cli.command("suggest-song")
@click.argument("song")
@click.pass_context
def suggest_song(ctx, song):
    """Ask Gemini for a scene prompt matching SONG."""
    from vpm.realtime.gemini_client import GeminiSceneWriter

    config = load_config(ctx)
    writer = GeminiSceneWriter(config.gemini_api_key, model=config.gemini_model)
    try:
        output({"song": song, "prompt": writer(song)}, ctx)
    except Exception as e:
        handle_error(e)


@cli.command()
@click.option("--color-palette", default="", help="e.g. blue/pink")
@click.option("--cultural-refs", default="", help="e.g. coming-of-age films")
@click.option("--emotion", default="", help="e.g. euphoric, youthful")
@click.option("--texture", default="", help="e.g. grainy, VHS")
@click.option("--season", default="", help="e.g. summer nostalgia")
@click.option("--visual-type", default="", help="e.g. mix of surreal and organic")
@click.option("--references", default="", help="Reference artists")
@click.pass_context
def questionnaire(ctx, **answers):
    """Generate custom presets for a new artist with Gemini."""
    from vpm.realtime.gemini_client import GeminiPresetGenerator

    config = load_config(ctx)
    generator = GeminiPresetGenerator(config.gemini_api_key, model=config.gemini_model)
    output({"presets": generator.generate(ArtistQuestionnaire(**answers))}, ctx)


def main():
    cli()


if __name__ == "__main__":
    main()
