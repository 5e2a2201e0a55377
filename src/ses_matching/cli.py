"""Command line access to the matching form.

Usage:
    ses-matching register --content "Java developer, 5 years" --category engineer
    ses-matching search --content "Java backend project" --category project
    ses-matching -o index.backend=memory -o embedding.model=random/mock search --content test
    ses-matching setup-index
    ses-matching ui
"""

from __future__ import annotations

import asyncio
import subprocess
import sys
from pathlib import Path

import click
from loguru import logger

from ses_matching.config import AppConfig, load_config, load_secrets_into_env
from ses_matching.controller import FormState, MatchingController, Phase
from ses_matching.index import create_index
from ses_matching.logging_setup import configure_logging
from ses_matching.models import Action, Category

CATEGORY_CHOICE = click.Choice([c.value for c in Category])


@click.group()
@click.option("--config-name", default="default", show_default=True, help="Config file name.")
@click.option(
    "--override", "-o", "overrides", multiple=True, help="Hydra override, e.g. index.backend=memory"
)
@click.option("--log-level", default="INFO", show_default=True)
@click.pass_context
def cli(ctx: click.Context, config_name: str, overrides: tuple[str, ...], log_level: str) -> None:
    """Register and search engineer/project entries in the vector index."""
    configure_logging(log_level)
    loaded = load_secrets_into_env()
    if loaded:
        logger.debug(f"Loaded secrets from conf/secrets.yml: {', '.join(loaded)}")
    ctx.obj = load_config(config_name, overrides=list(overrides))


def _run_action(
    config: AppConfig, action: Action, content: str, id: str, category: str | None
) -> FormState:
    controller = MatchingController.from_config(config)
    state = controller.initial_state().edit(content=content, id=id)
    if category is not None:
        state = state.edit(category=Category(category))
    return asyncio.run(controller.handle_action(state, action))


def _emit(ctx: click.Context, action: Action, state: FormState) -> None:
    if state.phase is Phase.FAILED or state.last_response is None:
        click.echo(f"{action.value} failed; see log for details", err=True)
        ctx.exit(1)
    click.echo(state.last_response.model_dump_json(indent=2))


@cli.command()
@click.option("--content", required=True, help="Text to embed and store.")
@click.option("--id", "id_", default="", help="Engineer or project identifier.")
@click.option("--category", type=CATEGORY_CHOICE, default=None, help="Entry category.")
@click.pass_context
def register(ctx: click.Context, content: str, id_: str, category: str | None) -> None:
    """Embed CONTENT and upsert it into the index."""
    state = _run_action(ctx.obj, Action.REGISTER, content, id_, category)
    _emit(ctx, Action.REGISTER, state)


@cli.command()
@click.option("--content", required=True, help="Text to search with.")
@click.option("--id", "id_", default="", help="Only match records with this identifier.")
@click.option(
    "--category",
    type=CATEGORY_CHOICE,
    default=None,
    help="Category searching; results come from the other category.",
)
@click.pass_context
def search(ctx: click.Context, content: str, id_: str, category: str | None) -> None:
    """Embed CONTENT and return the two best matches."""
    state = _run_action(ctx.obj, Action.SEARCH, content, id_, category)
    _emit(ctx, Action.SEARCH, state)


@cli.command()
@click.pass_obj
def stats(config: AppConfig) -> None:
    """Show index statistics."""
    index = create_index(config.index)
    click.echo(asyncio.run(index.stats()).model_dump_json(indent=2))


@cli.command()
@click.argument("record_ids", nargs=-1, required=True)
@click.pass_obj
def delete(config: AppConfig, record_ids: tuple[str, ...]) -> None:
    """Delete records by their vec-... identifiers."""
    index = create_index(config.index)
    asyncio.run(index.delete(list(record_ids)))
    click.echo(f"Deleted {len(record_ids)} record(s) from {config.index.index_name}")


@cli.command("setup-index")
@click.pass_obj
def setup_index(config: AppConfig) -> None:
    """Create the Pinecone index if it does not exist yet."""
    settings = config.index
    if settings.backend != "pinecone":
        click.echo(f"Backend {settings.backend!r} needs no setup")
        return
    if not settings.api_key:
        raise click.ClickException(
            "Pinecone credentials not found. Populate conf/secrets.yml or export PINECONE_API_KEY."
        )

    from pinecone import Pinecone, ServerlessSpec

    pc = Pinecone(api_key=settings.api_key)
    existing = [idx["name"] for idx in pc.list_indexes()]
    if settings.index_name in existing:
        click.echo(f"Index '{settings.index_name}' already exists")
        return

    logger.info(
        f"Creating index '{settings.index_name}' "
        f"(dimension={settings.dimension}, metric={settings.metric}, region={settings.environment})"
    )
    pc.create_index(
        name=settings.index_name,
        dimension=settings.dimension,
        metric=settings.metric,
        spec=ServerlessSpec(cloud="aws", region=settings.environment),
    )
    click.echo(f"Index '{settings.index_name}' created")


@cli.command()
@click.option("--config-name", "app_config_name", default=None, help="Config for the form.")
@click.pass_context
def ui(ctx: click.Context, app_config_name: str | None) -> None:
    """Launch the browser form with Streamlit."""
    app_path = Path(__file__).with_name("app.py")
    command = [sys.executable, "-m", "streamlit", "run", str(app_path)]
    if app_config_name:
        command += ["--", "--config-name", app_config_name]
    ctx.exit(subprocess.call(command))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
