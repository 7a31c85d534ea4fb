"""Command-line interface for StoryForge."""

from __future__ import annotations

import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Callable

import click

from storyforge import __version__
from storyforge.config import (
    ProjectConfig,
    find_project_root,
    get_config_value,
    get_db_path,
    load_config,
    save_config,
    set_config_value,
)
from storyforge.context.models import ElementKind, SelectionRequest, TaskType
from storyforge.exceptions import ConfigError, InvalidRequestError, StoryForgeError
from storyforge.ui.console import Console

console = Console()


def _setup_logging(verbose: bool) -> None:
    """Route library logging through Rich on stderr."""
    from rich.console import Console as RichConsole
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.ERROR,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=RichConsole(stderr=True), show_path=False)],
        force=True,
    )


def _get_project_root(path: str | None = None) -> Path:
    """Find the workspace root or error."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return root

    root = find_project_root()
    if root is None:
        console.error(
            "No StoryForge workspace found. Run 'storyforge init' first, "
            "or specify a path with --path."
        )
        sys.exit(1)
    return root


def _load_config(root: Path) -> ProjectConfig:
    try:
        return load_config(root)
    except ConfigError as e:
        console.error(str(e))
        sys.exit(1)


def _open_store(root: Path, config: ProjectConfig):
    """Open the story store, which must already exist."""
    from storyforge.storage.store import StoryStore

    db_path = get_db_path(root, config)
    if not db_path.exists():
        console.error("No story store found. Run 'storyforge init' first.")
        sys.exit(1)
    return StoryStore(db_path)


@click.group()
@click.version_option(version=__version__, prog_name="storyforge")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
def main(verbose: bool):
    """StoryForge - relevance-ranked story context for AI-assisted writing."""
    _setup_logging(verbose)


@main.command()
@click.option("--path", "-p", default=None, help="Path to the workspace root.")
def init(path: str | None):
    """Initialize a StoryForge workspace with an empty story store."""
    from storyforge.storage.store import StoryStore

    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(1)

    console.banner()
    console.info(f"Initializing StoryForge in: {root}")

    config = _load_config(root)
    config.name = root.name
    config.root_path = str(root)
    save_config(root, config)
    console.success("Configuration saved")

    store = StoryStore(get_db_path(root, config))
    store.set_metadata("created_at", time.time())
    store.close()
    console.success("Story store created in .storyforge/")


@main.command("import")
@click.argument("bible_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--path", "-p", default=None, help="Path to the workspace root.")
def import_bible(bible_file: str, path: str | None):
    """Import a story bible JSON file into the story store."""
    from storyforge.storage.bible import read_bible

    root = _get_project_root(path)
    config = _load_config(root)
    store = _open_store(root, config)

    try:
        bible = read_bible(bible_file)
        count = store.save_bible(bible)
    except StoryForgeError as e:
        console.error(str(e))
        store.close()
        sys.exit(1)

    if not config.default_project:
        config.default_project = bible.project.id
        save_config(root, config)

    store.close()
    console.success(f"Imported project '{bible.project.id}' with {count} elements")


@main.command()
@click.argument("project_id")
@click.argument("output", type=click.Path(dir_okay=False))
@click.option("--path", "-p", default=None, help="Path to the workspace root.")
def export(project_id: str, output: str, path: str | None):
    """Export a stored project as a story bible JSON file."""
    from storyforge.storage.bible import write_bible

    root = _get_project_root(path)
    store = _open_store(root, _load_config(root))
    try:
        write_bible(store.load_bible(project_id), output)
    except StoryForgeError as e:
        console.error(str(e))
        sys.exit(1)
    finally:
        store.close()
    console.success(f"Exported '{project_id}' to {output}")


@main.command()
@click.option("--path", "-p", default=None, help="Path to the workspace root.")
def status(path: str | None):
    """Show stored projects and element counts."""
    root = _get_project_root(path)
    store = _open_store(root, _load_config(root))

    projects = store.list_projects()
    if not projects:
        console.warning("No projects stored. Use 'storyforge import <bible.json>'.")
    else:
        console.banner()
        counts = {p.id: store.element_counts(p.id) for p in projects}
        console.show_projects(projects, counts)
    store.close()


# =========================================================================
# Context selection
# =========================================================================

def _selection_options(func: Callable) -> Callable:
    """Options shared by every command that builds a selection request."""
    options = [
        click.argument("project_id", required=False),
        click.option("--character", "-c", "character_ids", multiple=True,
                     help="Character id to prioritize (repeatable)."),
        click.option("--setting", "-s", "setting_ids", multiple=True,
                     help="Setting id to prioritize (repeatable)."),
        click.option("--plot-point", "plot_point_ids", multiple=True,
                     help="Plot point id to prioritize (repeatable)."),
        click.option("--chapter", "chapter_ids", multiple=True,
                     help="Chapter id to prioritize (repeatable)."),
        click.option("--task", "-t", type=click.Choice([t.value for t in TaskType]),
                     default=None, help="Generation task the context is for."),
        click.option("--max-elements", "-m", type=int, default=None,
                     help="Cap on the total number of elements."),
        click.option("--recent/--no-recent", "include_recent", default=None,
                     help="Boost recently edited elements."),
        click.option("--window", "recent_window_days", type=float, default=None,
                     help="Recency window in days (default: 7)."),
        click.option("--path", "-p", default=None, help="Path to the workspace root."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_request(config: ProjectConfig, params: dict[str, Any]) -> SelectionRequest:
    """Merge command-line selection params over configured defaults."""
    defaults = config.context
    payload = {
        "project_id": params["project_id"] or config.default_project,
        "task": params["task"],
        "character_ids": list(params["character_ids"]),
        "setting_ids": list(params["setting_ids"]),
        "plot_point_ids": list(params["plot_point_ids"]),
        "chapter_ids": list(params["chapter_ids"]),
        "max_elements": (
            params["max_elements"]
            if params["max_elements"] is not None
            else defaults.max_elements
        ),
        "include_recent": (
            params["include_recent"]
            if params["include_recent"] is not None
            else defaults.include_recent
        ),
        "recent_window_days": params["recent_window_days"] or defaults.recent_window_days,
    }
    try:
        return SelectionRequest.from_payload(payload)
    except InvalidRequestError as e:
        console.error(str(e))
        sys.exit(1)


def _assemble(params: dict[str, Any]):
    from storyforge.context.engine import ContextAssembler

    root = _get_project_root(params.pop("path"))
    config = _load_config(root)
    request = _build_request(config, params)
    store = _open_store(root, config)

    assembler = ContextAssembler(store, max_workers=config.context.max_workers)
    try:
        return assembler.build_context(request)
    except StoryForgeError as e:
        console.error(str(e))
        sys.exit(1)
    finally:
        store.close()


@main.command()
@_selection_options
@click.option(
    "--format", "-f", "output_format",
    type=click.Choice(["text", "json", "summary"]),
    default="text",
    help="Output format (default: text).",
)
def context(output_format: str, **params: Any):
    """Assemble ranked, compacted story context for a generation request.

    Examples:

        storyforge context p1 -c mira --task chapter

        storyforge context p1 --max-elements 8 --recent --window 14

        storyforge context p1 --format json
    """
    payload = _assemble(params)

    if output_format == "json":
        click.echo(json.dumps(payload.to_prompt_dict(), indent=2))
        return
    if output_format == "summary":
        click.echo(payload.summary())
        return

    console.show_payload_stats(payload)
    if payload.elements_included == 0:
        console.warning("No story elements selected for this project.")
    click.echo(payload.render())


@main.command()
@_selection_options
def score(**params: Any):
    """Show every candidate's relevance score and whether it was selected."""
    payload = _assemble(params)
    console.show_payload_stats(payload)
    if not payload.ranking:
        console.warning("No candidates to rank.")
        return
    console.show_ranking(payload.ranking)


@main.command()
@click.argument("project_id")
@click.argument("element_ids", nargs=-1, required=True)
@click.option("--path", "-p", default=None, help="Path to the workspace root.")
def touch(project_id: str, element_ids: tuple[str, ...], path: str | None):
    """Mark elements as referenced just now (boosts them for a day)."""
    root = _get_project_root(path)
    store = _open_store(root, _load_config(root))
    updated = store.mark_referenced(project_id, list(element_ids))
    store.close()

    if updated == 0:
        console.warning(f"No matching elements in project '{project_id}'")
    else:
        console.success(f"Marked {updated} element(s) as referenced")


@main.command()
def policy():
    """Show the fixed relevance scoring constants."""
    from storyforge.context.scoring import policy_constants

    for name, value in policy_constants().items():
        console.console.print(f"{name} = {value:g}")
    kinds = ", ".join(k.value for k in ElementKind)
    console.console.print(f"[dim]element kinds: {kinds}[/dim]")


# =========================================================================
# Config Management
# =========================================================================

@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the workspace root.")
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Show, read or change workspace configuration.

    Keys are dotted field paths, e.g. `context.max_elements`. Values are
    parsed as JSON when possible, so `null`, `12` and `false` keep their type.
    """
    root = _get_project_root(path)
    config = _load_config(root)

    if action == "show":
        console.console.print_json(config.model_dump_json())
        return

    if not key or (action == "set" and value is None):
        console.error(f"Usage: storyforge config {action} <key>"
                      + (" <value>" if action == "set" else ""))
        sys.exit(1)

    try:
        if action == "get":
            console.console.print(f"{key} = {get_config_value(config, key)}")
            return
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            parsed = value
        save_config(root, set_config_value(config, key, parsed))
    except KeyError:
        console.error(f"Unknown config key: {key}")
        sys.exit(1)
    except ConfigError as e:
        console.error(str(e))
        sys.exit(1)
    console.success(f"Set {key} = {parsed!r}")


if __name__ == "__main__":
    main()
