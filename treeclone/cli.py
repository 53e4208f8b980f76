from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.text import Text
from rich.tree import Tree

from treeclone.config import TreeCloneConfig, config_path, load_config, save_config
from treeclone.descriptor import (
    DescriptorError,
    load_content_map,
    load_descriptor,
    save_content_map,
    save_descriptor,
)
from treeclone.extractor import extract_contents
from treeclone.filters import build_path_filter, mark_nodes
from treeclone.models import DirectoryNode, FileNode, Node, SymlinkNode
from treeclone.rebuilder import rebuild_tree
from treeclone.reporting import render_issue_summary
from treeclone.walker import walk_tree


DEFAULT_DESCRIPTOR_FILENAME = "directoryStructure.json"

app = typer.Typer(help="Clone a directory tree into JSON and rebuild it elsewhere.")
console = Console()


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        console.print("[red]You need at least one command before moving on.[/red]")
        raise typer.Exit(code=2)


def _descriptor_output_path(output: str) -> Path:
    path = Path(output).expanduser().resolve()
    if path.suffix.lower() != ".json":
        path = path / DEFAULT_DESCRIPTOR_FILENAME
    return path


def _render_path_summary(title: str, paths: list[str], style: str) -> None:
    if not paths:
        return
    console.print(Text(f"{title} ({len(paths)}):", style=style))
    for path in paths:
        console.print(f"  {escape(path)}")


def _load_descriptor_or_report(input_path: Path) -> Node | None:
    try:
        return load_descriptor(input_path)
    except FileNotFoundError:
        console.print(f"[red]Descriptor not found: {escape(str(input_path))}[/red]")
    except DescriptorError as exc:
        console.print(f"[red]Invalid descriptor:[/red] {escape(str(exc))}")
    except OSError as exc:
        console.print(f"[red]Could not read descriptor:[/red] {escape(str(exc))}")
    return None


@app.command()
def init(
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config file."),
) -> None:
    """Write a default .treeclone.json in the current directory."""
    path = config_path()
    if path.exists() and not force:
        console.print(f"[yellow]Config already exists:[/yellow] {escape(str(path))} (use --force)")
        raise typer.Exit(code=1)
    save_config(TreeCloneConfig())
    console.print(f"[green]Initialized treeclone config[/green] at {escape(str(path))}")


def _clone(
    source: str,
    output: str,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    hidden: bool | None,
    verbose: bool,
) -> int:
    try:
        config = load_config()
    except ValueError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return 1

    policy = config.walk_policy(
        include,
        exclude,
        exclude_hidden=None if hidden is None else not hidden,
    )
    source_path = Path(source).expanduser().resolve()
    output_path = _descriptor_output_path(output)

    with console.status(f"Walking {escape(str(source_path))} ..."):
        result = walk_tree(source_path, policy=policy, console=console, verbose=verbose)

    if result.root is None:
        console.print(f"[red]Nothing to clone at {escape(str(source_path))}[/red]")
        return 1

    try:
        save_descriptor(result.root, output_path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Could not write descriptor:[/red] {escape(str(exc))}")
        return 1

    if verbose:
        _render_path_summary("Excluded", result.excluded_paths, "yellow")
    render_issue_summary(console, result.issues)
    console.print(
        f"[green]Directory structure has been cloned to[/green] {escape(str(output_path))} "
        f"({result.node_count} node(s))"
    )
    return 0


@app.command()
def clone(
    source: str = typer.Option(..., "--source", "-s", help="Source directory path."),
    output: str = typer.Option(..., "--output", "-o", help="Output JSON file path."),
    include: list[str] | None = typer.Option(
        None,
        "--include",
        help="Include glob pattern(s) for files to record (repeatable).",
    ),
    exclude: list[str] | None = typer.Option(
        None,
        "--exclude",
        help="Exclude glob pattern(s) for paths to leave out (repeatable).",
    ),
    hidden: bool | None = typer.Option(
        None,
        "--hidden/--no-hidden",
        help="Record dot-prefixed entries. Defaults to the config's exclude_hidden setting.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
) -> None:
    """Clone directory structure into JSON."""
    raise typer.Exit(
        code=_clone(source, output, tuple(include or ()), tuple(exclude or ()), hidden, verbose)
    )


def _mark(
    input_file: str,
    output: str | None,
    include: tuple[str, ...],
    exclude: tuple[str, ...],
    copy_content: bool | None,
    skip: bool | None,
) -> int:
    if copy_content is None and skip is None:
        console.print("[red]Nothing to change. Pass --copy-content/--no-copy-content or --skip/--no-skip.[/red]")
        return 1

    input_path = Path(input_file).expanduser().resolve()
    root = _load_descriptor_or_report(input_path)
    if root is None:
        return 1

    path_filter = build_path_filter(include, exclude)
    updated, matched = mark_nodes(root, path_filter, copy_content=copy_content, skip=skip)
    output_path = Path(output).expanduser().resolve() if output else input_path
    try:
        save_descriptor(updated, output_path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Could not write descriptor:[/red] {escape(str(exc))}")
        return 1

    _render_path_summary("Marked", matched, "green")
    if not matched:
        console.print("[yellow]No nodes matched the given patterns.[/yellow]")
    console.print(f"Descriptor written to {escape(str(output_path))}")
    return 0


@app.command()
def mark(
    input_file: str = typer.Option(..., "--input", "-i", help="Descriptor JSON file path."),
    include: list[str] | None = typer.Option(
        None,
        "--include",
        help="Include glob pattern(s) for nodes to mark (repeatable).",
    ),
    exclude: list[str] | None = typer.Option(
        None,
        "--exclude",
        help="Exclude glob pattern(s) for nodes to leave alone (repeatable).",
    ),
    copy_content: bool | None = typer.Option(
        None,
        "--copy-content/--no-copy-content",
        help="Set copyContent on matching files.",
    ),
    skip: bool | None = typer.Option(None, "--skip/--no-skip", help="Set skip on matching nodes."),
    output: str | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the edited descriptor here instead of updating it in place.",
    ),
) -> None:
    """Toggle copyContent/skip flags on descriptor nodes by path pattern."""
    raise typer.Exit(
        code=_mark(input_file, output, tuple(include or ()), tuple(exclude or ()), copy_content, skip)
    )


def _node_label(node: Node) -> Text:
    match node:
        case DirectoryNode():
            label = Text(f"{node.name}/", style="bold blue")
        case FileNode():
            label = Text(node.name)
            if node.copy_content:
                label.append(" [content]", style="green")
        case SymlinkNode():
            label = Text(node.name, style="cyan")
            label.append(f" -> {node.target}", style="dim")
        case _:
            raise TypeError(f"Unsupported node: {node!r}")
    if node.skip:
        label.stylize("strike dim")
        label.append(" [skip]", style="yellow")
    return label


def _add_children(tree: Tree, node: Node) -> None:
    if isinstance(node, DirectoryNode):
        for child in node.children:
            _add_children(tree.add(_node_label(child)), child)


@app.command()
def inspect(
    input_file: str = typer.Option(..., "--input", "-i", help="Descriptor JSON file path."),
) -> None:
    """Print a descriptor as a tree with its skip/copyContent markers."""
    root = _load_descriptor_or_report(Path(input_file).expanduser().resolve())
    if root is None:
        raise typer.Exit(code=1)
    tree = Tree(_node_label(root))
    _add_children(tree, root)
    console.print(tree)


def _copy_content(input_file: str, source: str, output: str, verbose: bool) -> int:
    input_path = Path(input_file).expanduser().resolve()
    source_path = Path(source).expanduser().resolve()
    output_path = Path(output).expanduser().resolve()

    root = _load_descriptor_or_report(input_path)
    if root is None:
        return 1

    result = extract_contents(root, source_path, console=console, verbose=verbose)
    try:
        save_content_map(result.content_map, output_path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Could not write content map:[/red] {escape(str(exc))}")
        return 1

    render_issue_summary(console, result.issues)
    console.print(
        f"[green]File contents have been copied and saved to[/green] {escape(str(output_path))} "
        f"({len(result.copied_paths)} file(s))"
    )
    return 0


@app.command("copy-content")
def copy_content(
    input_file: str = typer.Option(..., "--input", "-i", help="Input JSON file path."),
    source: str = typer.Option(
        ...,
        "--source",
        "-s",
        help="Source directory path (same as used for clone).",
    ),
    output: str = typer.Option(..., "--output", "-o", help="Output JSON file path (to save content)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
) -> None:
    """Copy content for files marked in JSON."""
    raise typer.Exit(code=_copy_content(input_file, source, output, verbose))


async def _confirm_overwrite(path: Path) -> bool:
    return await asyncio.to_thread(
        Confirm.ask,
        f"File {escape(str(path))} already exists. Overwrite content?",
        console=console,
        default=False,
    )


async def _rebuild_async(
    input_file: str,
    destination: str,
    content: str | None,
    overwrite: bool,
    interactive: bool,
    verbose: bool,
) -> int:
    input_path = Path(input_file).expanduser().resolve()
    destination_path = Path(destination).expanduser().resolve()

    root = _load_descriptor_or_report(input_path)
    if root is None:
        return 1

    content_map: dict[str, str] = {}
    if content:
        content_path = Path(content).expanduser().resolve()
        try:
            content_map = load_content_map(content_path)
        except FileNotFoundError:
            console.print(f"[red]Content map not found: {escape(str(content_path))}[/red]")
            return 1
        except DescriptorError as exc:
            console.print(f"[red]Invalid content map:[/red] {escape(str(exc))}")
            return 1

    result = await rebuild_tree(
        root,
        destination_path,
        content_map,
        overwrite=overwrite,
        confirm=_confirm_overwrite if interactive else None,
        console=console,
        verbose=verbose,
    )

    if verbose:
        _render_path_summary("Kept existing", result.kept_files, "yellow")
        _render_path_summary("Skipped", result.skipped_paths, "yellow")
    render_issue_summary(console, result.issues)
    console.print(
        f"[green]Directory has been rebuilt at[/green] {escape(str(destination_path))} "
        f"({len(result.created_dirs)} dir(s), {len(result.created_files)} new file(s), "
        f"{len(result.written_files)} written, {len(result.created_symlinks)} symlink(s))"
    )
    return 0


@app.command()
def rebuild(
    input_file: str = typer.Option(..., "--input", "-i", help="Input JSON file path."),
    destination: str = typer.Option(..., "--destination", "-d", help="Destination directory path."),
    content: str | None = typer.Option(None, "--content", "-c", help="Content map JSON file path."),
    overwrite: bool = typer.Option(
        False,
        "--overwrite",
        "-o",
        help="Overwrite existing files that have a content map entry without prompting.",
    ),
    non_interactive: bool = typer.Option(
        False,
        "--non-interactive",
        help="Never prompt; keep existing files unless --overwrite is set.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
) -> None:
    """Rebuild directory from JSON.

    Existing files are only replaced when the content map has an entry for
    them. Existing files without an entry are left untouched and never
    prompted for.
    """
    # Ctrl-C during a prompt lands outside the coroutine, so catch it here.
    try:
        code = asyncio.run(
            _rebuild_async(input_file, destination, content, overwrite, not non_interactive, verbose)
        )
    except KeyboardInterrupt:
        console.print("[yellow]Rebuild interrupted.[/yellow] The destination may be partially rebuilt.")
        code = 130
    raise typer.Exit(code=code)
