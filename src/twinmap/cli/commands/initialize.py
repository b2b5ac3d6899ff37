"""
Init Command - Write a project configuration file.

Creates .twinmap/config.yaml with the default tree settings.
"""

from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

from ...config import CONFIG_DIR, DEFAULT_CONFIG, config_path

console = Console()


def create_gitignore(root_dir: Path):
    """Ensure the .twinmap/ directory is ignored by git."""
    gitignore = root_dir / ".gitignore"
    entry = f"\n# twinmap\n{CONFIG_DIR}/\n"

    if not gitignore.exists():
        gitignore.write_text(entry)
    elif CONFIG_DIR not in gitignore.read_text():
        with open(gitignore, "a") as f:
            f.write(entry)


def _init_project(root_dir: Path, collapsed: bool):
    """Internal helper to write the config file."""
    config_file = config_path(root_dir)

    config = {**DEFAULT_CONFIG, "tree": {**DEFAULT_CONFIG["tree"], "start_collapsed": collapsed}}

    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        yaml.dump(config, f, sort_keys=False, default_flow_style=False)

    create_gitignore(root_dir)

    console.print("\n✨ [bold green]Initialized successfully![/bold green]")
    console.print(f"   Config created at: [dim]{config_file}[/dim]")


@click.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
@click.option("--collapsed", is_flag=True, help="Start every tree fully collapsed")
def init(force: bool, collapsed: bool):
    """
    Initialize twinmap in the current directory.
    """
    console.print(Panel.fit("🚀 [bold blue]twinmap Initialization[/bold blue]", border_style="blue"))

    root_dir = Path.cwd()
    config_file = config_path(root_dir)

    if config_file.exists() and not force:
        console.print(f"[yellow]Configuration already exists at {config_file}[/yellow]")
        if not Confirm.ask("Do you want to overwrite it?"):
            console.print("Aborted.")
            return

    _init_project(root_dir, collapsed)
