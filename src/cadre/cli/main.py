"""cadre command line interface.

State is in-memory, so ``run`` creates a throwaway agent per invocation.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console

from ..core.errors import CadreError

console = Console()
err_console = Console(stderr=True)


def _load_runtime(config_path: str | None, ai_provider: str | None, ai_model: str | None):
    from ..core.config import get_effective_config
    from ..core.runtime import build_runtime

    config = get_effective_config(
        base_dir=Path.cwd(),
        config_path=Path(config_path) if config_path else None,
    )
    return build_runtime(config, provider_override=ai_provider, model_override=ai_model)


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="Config file")
@click.option("--ai-provider", type=click.Choice(["openai", "anthropic", "ollama"]))
@click.option("--ai-model", type=str, help="Model override")
@click.pass_context
def cadre_cli(ctx: click.Context, config_path: str | None, ai_provider: str | None, ai_model: str | None) -> None:
    """cadre - run tasks through tool-using agents."""
    ctx.ensure_object(dict)
    ctx.obj.update(config_path=config_path, ai_provider=ai_provider, ai_model=ai_model)


@cadre_cli.command()
@click.argument("task")
@click.option("--name", "-n", default="Assistant", help="Agent name")
@click.option("--description", "-d", default="", help="Agent description")
@click.option("--tool", "-t", "tools", multiple=True, help="Tool the agent may use (repeatable)")
@click.option("--query", "-q", type=str, help="Search query for web_search/file_search")
@click.option("--file", "file_path", type=click.Path(), help="File for file_search")
@click.option("--command", "command", type=str, help="Shell command for computer_use")
@click.option("--action", type=str, help="Action for computer_use")
@click.option("--timeout", type=float, default=None, help="Run deadline in seconds")
@click.pass_context
def run(
    ctx: click.Context,
    task: str,
    name: str,
    description: str,
    tools: tuple[str, ...],
    query: str | None,
    file_path: str | None,
    command: str | None,
    action: str | None,
    timeout: float | None,
) -> None:
    """Run TASK through a new agent and print the result as JSON."""
    runtime = _load_runtime(**ctx.obj)
    try:
        agent = runtime.agents.create({"name": name, "description": description, "tools": list(tools)})
    except CadreError as e:
        err_console.print(f"  [red]FAILED[/red] {e}")
        sys.exit(1)

    context = {"query": query, "filePath": file_path, "command": command, "action": action}
    context = {k: v for k, v in context.items() if v is not None}

    outcome = asyncio.run(runtime.pipeline.run(agent.id, task, context, timeout=timeout))
    console.print_json(outcome.model_dump_json(by_alias=True))
    if not outcome.success:
        sys.exit(1)


@cadre_cli.command()
@click.argument("agent_type")
@click.argument("text")
@click.pass_context
def tutor(ctx: click.Context, agent_type: str, text: str) -> None:
    """Ask a tutor agent (history, math, triage)."""
    runtime = _load_runtime(**ctx.obj)
    outcome = asyncio.run(runtime.tutors.run(agent_type, text))
    console.print_json(outcome.model_dump_json(by_alias=True))
    if not outcome.success:
        sys.exit(1)


@cadre_cli.command("tools")
@click.pass_context
def list_tools(ctx: click.Context) -> None:
    """List the registered tools."""
    runtime = _load_runtime(**ctx.obj)
    for tool_name in runtime.tools.names():
        tool = runtime.tools.get(tool_name)
        description = getattr(tool, "description", "")
        capabilities = ", ".join(getattr(tool, "capabilities", []))
        console.print(f"  [cyan]{tool_name}[/cyan]  {description}")
        if capabilities:
            console.print(f"      [dim]{capabilities}[/dim]")


def main() -> None:
    cadre_cli()


if __name__ == "__main__":
    main()
