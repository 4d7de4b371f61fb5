"""CLI entrypoint for agent-swarm."""

import rich_click as click

from agent_swarm import __version__
from agent_swarm.config import LOG_LEVELS, Settings, configure_logging
from agent_swarm.orchestration.controllers import SwarmCliController, SwarmRunCommand
from agent_swarm.orchestration.models import TaskPriority
from agent_swarm.tools.controllers import ToolsCliController, ToolsPlanCommand

click.rich_click.USE_MARKDOWN = True
SWARM_CONTROLLER = SwarmCliController()
TOOLS_CONTROLLER = ToolsCliController()


@click.group()
@click.version_option(version=__version__, prog_name="agent-swarm")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level. Defaults to AGENT_SWARM_LOG_LEVEL or WARNING.",
)
def agent_swarm(log_level: str | None) -> None:
    """Agent swarm CLI: route tasks to specialised workers and plan tool batches."""

    try:
        level = log_level or Settings.from_env().log_level
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    configure_logging(level)


@agent_swarm.group()
def swarm() -> None:
    """Task orchestration commands."""


@swarm.command("run")
@click.argument("descriptions", nargs=-1, required=True)
@click.option(
    "--priority",
    type=click.Choice([member.name.lower() for member in TaskPriority], case_sensitive=False),
    default="medium",
    show_default=True,
    help="Priority for every submitted task.",
)
@click.option(
    "--capability",
    "capabilities",
    multiple=True,
    help="Required capability. Can be repeated; inferred from the description when omitted.",
)
@click.option(
    "--tool",
    "tool_calls",
    multiple=True,
    help="Tool name the echo worker turn should call. Can be repeated.",
)
@click.option(
    "--timeout",
    "timeout_seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Per-task timeout in seconds. Overrides AGENT_SWARM_TASK_TIMEOUT_SECONDS.",
)
@click.option(
    "--retry-attempts",
    type=click.IntRange(min=0),
    default=None,
    help="Retries after execution failure. Overrides AGENT_SWARM_RETRY_ATTEMPTS.",
)
@click.option(
    "--wait-seconds",
    type=click.FloatRange(min=0),
    default=60.0,
    show_default=True,
    help="How long to wait for all tasks before cancelling the rest.",
)
def swarm_run(  # noqa: PLR0913
    descriptions: tuple[str, ...],
    priority: str,
    capabilities: tuple[str, ...],
    tool_calls: tuple[str, ...],
    timeout_seconds: float | None,
    retry_attempts: int | None,
    wait_seconds: float,
) -> None:
    """Submit tasks to the default swarm (coordinator, coding, research) and print results.

    Workers run on the local **echo** turn runner, so no language model is called.
    """

    try:
        result = SWARM_CONTROLLER.run(
            SwarmRunCommand(
                descriptions=descriptions,
                priority=priority.lower(),
                capabilities=capabilities,
                tool_calls=tool_calls,
                timeout_seconds=timeout_seconds,
                retry_attempts=retry_attempts,
                wait_seconds=wait_seconds,
            ),
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Some tasks did not complete successfully.")


@swarm.command("agents")
def swarm_agents() -> None:
    """Show the built-in workers and their capabilities."""

    _emit_lines(SWARM_CONTROLLER.agents())


@agent_swarm.group()
def tools() -> None:
    """Tool batching commands."""


@tools.command("plan")
@click.argument("tool_names", nargs=-1, required=True)
def tools_plan(tool_names: tuple[str, ...]) -> None:
    """Show how a sequence of tool calls would be batched, without running them."""

    _emit_lines(TOOLS_CONTROLLER.plan(ToolsPlanCommand(tool_names=tool_names)))


@tools.command("categories")
def tools_categories() -> None:
    """Show the tool category table used for batching."""

    _emit_lines(TOOLS_CONTROLLER.categories())


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    agent_swarm()
