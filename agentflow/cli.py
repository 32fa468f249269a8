"""
Command line interface.

    agentflow run workflow.yaml [--dry-run] [--enable-web-search/--disable-web-search]
    agentflow test-agent AGENT_ID workflow.yaml [--prompt TEXT]
    agentflow history list [--workflow ID] [--limit N]
    agentflow history show RUN_ID
"""

import asyncio
import json
import logging
import sys
from typing import Iterable, List

import click
import yaml

from config import env
from utils.llm_clients import OpenAIClient
from utils.logs import JsonlLogWriter

from .agents import Agent, attach_tool_descriptions, build_generator_factory
from .errors import WorkflowError, WorkflowLoadError, WorkflowValidationError
from .history import FileSystemRunStorage
from .observers import (
    CompositeObserver,
    ExecutionLogObserver,
    HistoryObserver,
    LoggingObserver,
)
from .runtime_data import Context
from .tools import ToolRegistry
from .workflows import (
    LoadedWorkflow,
    WorkflowExecutor,
    load_workflow_file,
    render_plan,
    render_workflow,
)

WEB_SEARCH_TOOL = "web_search"
EXIT_LOAD_ERROR = 1
EXIT_EXECUTION_ERROR = 2

logger = logging.getLogger(__name__)


def _load_or_exit(file: str) -> LoadedWorkflow:
    try:
        return load_workflow_file(file)
    except WorkflowValidationError as e:
        click.echo(f"Error: workflow validation failed for {file}", err=True)
        for error in e.errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(EXIT_LOAD_ERROR)
    except WorkflowLoadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_LOAD_ERROR)


def _describe_agents(agents: Iterable[Agent], indent: str = "  ") -> List[str]:
    lines = []
    for agent in agents:
        tools = f" [tools: {', '.join(agent.tools)}]" if agent.tools else ""
        lines.append(f"{indent}- {agent.id}: {agent.role}{tools}")
        lines.extend(_describe_agents(agent.sub_agents, indent + "    "))
    return lines


def _remove_tool(agents: Iterable[Agent], tool_name: str):
    for root in agents:
        for agent in root.iter_tree():
            if tool_name in agent.tools:
                agent.tools.remove(tool_name)


def _build_observer(no_history: bool) -> CompositeObserver:
    observer = CompositeObserver([LoggingObserver()])

    log_settings = env.get_log_settings()
    if log_settings.execution_log_enabled:
        observer.add(ExecutionLogObserver.from_settings(log_settings))

    history_settings = env.get_history_settings()
    if history_settings.enabled and not no_history:
        observer.add(HistoryObserver(FileSystemRunStorage(history_settings.path)))
    return observer


def _prepare_agents(agents: List[Agent], enable_web_search: bool):
    """
    Give every agent a generation service.

    Raises:
        ValueError: If the generation service is not configured
    """
    generation = env.get_generation_settings()
    log_settings = env.get_log_settings()
    tool_settings = env.get_tool_settings()

    network_log = JsonlLogWriter(
        log_settings.network_log_path,
        prefix="network",
        max_bytes=log_settings.max_bytes,
        max_files=log_settings.max_files,
    )
    client = OpenAIClient.from_settings(generation, network_log=network_log)

    registry = ToolRegistry.with_default_tools(
        enable_web_search=enable_web_search,
        max_results=tool_settings.web_search_max_results,
        region=tool_settings.web_search_region,
        filesystem_root=tool_settings.filesystem_root,
    )
    factory = build_generator_factory(
        client, registry, max_tool_rounds=generation.max_tool_rounds
    )
    for agent in agents:
        agent.set_generator_factory(factory)
    attach_tool_descriptions(agents, registry)


@click.group(help="Run multi-agent workflows described in YAML files")
@click.option("--log-level", default=None, help="Logging level (default: from settings)")
def cli(log_level):
    env.load()
    level = (log_level or env.get_setting("log_level") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--dry-run", "-n", is_flag=True, default=False,
              help="Validate and show the execution plan without running agents")
@click.option("--enable-web-search/--disable-web-search", default=None,
              help="Allow agents that list web_search to use the internet")
@click.option("--no-history", is_flag=True, default=False,
              help="Do not record this run in the history store")
def run(file, dry_run, enable_web_search, no_history):
    """Run the workflow in FILE."""
    loaded = _load_or_exit(file)
    workflow = loaded.definition

    if dry_run:
        click.echo(f"Workflow: {workflow.id}")
        click.echo(f"Type: {workflow.type.value}")
        click.echo(f"Stop on error: {workflow.stop_on_error}")
        click.echo("Agents:")
        for line in _describe_agents(loaded.agents):
            click.echo(line)
        click.echo("")
        click.echo("EXECUTION PLAN:")
        click.echo(render_plan(workflow))
        click.echo("")
        click.echo(render_workflow(workflow))
        click.echo("Dry run complete: workflow is valid, no agents were run.")
        return

    if loaded.uses_tool(WEB_SEARCH_TOOL):
        if enable_web_search is None:
            enable_web_search = click.confirm(
                "This workflow has agents that can search the internet. Allow web search?",
                default=True,
            )
        if not enable_web_search:
            _remove_tool(loaded.agents, WEB_SEARCH_TOOL)
            click.echo("Web search disabled for this run.")

    try:
        _prepare_agents(loaded.agents, enable_web_search=bool(enable_web_search))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_LOAD_ERROR)

    executor = WorkflowExecutor(observer=_build_observer(no_history))
    context = Context()
    try:
        result = asyncio.run(executor.execute(workflow, loaded.agents, context))
    except WorkflowError as e:
        click.echo(f"Error: workflow '{workflow.id}' failed: {e}", err=True)
        sys.exit(EXIT_EXECUTION_ERROR)

    click.echo("")
    click.echo(f"WORKFLOW RESULT ({result.status.value}) - execution {result.execution_id}")
    if result.outputs:
        for key, value in result.outputs.items():
            click.echo(f"\n[{key}]\n{value}")
    else:
        messages = context.get_messages()
        if messages:
            click.echo(f"\n[{messages[-1].agent_id}]\n{messages[-1].content}")


@cli.command("test-agent")
@click.argument("agent_id")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--prompt", "-p", default="Introduce yourself and describe what you can do.",
              help="Message the agent receives")
def test_agent(agent_id, file, prompt):
    """Run a single agent from FILE against PROMPT."""
    loaded = _load_or_exit(file)

    agent = loaded.find_agent(agent_id)
    if agent is None:
        click.echo(f"Error: agent '{agent_id}' not found in {file}", err=True)
        sys.exit(EXIT_LOAD_ERROR)

    try:
        _prepare_agents(loaded.agents, enable_web_search=WEB_SEARCH_TOOL in agent.tools)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_LOAD_ERROR)

    context = Context()
    context.add_message("user", prompt)
    try:
        output = asyncio.run(agent.run(context))
    except Exception as e:
        click.echo(f"Error: agent '{agent_id}' failed: {e}", err=True)
        sys.exit(EXIT_EXECUTION_ERROR)

    click.echo(f"[{agent.id}]")
    click.echo(output)


@cli.group()
def history():
    """Inspect recorded runs."""


def _storage() -> FileSystemRunStorage:
    return FileSystemRunStorage(env.get_history_settings().path)


@history.command("list")
@click.option("--workflow", "workflow_id", default=None, help="Only runs of this workflow")
@click.option("--limit", default=20, show_default=True, help="Maximum runs to show")
def history_list(workflow_id, limit):
    """List recorded runs, most recent first."""
    records = _storage().list_runs(workflow_id=workflow_id, limit=limit)
    if not records:
        click.echo("No runs recorded.")
        return

    for record in records:
        duration = f"{record.duration_ms:.0f}ms" if record.duration_ms is not None else "-"
        click.echo(
            f"{record.run_id}  {record.workflow_id:<24} {record.status.value:<10} "
            f"{record.started_at.isoformat(timespec='seconds')}  {duration}"
        )


@history.command("show")
@click.argument("run_id")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the raw record")
def history_show(run_id, as_json):
    """Show one recorded run."""
    record = _storage().load_run(run_id)
    if record is None:
        click.echo(f"Error: run '{run_id}' not found", err=True)
        sys.exit(EXIT_LOAD_ERROR)

    if as_json:
        click.echo(json.dumps(record.to_dict(), indent=2, default=str))
        return

    click.echo(f"Run: {record.run_id}")
    click.echo(f"Workflow: {record.workflow_id} ({record.workflow_type})")
    click.echo(f"Status: {record.status.value}")
    click.echo(f"Started: {record.started_at.isoformat()}")
    if record.completed_at:
        click.echo(f"Completed: {record.completed_at.isoformat()}")
    if record.error:
        click.echo(f"Error: {record.error}")

    if record.workflow:
        click.echo("\nDefinition:")
        definition = yaml.safe_dump(record.workflow, sort_keys=False).rstrip()
        for line in definition.splitlines():
            click.echo(f"  {line}")

    click.echo("\nMessages:")
    for message in record.messages:
        click.echo(f"  [{message.timestamp.isoformat(timespec='seconds')}] {message.agent_id}: {message.content}")

    if record.outputs:
        click.echo("\nOutputs:")
        for key, value in record.outputs.items():
            click.echo(f"  {key}: {value}")


def main():
    cli()


if __name__ == "__main__":
    main()
