"""``stackplan`` command-line interface.

Commands:
    plan    -- Print the provisioning plan for a topology.
    graph   -- Print dependency order and parallel groups.
    deploy  -- Execute the plan against a provisioning backend.
    serve   -- Run the planning API.

Topologies come from a JSON file (``--topology``) or a built-in name
(``--builtin``, default ``monorepo``).  Errors exit with status 1 and a
one-line message; a deployment that ends ``failed`` exits with status 2.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import click

from stackplan.config import load_config
from stackplan.errors import StackPlanError
from stackplan.execution import PlanExecutor, build_backend
from stackplan.graph.sorter import parallel_groups, topological_sort
from stackplan.models.config import StackPlanConfig
from stackplan.models.plan import DeploymentStatus, ExecutionReport
from stackplan.models.resources import Topology
from stackplan.observability.logging import get_logger, setup_logging
from stackplan.planner.deployment import Deployment
from stackplan.planner.pipeline import build_graph, build_plan
from stackplan.planner.render import plan_to_dict, render_plan_text, report_to_dict
from stackplan.topology import BUILTIN_TOPOLOGIES, load_state, load_topology, save_state

_topology_option = click.option(
    "--topology",
    "topology_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON topology document. Overrides --builtin.",
)
_builtin_option = click.option(
    "--builtin",
    type=click.Choice(sorted(BUILTIN_TOPOLOGIES)),
    default="monorepo",
    show_default=True,
    help="Built-in topology to use when --topology is not given.",
)
_format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def _resolve_topology(config: StackPlanConfig, topology_path: Path | None, builtin: str) -> Topology:
    if topology_path is not None:
        return load_topology(topology_path)
    return BUILTIN_TOPOLOGIES[builtin](config.deployment)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default=None,
    help="Overrides STACKPLAN_LOG_LEVEL.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Compile infrastructure topologies into ordered provisioning plans."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    setup_logging(log_level or config.log.level, fmt=config.log.format)
    ctx.obj = config


@cli.command()
@_topology_option
@_builtin_option
@click.option("--state", "state_path", type=click.Path(dir_okay=False, path_type=Path), default=None)
@_format_option
@click.pass_obj
def plan(
    config: StackPlanConfig,
    topology_path: Path | None,
    builtin: str,
    state_path: Path | None,
    output_format: str,
) -> None:
    """Print the provisioning plan."""
    try:
        topology = _resolve_topology(config, topology_path, builtin)
        previous = load_state(state_path) if state_path else None
        result = build_plan(topology, previous)
    except StackPlanError as exc:
        raise click.ClickException(str(exc)) from exc

    if output_format == "json":
        _echo_json(plan_to_dict(result))
    else:
        click.echo(render_plan_text(result))


@cli.command()
@_topology_option
@_builtin_option
@_format_option
@click.pass_obj
def graph(config: StackPlanConfig, topology_path: Path | None, builtin: str, output_format: str) -> None:
    """Print dependency order and the groups that can be provisioned in parallel."""
    try:
        topology = _resolve_topology(config, topology_path, builtin)
        dependency_graph = build_graph(topology)
        order = topological_sort(dependency_graph)
        groups = parallel_groups(dependency_graph, order)
    except StackPlanError as exc:
        raise click.ClickException(str(exc)) from exc

    if output_format == "json":
        _echo_json({"topology": topology.name, "order": order, "groups": groups})
        return
    for depth, group in enumerate(groups):
        click.echo(f"[{depth}] {', '.join(group)}")


@cli.command()
@_topology_option
@_builtin_option
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="State file read before planning and rewritten after the deployment.",
)
@click.option("--backend-url", default=None, help="Overrides STACKPLAN_BACKEND_URL.")
@click.option(
    "--fail-on",
    multiple=True,
    help="Simulated backend only: node ids whose provisioning fails.",
)
@_format_option
@click.pass_context
def deploy(
    ctx: click.Context,
    topology_path: Path | None,
    builtin: str,
    state_path: Path | None,
    backend_url: str | None,
    fail_on: tuple[str, ...],
    output_format: str,
) -> None:
    """Execute the plan against a provisioning backend."""
    config: StackPlanConfig = ctx.obj
    if backend_url is not None:
        config.backend.url = backend_url
    log = get_logger("cli.deploy")

    try:
        topology = _resolve_topology(config, topology_path, builtin)
        previous = load_state(state_path) if state_path else None
        report = asyncio.run(_deploy(config, topology, previous, fail_on))
    except StackPlanError as exc:
        raise click.ClickException(str(exc)) from exc

    if state_path is not None:
        save_state(report.state, state_path)
        log.info("state_saved", path=str(state_path), resources=len(report.state))

    if output_format == "json":
        _echo_json(report_to_dict(report))
    else:
        _echo_report(report)

    if report.status is DeploymentStatus.FAILED:
        ctx.exit(2)


async def _deploy(
    config: StackPlanConfig,
    topology: Topology,
    previous: Any,
    fail_on: tuple[str, ...],
) -> ExecutionReport:
    backend = build_backend(config.backend, config.deployment, fail_on=fail_on)
    try:
        executor = PlanExecutor(backend, max_concurrency=config.executor.max_concurrency)
        return await executor.execute(Deployment(topology, previous))
    finally:
        await backend.close()


def _echo_report(report: ExecutionReport) -> None:
    click.echo(f"Deployment {report.status.value}")
    for node_id, result in report.results.items():
        line = f"  {result.status.value:<9} {node_id}"
        if result.error:
            line += f"  ({result.error})"
        click.echo(line)
    for node_id, error in report.skipped.items():
        click.echo(f"  {'skipped':<9} {node_id}  (dependency '{error.failed_dependency}' failed)")
    if report.outputs:
        click.echo("Outputs:")
        for name, value in report.outputs.items():
            click.echo(f"  {name} = {value}")


@cli.command()
@click.option("--host", default=None, help="Overrides STACKPLAN_API_HOST.")
@click.option("--port", type=int, default=None, help="Overrides STACKPLAN_API_PORT.")
@click.pass_obj
def serve(config: StackPlanConfig, host: str | None, port: int | None) -> None:
    """Run the planning API with uvicorn."""
    import uvicorn

    from stackplan.api.app import create_app

    uvicorn.run(
        create_app(config=config),
        host=host or config.api.host,
        port=port or config.api.port,
        log_level=config.log.level,
    )
