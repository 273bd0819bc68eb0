"""
ASL Workflow Runtime CLI
"""
import click
import asyncio
import importlib
import json
from pathlib import Path

from .config import EngineSettings, configure_logging
from .core import ExecutionEngine, WorkflowParser
from .exceptions import WorkflowEngineError


def load_resources(target: str):
    """Import ``module:attr`` and return the attribute"""
    module_name, _, attr = target.partition(':')
    if not module_name or not attr:
        raise click.BadParameter("expected the form module:attribute", param_hint="--resources")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name}: {e}", param_hint="--resources")
    try:
        return getattr(module, attr)
    except AttributeError:
        raise click.BadParameter(f"{module_name} has no attribute {attr}", param_hint="--resources")


def _fail(error: WorkflowEngineError):
    click.echo(json.dumps(error.to_dict(), indent=2), err=True)
    raise SystemExit(1)


@click.group()
@click.option('--log-level', default=None, help='Override ASL_RUNTIME_LOG_LEVEL')
@click.pass_context
def cli(ctx, log_level):
    """ASL Workflow Runtime CLI"""
    settings = EngineSettings.from_env()
    if log_level:
        settings.log_level = log_level.upper()
    configure_logging(settings)
    ctx.obj = settings


@cli.command()
@click.argument('definition_file', type=click.Path(exists=True, dir_okay=False))
def validate(definition_file):
    """Validate a state machine definition"""
    try:
        definition = WorkflowParser().parse_file(Path(definition_file))
    except WorkflowEngineError as e:
        _fail(e)
    click.echo(f"Definition is valid: {len(definition.states)} states, starting at {definition.start_at}")


@cli.command()
@click.argument('definition_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--input', 'input_json', default=None, help='Execution input as JSON')
@click.option('--input-file', type=click.Path(exists=True, dir_okay=False), help='File holding the execution input')
@click.option('--resources', 'resources_target', default=None, help='Resource invoker as module:attribute')
@click.pass_obj
def run(settings, definition_file, input_json, input_file, resources_target):
    """Run a state machine definition and print its output"""
    if input_json is not None and input_file is not None:
        raise click.UsageError("--input and --input-file are mutually exclusive")

    try:
        if input_file is not None:
            input_data = json.loads(Path(input_file).read_text(encoding='utf-8'))
        else:
            input_data = json.loads(input_json) if input_json is not None else {}
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"input is not valid JSON: {e}")

    resources = load_resources(resources_target) if resources_target else None

    engine = ExecutionEngine(settings=settings)
    try:
        definition = engine.parser.parse_file(Path(definition_file))
        output = asyncio.run(engine.run(definition, input_data, resources=resources))
    except WorkflowEngineError as e:
        _fail(e)
    click.echo(json.dumps(output, indent=2))


def main():
    """Main entry point"""
    cli()


if __name__ == '__main__':
    main()
