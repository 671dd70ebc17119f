import json
import logging
import traceback
from typing import Iterable, List, Optional

import click
from botocore.exceptions import ClientError, NoCredentialsError, NoRegionError
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from stackpilot import config
from stackpilot.cloudformation.exceptions import MissingDestination, TemplateNotFound
from stackpilot.cloudformation.manager import GracefulFailure, Manager
from stackpilot.cloudformation.stack import StackEvent
from stackpilot.constants import VERSION

from .console import console
from .exceptions import CLIError

LOG = logging.getLogger(__name__)


class StackpilotCliGroup(click.Group):
    """
    A Click group used for the top-level ``stackpilot`` command group. It implements global exception handling
    by:

    - Ignoring click exceptions (already handled)
    - Translating common errors (missing template, missing bucket, AWS errors) into readable messages
    - Wrapping all unexpected exceptions in a ClickException (for a unified error message)
    """

    def invoke(self, ctx: click.Context):
        try:
            return super(StackpilotCliGroup, self).invoke(ctx)
        except click.exceptions.Exit:
            # raise Exit exceptions unmodified (e.g., raised on --help)
            raise
        except click.ClickException:
            # don't handle ClickExceptions, just reraise
            if ctx and ctx.params.get("debug"):
                click.echo(traceback.format_exc())
            raise
        except Exception as e:
            if ctx and ctx.params.get("debug"):
                click.echo(traceback.format_exc())

            if isinstance(e, TemplateNotFound):
                raise CLIError(
                    e.message,
                    hint="Pass a template file, or a directory containing a template.json/.yml/.yaml",
                )
            elif isinstance(e, MissingDestination):
                raise CLIError(
                    e.message,
                    hint="The template is too large to be submitted inline, "
                    "configure a bucket with --bucket or TEMPLATE_BUCKET",
                )
            elif isinstance(e, NoCredentialsError):
                raise CLIError("Unable to locate AWS credentials")
            elif isinstance(e, NoRegionError):
                raise CLIError("No AWS region configured", hint="Use --region or AWS_REGION")
            elif isinstance(e, ClientError):
                error = e.response.get("Error", {})
                raise CLIError(f"{error.get('Code')}: {error.get('Message')}") from e
            else:
                # If we have a generic exception, we wrap it in a ClickException
                raise CLIError(str(e)) from e


def _setup_cli_debug() -> None:
    from stackpilot.logging.setup import setup_logging_for_cli

    config.DEBUG = True
    setup_logging_for_cli(logging.DEBUG)


def _create_manager(
    ctx: click.Context,
    path: str,
    stage: Optional[str],
    iam: bool = False,
    bucket: Optional[str] = None,
) -> Manager:
    deploy_config = config.DeployConfig.from_environment(
        region=ctx.obj.get("region"), template_bucket=bucket
    )
    LOG.debug("Using config %s", deploy_config)
    return Manager(path, config=deploy_config, stage=stage, iam=iam)


_stage_option = click.option(
    "-s", "--stage", type=str, help="Stage of the stack (e.g., staging or production)"
)

_path_argument = click.argument("path", type=click.Path(exists=True))


@click.group(
    name="stackpilot",
    help="Deploy CloudFormation stacks from templates",
    cls=StackpilotCliGroup,
    context_settings={
        # add "-h" as a synonym for "--help"
        "help_option_names": ["-h", "--help"],
        "show_default": True,
    },
)
@click.version_option(
    VERSION,
    "--version",
    "-v",
    message="stackpilot %(version)s",
    help="Show the version of stackpilot and exit",
)
@click.option("-d", "--debug", is_flag=True, help="Enable debugging output")
@click.option("-p", "--profile", type=str, help="Set the configuration profile")
@click.option("-r", "--region", type=str, help="AWS region of the stack")
@click.pass_context
def stackpilot(ctx: click.Context, debug: bool, profile: Optional[str], region: Optional[str]):
    # --profile is read manually in stackpilot.cli.main because it needs to be read before stackpilot.config
    if debug:
        _setup_cli_debug()
    elif config.SP_LOG or config.DEBUG:
        from stackpilot.logging.setup import setup_logging_from_config

        setup_logging_from_config()
    ctx.ensure_object(dict)
    ctx.obj["region"] = region


@stackpilot.command(name="deploy", short_help="Create or update a stack")
@_path_argument
@_stage_option
@click.option("--iam", is_flag=True, help="Acknowledge that the template changes IAM resources")
@click.option("-b", "--bucket", type=str, help="Bucket[/prefix] for templates too large to submit inline")
@click.option("--no-tail", is_flag=True, help="Do not wait for the stack operation to finish")
@click.pass_context
def cmd_deploy(
    ctx: click.Context,
    path: str,
    stage: Optional[str],
    iam: bool,
    bucket: Optional[str],
    no_tail: bool,
) -> None:
    """
    Render the template at PATH and create or update its stack.

    PATH is either a template file or a directory containing a template.* file and optionally
    context.* and parameters.* files. The stack name is derived from the file (or directory) name
    and the stage.
    """
    manager = _create_manager(ctx, path, stage, iam=iam, bucket=bucket)
    result = manager.update_stack()
    if isinstance(result, GracefulFailure):
        console.print(f"[yellow]No changes[/yellow] for stack [bold]{manager.stack_name}[/bold]")
        return

    console.print(
        f"Submitted {result.operation.lower()} of stack [bold]{manager.stack_name}[/bold]"
    )
    if no_tail:
        return

    stack_events = manager.stack_events()
    for events in stack_events:
        print_stack_events(events)

    status = manager.stack.status
    if status is None or stack_events.failed():
        raise CLIError(f"Stack {manager.stack_name} finished with status {status}")
    console.print(f"[green]:heavy_check_mark:[/green] {manager.stack_name} {status}")
    print_stack_outputs(manager.stack.outputs)


@stackpilot.command(name="diff", short_help="Compare the deployed template with the rendered one")
@_path_argument
@_stage_option
@click.pass_context
def cmd_diff(ctx: click.Context, path: str, stage: Optional[str]) -> None:
    """
    Render the template at PATH and show the differences to the template of the deployed stack.
    The stack is not modified.
    """
    manager = _create_manager(ctx, path, stage)
    diff = manager.diff_stack_template()
    if not diff:
        console.print(f"No differences for stack [bold]{manager.stack_name}[/bold]")
        return
    print_diff(diff.splitlines())


@stackpilot.command(name="render", short_help="Print the rendered template")
@_path_argument
@_stage_option
@click.pass_context
def cmd_render(ctx: click.Context, path: str, stage: Optional[str]) -> None:
    """
    Render the template at PATH with its context and print the result, exactly as it would be submitted.
    """
    manager = _create_manager(ctx, path, stage)
    click.echo(manager.render())


@stackpilot.command(name="events", short_help="Follow the events of a stack")
@_path_argument
@_stage_option
@click.pass_context
def cmd_events(ctx: click.Context, path: str, stage: Optional[str]) -> None:
    """
    Print new events of the stack of PATH until its current operation finishes.
    """
    manager = _create_manager(ctx, path, stage)
    for events in manager.tail_stack_events():
        print_stack_events(events)
    if manager.stack.status is None:
        raise CLIError(f"Stack {manager.stack_name} does not exist")


@stackpilot.command(name="config", short_help="Show the configuration")
@click.option(
    "-f",
    "--format",
    "format_",
    type=click.Choice(["table", "json"]),
    default="table",
    help="The formatting style for the command output.",
)
@click.pass_context
def cmd_config(ctx: click.Context, format_: str) -> None:
    """
    Print the configuration values, as loaded from the environment and the configuration profile.
    """
    values = config.DeployConfig.from_environment(region=ctx.obj.get("region")).as_dict()
    if format_ == "json":
        click.echo(json.dumps(values))
        return

    table = Table(title="stackpilot config")
    table.add_column("Key")
    table.add_column("Value")
    for key, value in values.items():
        table.add_row(key, str(value))
    console.print(table)


def _status_style(status: str) -> str:
    if status.endswith("FAILED") or "ROLLBACK" in status:
        return "red"
    if status.endswith("COMPLETE"):
        return "green"
    return "yellow"


def print_stack_events(events: Iterable[StackEvent]) -> None:
    for event in events:
        line = Text()
        line.append(f"{event.resource_type:<30} ")
        line.append(f"{event.logical_resource_id:<30} ")
        line.append(f"{event.resource_status:<20} ", style=_status_style(event.resource_status))
        line.append(event.resource_status_reason or "")
        console.print(line, soft_wrap=True)


def print_stack_outputs(outputs: dict) -> None:
    if not outputs:
        return
    table = Table(title="Outputs")
    table.add_column("Key")
    table.add_column("Value")
    for key, value in outputs.items():
        table.add_row(escape(key), escape(str(value)))
    console.print(table)


def print_diff(lines: List[str]) -> None:
    for line in lines:
        if line.startswith("+++") or line.startswith("---"):
            style = "bold"
        elif line.startswith("+"):
            style = "green"
        elif line.startswith("-"):
            style = "red"
        elif line.startswith("@@"):
            style = "cyan"
        else:
            style = None
        console.print(Text(line, style=style or ""), soft_wrap=True)
