import dataclasses
import functools
import logging
from typing import Any, Callable, Collection, Optional, TextIO

import click
import yaml

from desiredset._cogs.clients import auth
from desiredset._cogs.configs import configuration
from desiredset._cogs.helpers import loaders
from desiredset._cogs.structs import errors, references
from desiredset._core.actions import loggers
from desiredset._core.intents import capabilities
from desiredset._core.reactor import running

logger = logging.getLogger(__name__)


@dataclasses.dataclass()
class CLIControls:
    """ Runner controls, which are impossible to pass via CLI. """
    settings: Optional[configuration.ApplySettings] = None
    resolver: Optional[capabilities.ClientResolver] = None
    context: Optional[auth.APIContext] = None


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        name: str = super().convert(value, param, ctx)
        return loggers.LogFormat[name.upper()]


class GroupVersionKindParamType(click.ParamType):
    name = 'gvk'

    def convert(self, value: Any, param: Any, ctx: Any) -> references.GroupVersionKind:
        if isinstance(value, references.GroupVersionKind):
            return value
        try:
            return references.GroupVersionKind.parse(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: Optional[bool] = False,
                log_refkey: Optional[str] = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


@click.version_option(prog_name='desiredset')
@click.group(name='desiredset', context_settings=dict(
    auto_envvar_prefix='DESIREDSET',
))
def main() -> None:
    pass


@main.command()
@logging_options
@click.option('-f', '--filename', 'manifests', type=click.File('r', encoding='utf-8'), multiple=True, required=True)
@click.option('-i', '--set-id', type=str, default=None)
@click.option('-o', '--owner', 'owner_manifest', type=click.File('r', encoding='utf-8'), default=None)
@click.option('-n', '--default-namespace', type=str, default=None)
@click.option('-l', '--lister-namespace', type=str, default=None)
@click.option('--restrict-cluster-scoped', is_flag=True)
@click.option('-p', '--prune-type', 'prune_types', type=GroupVersionKindParamType(), multiple=True)
@click.option('--dry-run', is_flag=True)
@click.make_pass_decorator(CLIControls, ensure=True)
def apply(
        __controls: CLIControls,
        manifests: Collection[TextIO],
        set_id: Optional[str],
        owner_manifest: Optional[TextIO],
        default_namespace: Optional[str],
        lister_namespace: Optional[str],
        restrict_cluster_scoped: bool,
        prune_types: Collection[references.GroupVersionKind],
        dry_run: bool,
) -> None:
    """ Apply the objects from the manifests as one desired set. """
    owner = None
    if owner_manifest is not None:
        owners = loaders.load_manifests([owner_manifest])
        if len(owners) != 1:
            raise click.UsageError(f"Exactly one owner is expected, got {len(owners)}.")
        owner = owners[0]
    if set_id is None and owner is None:
        raise click.UsageError("Either --set-id or --owner is required.")

    try:
        objs = loaders.load_manifests(manifests)
    except (yaml.YAMLError, ValueError) as e:
        raise click.BadParameter(str(e), param_hint='--filename')

    settings = __controls.settings if __controls.settings is not None else configuration.ApplySettings()
    if default_namespace is not None:
        settings.scoping.default_namespace = default_namespace
    if lister_namespace is not None:
        settings.scoping.lister_namespace = lister_namespace
    if restrict_cluster_scoped:
        settings.scoping.restrict_cluster_scoped = True

    try:
        plan = running.run(
            objs,
            set_id=set_id,
            owner=owner,
            prune_types=prune_types,
            dry_run=dry_run,
            settings=settings,
            resolver=__controls.resolver,
            context=__controls.context,
        )
    except errors.AggregatedError as e:
        for error in e:
            logger.error(str(error))
        raise click.ClickException(f"Failed to apply the desired set: {len(e)} error(s).")

    if plan is not None:
        click.echo(yaml.safe_dump(plan.as_dict(), sort_keys=False), nl=False)
