import logging

import click

import etcd_snapshot.middleware.snapshot as snapshot_
from etcd_snapshot.environment import Environment
from etcd_snapshot.models.utils import ExitCode

logger = logging.getLogger(__name__)

RESTORE_RKE_CONFIG_CHOICES = ["none", "kubernetesVersion", "all"]

# ################### UNIVERSAL ####################


class Context(object):
    def __init__(self, config_file) -> None:
        self.config_file = config_file
        self.json = False
        self._env = None

    @property
    def env(self) -> Environment:
        # Loaded on first use so --help works without a config file
        if self._env is None:
            try:
                self._env = Environment(config_file=self.config_file)
            except Exception as e:
                raise click.ClickException(str(e))
        return self._env


@click.group()
@click.option("--config-file", default="/config/etcd_snapshot.yaml", help="Path to config file")
@click.option("--json", is_flag=True)
@click.option('-v', '--verbose', count=True, help="Verbosity level. Default is warn, -v is info, -vv is debug.")
@click.pass_context
def cli(ctx, config_file, json, verbose):
    logging.basicConfig(level=logging.WARN - (10 * verbose))
    logger.info(f"Logging set to {logging.getLevelName(logger.getEffectiveLevel())}")
    ctx.obj = Context(config_file)
    ctx.obj.json = json


# ##################### SNAPSHOT ###################


@cli.group(name="snapshot", help="Commands to list, create and restore etcd snapshots of the configured cluster.")
@click.pass_obj
def snapshot_group(ctx):
    """All actions related to etcd snapshots"""
    logger.debug(f"Snapshot commands use config file {ctx.config_file}")


@snapshot_group.command(name="list")
@click.pass_obj
def list_snapshots_cmd(ctx):
    """List the snapshots of the cluster"""
    exitcode, message = snapshot_.list_snapshots(ctx.env.snapshot, as_json=ctx.json)
    if exitcode != ExitCode.SUCCESS:
        raise click.ClickException(message)
    click.echo(message)


@snapshot_group.command(name="create")
@click.pass_obj
def create_snapshot_cmd(ctx):
    """Create a snapshot and wait for it to become active"""
    result = snapshot_.create(ctx.env.snapshot)
    if not result.success:
        raise click.ClickException(result.display())
    click.echo(result.display())


@snapshot_group.command(name="restore")
@click.option('--snapshot', 'snapshot_name', default=None,
              help='Name of the snapshot to restore, defaults to the most recent one')
@click.option('--restore-config', type=click.Choice(RESTORE_RKE_CONFIG_CHOICES), default=None,
              help='Which parts of the cluster configuration to restore along with etcd')
@click.option('--generation', type=click.IntRange(min=1), default=1, show_default=True,
              help='Generation of the restore directive, RKE2/K3s only. Bump it to repeat a restore')
@click.option("--acknowledge-risk", is_flag=True, show_default=True, default=False,
              help="Flag to acknowledge risk and skip confirmation")
@click.pass_obj
def restore_snapshot_cmd(ctx, snapshot_name, restore_config, generation, acknowledge_risk):
    """[Caution] Restore a snapshot and wait for the cluster to become active again"""
    if not acknowledge_risk:
        if not click.confirm(f'Restoring a snapshot rolls cluster {ctx.env.snapshot.cluster_name} back to an '
                             f'earlier state. Are you sure you want to continue?'):
            click.echo("Aborting the command to restore snapshot.")
            return
    result = snapshot_.restore(ctx.env.snapshot, snapshot_name=snapshot_name, restore_config=restore_config,
                               generation=generation)
    if not result.success:
        raise click.ClickException(result.display())
    click.echo(result.display())


#################################################

def main():
    cli()


if __name__ == "__main__":
    main()
