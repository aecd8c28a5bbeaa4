import logging
from typing import Optional

from etcd_snapshot.middleware.error_handler import handle_errors
from etcd_snapshot.middleware.json_support import support_json_return
from etcd_snapshot.models.command_result import CommandResult
from etcd_snapshot.models.snapshot import Snapshot
from etcd_snapshot.models.utils import ExitCode

logger = logging.getLogger(__name__)


@support_json_return()
@handle_errors("snapshot",
               on_success=lambda snapshots: (ExitCode.SUCCESS, [snapshot.summary() for snapshot in snapshots]))
def list_snapshots(snapshot: Snapshot) -> CommandResult:
    logger.info(f"Listing snapshots of cluster {snapshot.cluster_name}")
    return CommandResult(success=True, value=snapshot.list())


def create(snapshot: Snapshot) -> CommandResult:
    logger.info(f"Creating snapshot of cluster {snapshot.cluster_name}")
    try:
        return CommandResult(success=True, value=snapshot.create())
    except Exception as e:
        logger.debug(f"Failure running create snapshot: {e}")
        return CommandResult(success=False, value=f"Failure running create snapshot: {_describe(e)}")


def restore(snapshot: Snapshot, snapshot_name: Optional[str] = None, restore_config: Optional[str] = None,
            generation: int = 1) -> CommandResult:
    logger.info(f"Restoring snapshot {snapshot_name or '(latest)'} on cluster {snapshot.cluster_name}")
    try:
        restore_request = snapshot.build_restore_request(snapshot_name=snapshot_name,
                                                         restore_config=restore_config,
                                                         generation=generation)
        return CommandResult(success=True, value=snapshot.restore(restore_request))
    except Exception as e:
        logger.debug(f"Failure running restore snapshot: {e}")
        return CommandResult(success=False, value=f"Failure running restore snapshot: {_describe(e)}")


def _describe(e: Exception) -> str:
    notes = getattr(e, "__notes__", [])
    if notes:
        return f"{type(e).__name__} {e} ({'; '.join(notes)})"
    return f"{type(e).__name__} {e}"
