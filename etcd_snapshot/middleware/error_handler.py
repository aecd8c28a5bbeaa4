import logging
from typing import Any, Callable, Tuple

from etcd_snapshot.models.snapshot import Snapshot
from etcd_snapshot.models.utils import ExitCode

logger = logging.getLogger(__name__)


def handle_errors(service_type: str,
                  on_success: Callable[[Any], Tuple[ExitCode, Any]] = lambda value: (ExitCode.SUCCESS, value),
                  on_failure: Callable[[Any], Tuple[ExitCode, Any]] = lambda value: (ExitCode.FAILURE, value)
                  ) -> Callable[[Any], Tuple[ExitCode, Any]]:
    def decorator(func: Callable[[Any], Tuple[ExitCode, Any]]) -> Callable[[Any], Tuple[ExitCode, Any]]:
        def wrapper(service: Snapshot, *args, **kwargs) -> Tuple[ExitCode, Any]:
            try:
                result = func(service, *args, **kwargs)
            except NotImplementedError:
                logger.error(f"{func.__name__} is not implemented for {service_type} {type(service).__name__}")
                return (ExitCode.FAILURE,
                        f"{func.__name__} is not implemented for {service_type} {type(service).__name__}")
            except Exception as e:
                logger.error(f"Failed to {func.__name__} {service_type}: {e}")
                notes = "".join(f"\n{note}" for note in getattr(e, "__notes__", []))
                return ExitCode.FAILURE, f"Failure on {func.__name__} for {service_type}: {type(e).__name__} {e}{notes}"
            if result.success:
                return on_success(result.value)
            return on_failure(result.value)
        wrapper.__name__ = func.__name__
        return wrapper
    return decorator
