import json
from typing import Any, Callable, Dict, List, Tuple

import yaml

from etcd_snapshot.models.utils import ExitCode


def support_json_return() -> Callable[[Tuple[ExitCode, Dict | List | str]], Tuple[ExitCode, str]]:
    def decorator(func: Callable[[Tuple[ExitCode, Dict | List | str]], Tuple[ExitCode, str]]) \
            -> Callable[[Any], Tuple[ExitCode, str]]:
        def wrapper(*args, as_json=False, **kwargs) -> Tuple[ExitCode, str]:
            exit_code, payload = func(*args, **kwargs)
            # Failure messages are passed through untouched
            if exit_code != ExitCode.SUCCESS:
                return (exit_code, payload)
            if as_json:
                return (exit_code, json.dumps(payload))
            return (exit_code, yaml.safe_dump(payload, sort_keys=False))
        wrapper.__name__ = func.__name__
        return wrapper
    return decorator
