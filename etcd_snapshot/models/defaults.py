import logging
from typing import Dict, Optional

from cerberus import Validator

logger = logging.getLogger(__name__)

ONE_MINUTE_TIMEOUT = 60
FIVE_MINUTE_TIMEOUT = 5 * 60
FIFTEEN_MINUTE_TIMEOUT = 15 * 60
THIRTY_MINUTE_TIMEOUT = 30 * 60

_TIMEOUT_RULE = {"type": "number", "min": 0, "required": False}

SCHEMA = {
    "timeouts": {
        "type": "dict",
        "schema": {
            "one_minute": _TIMEOUT_RULE,
            "five_minute": _TIMEOUT_RULE,
            "fifteen_minute": _TIMEOUT_RULE,
            "thirty_minute": _TIMEOUT_RULE,
        },
    }
}


class Defaults:
    """
    Poll timeouts, in seconds. The names describe the stock value, a config file may stretch or shrink each one
    for slower or faster environments.
    """

    one_minute_timeout: float = ONE_MINUTE_TIMEOUT
    five_minute_timeout: float = FIVE_MINUTE_TIMEOUT
    fifteen_minute_timeout: float = FIFTEEN_MINUTE_TIMEOUT
    thirty_minute_timeout: float = THIRTY_MINUTE_TIMEOUT

    def __init__(self, config: Optional[Dict] = None) -> None:
        config = config or {}
        v = Validator(SCHEMA)
        if not v.validate({'timeouts': config}):
            raise ValueError("Invalid config file for timeouts", v.errors)

        self.one_minute_timeout = config.get("one_minute", ONE_MINUTE_TIMEOUT)
        self.five_minute_timeout = config.get("five_minute", FIVE_MINUTE_TIMEOUT)
        self.fifteen_minute_timeout = config.get("fifteen_minute", FIFTEEN_MINUTE_TIMEOUT)
        self.thirty_minute_timeout = config.get("thirty_minute", THIRTY_MINUTE_TIMEOUT)
        if config:
            logger.info(f"Using timeout overrides: {config}")
