from typing import Dict, Optional
import logging
from cerberus import Validator
import requests.utils

logger = logging.getLogger(__name__)

SCHEMA = {
    "client_options": {
        "type": "dict",
        "schema": {
            "user_agent_extra": {"type": "string", "required": False},
        },
    }
}


class ClientOptions:
    """
    Options applied to every request sent to the Rancher API.
    """

    user_agent_extra: Optional[str] = None

    def __init__(self, config: Dict) -> None:
        logger.info(f"Initializing client options with config: {config}")
        v = Validator(SCHEMA)
        if not v.validate({'client_options': config}):
            raise ValueError("Invalid config file for client options", v.errors)

        self.user_agent_extra = config.get("user_agent_extra", None)

    def apply_to_headers(self, headers: Optional[dict]) -> Optional[dict]:
        if not self.user_agent_extra:
            return headers
        adjusted_headers = dict(headers) if headers else {}
        if "User-Agent" in adjusted_headers:
            adjusted_headers["User-Agent"] = f"{adjusted_headers['User-Agent']} {self.user_agent_extra}"
        else:
            adjusted_headers["User-Agent"] = f"{requests.utils.default_user_agent()} {self.user_agent_extra}"
        return adjusted_headers
