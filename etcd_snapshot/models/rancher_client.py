from enum import Enum
import logging
from typing import Any, Dict, Optional

from cerberus import Validator
import requests
import requests.auth
from requests.auth import HTTPBasicAuth

from etcd_snapshot.models.client_options import ClientOptions
from etcd_snapshot.models.management import ManagementClient
from etcd_snapshot.models.steve import SteveClient
from etcd_snapshot.models.utils import HttpMethod

requests.packages.urllib3.disable_warnings()  # ignore: type

logger = logging.getLogger(__name__)

AuthMethod = Enum("AuthMethod", ["TOKEN", "BASIC_AUTH"])


def validate_single_auth_method(field, value, error):
    found = {auth.name.lower() for auth in AuthMethod}.intersection(value.keys())
    if len(found) > 1:
        error(field, f"More than one auth method is present: {sorted(found)}")
    elif len(found) < 1:
        error(field, f"No auth method is present from set: {sorted(auth.name.lower() for auth in AuthMethod)}")


BASIC_AUTH_SCHEMA = {
    "type": "dict",
    "schema": {
        "access_key": {"type": "string", "required": True, "empty": False},
        "secret_key": {"type": "string", "required": True, "empty": False},
    }
}

SCHEMA = {
    "rancher": {
        "type": "dict",
        "schema": {
            "url": {"type": "string", "required": True, "empty": False},
            "allow_insecure": {"type": "boolean", "required": False},
            "token": {"type": "string", "empty": False},
            "basic_auth": BASIC_AUTH_SCHEMA,
        },
        "check_with": validate_single_auth_method
    }
}


class BearerTokenAuth(requests.auth.AuthBase):
    def __init__(self, token: str) -> None:
        self.token = token

    def __call__(self, r: requests.PreparedRequest) -> requests.PreparedRequest:
        r.headers["Authorization"] = f"Bearer {self.token}"
        return r


class RancherClient:
    """
    A connection to a Rancher server, exposing the legacy management (v3) API and the Steve (v1) API.
    """

    config: Dict
    url: str = ""
    auth_type: Optional[AuthMethod] = None
    allow_insecure: bool = False
    client_options: Optional[ClientOptions] = None

    def __init__(self, config: Dict, client_options: Optional[ClientOptions] = None) -> None:
        logger.info(f"Initializing rancher client for {config.get('url')}")
        v = Validator(SCHEMA)
        if not v.validate({'rancher': config}):
            raise ValueError("Invalid config file for rancher", v.errors)

        self.config = config
        self.url = config["url"].rstrip("/")
        self.allow_insecure = config.get("allow_insecure", False)
        if "token" in config:
            self.auth_type = AuthMethod.TOKEN
        else:
            self.auth_type = AuthMethod.BASIC_AUTH
        self.client_options = client_options
        self.management = ManagementClient(self)
        self.steve = SteveClient(self)

    def _generate_auth_object(self) -> requests.auth.AuthBase:
        if self.auth_type == AuthMethod.TOKEN:
            return BearerTokenAuth(self.config["token"])
        elif self.auth_type == AuthMethod.BASIC_AUTH:
            return HTTPBasicAuth(self.config["basic_auth"]["access_key"], self.config["basic_auth"]["secret_key"])
        raise NotImplementedError(f"Auth type {self.auth_type} not implemented")

    def _resolve_url(self, path: str) -> str:
        # Pagination and action links come back as absolute URLs
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.url}{path}"

    def call_api(self, path: str, method: HttpMethod = HttpMethod.GET, json_body: Any = None,
                 params: Optional[Dict] = None) -> requests.Response:
        """
        Calls an API on the Rancher server, raising `requests.HTTPError` on a non-2xx response.
        """
        request_headers = None
        if self.client_options:
            request_headers = self.client_options.apply_to_headers(None)

        url = self._resolve_url(path)
        r = requests.request(
            method.name,
            url,
            verify=(not self.allow_insecure),
            params=params,
            auth=self._generate_auth_object(),
            json=json_body,
            headers=request_headers
        )
        logger.info(f"call_api request {method.name} {url}, response: {r.status_code} {r.text[:1000]}")
        r.raise_for_status()
        return r
