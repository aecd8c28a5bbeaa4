import logging
from pathlib import Path
from typing import Dict, Optional, Union

import yaml
from cerberus import Validator

from etcd_snapshot.models.client_options import ClientOptions
from etcd_snapshot.models.defaults import Defaults
from etcd_snapshot.models.factories import get_snapshot
from etcd_snapshot.models.rancher_client import RancherClient
from etcd_snapshot.models.snapshot import Snapshot
from etcd_snapshot.models.utils import ClusterFlavor

logger = logging.getLogger(__name__)


SCHEMA = {
    "rancher": {"type": "dict", "required": True},
    "cluster": {
        "type": "dict",
        "required": True,
        "schema": {
            "name": {"type": "string", "required": True, "empty": False},
            "flavor": {"type": "string", "required": True, "allowed": [flavor.value for flavor in ClusterFlavor]},
            "namespace": {"type": "string", "required": False, "empty": False},
        },
    },
    "timeouts": {"type": "dict", "required": False},
    "client_options": {"type": "dict", "required": False},
}


class Environment:
    client: RancherClient
    snapshot: Snapshot
    defaults: Defaults
    client_options: Optional[ClientOptions] = None
    config: Dict

    def __init__(self, config: Optional[Dict] = None, config_file: Optional[Union[str, Path]] = None):
        """
        Initialize the environment either from a configuration file or a direct configuration object.

        :param config: Direct configuration object (overrides config_file).
        :param config_file: Path to the YAML config file.
        """
        if isinstance(config, Dict):
            self.config = config
            logger.info("Using provided config")
        elif config_file:
            logger.info(f"Loading config file: {config_file}")
            with open(config_file) as f:
                self.config = yaml.safe_load(f)
        else:
            raise ValueError("Either config or config_file must be provided.")

        v = Validator(SCHEMA)
        if not v.validate(self.config):
            logger.error(f"Config file validation errors: {v.errors}")
            raise ValueError("Invalid config file", v.errors)

        if 'client_options' in self.config:
            self.client_options = ClientOptions(self.config["client_options"])

        self.defaults = Defaults(self.config.get("timeouts"))
        self.client = RancherClient(config=self.config["rancher"], client_options=self.client_options)
        logger.info(f"Rancher client initialized: {self.client.url}")

        self.snapshot = get_snapshot(self.config["cluster"], client=self.client, defaults=self.defaults)
        logger.info(f"Snapshot helper initialized for {self.config['cluster']['flavor']} cluster "
                    f"{self.config['cluster']['name']}")
