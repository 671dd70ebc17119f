"""
AWS client stack.

This module creates the boto3 clients used to talk to CloudFormation, S3, SSM and STS. All clients are
created from an explicit ``DeployConfig``, so tests and CLI invocations can use isolated configurations.
"""
import logging
import threading
from functools import lru_cache
from typing import Optional

from boto3.session import Session
from botocore.client import BaseClient
from botocore.config import Config

from stackpilot.config import DeployConfig

LOG = logging.getLogger(__name__)


def attribute_name_to_service_name(attribute_name):
    """
    Converts a python-compatible attribute name to the boto service name
    :param attribute_name: Python compatible attribute name using the following replacements:
                            a) Add an underscore suffix `_` to any reserved Python keyword (PEP-8).
                            b) Replace any dash `-` with an underscore `_`
    :return:
    """
    if attribute_name.endswith("_"):
        # lambda_ -> lambda
        attribute_name = attribute_name[:-1]
    # replace all _ with -: cognito_idp -> cognito-idp
    return attribute_name.replace("_", "-")


class ClientFactory:
    """
    Factory to build the AWS clients.

    Boto client creation is resource intensive. This class caches all Boto
    clients it creates and must be used instead of directly using boto lib.
    Services are accessed as attributes, e.g. ``factory.cloudformation``.
    """

    def __init__(self, config: DeployConfig, session: Session = None):
        """
        :param config: the deploy configuration (region, endpoint, retry behavior)
        :param session: Session to be used for client creation. Will create a new session if not provided.
        """
        self._config = config
        self._session: Session = session or Session()
        self._create_client_lock = threading.RLock()

    def __getattr__(self, service: str) -> BaseClient:
        if service.startswith("_"):
            raise AttributeError(service)
        return self.get_client(attribute_name_to_service_name(service))

    def get_client(self, service_name: str, region_name: Optional[str] = None) -> BaseClient:
        return self._get_client(service_name, region_name or self._config.region)

    @lru_cache(maxsize=32)
    def _get_client(self, service_name: str, region_name: str) -> BaseClient:
        """
        Returns a boto3 client with the given configuration.
        This is a cached call, so modifications to the used client will affect others.
        Client creation is behind a lock as it is not generally thread safe.
        """
        with self._create_client_lock:
            client_config = (
                Config(retries={"max_attempts": 0})
                if self._config.disable_boto_retries
                else Config()
            )
            LOG.debug("Creating %s client for region %s", service_name, region_name)
            return self._session.client(
                service_name=service_name,
                region_name=region_name,
                endpoint_url=self._config.endpoint_url,
                config=client_config,
            )


class AccountIdProvider:
    """Lazily looks up (and remembers) the AWS account id of the current credentials."""

    def __init__(self, clients: ClientFactory):
        self._clients = clients
        self._account_id: Optional[str] = None

    def get_account_id(self) -> str:
        if self._account_id is None:
            self._account_id = self._clients.sts.get_caller_identity()["Account"]
        return self._account_id

    def __str__(self):
        return self.get_account_id()
