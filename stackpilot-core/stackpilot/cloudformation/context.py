"""
Values exposed to templates while rendering: the stage-scoped context tree, the stage name, the AWS account id
and a lookup for SSM parameters.
"""
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Protocol

from stackpilot.aws.connect import ClientFactory
from stackpilot.cloudformation.exceptions import StackpilotError

LOG = logging.getLogger(__name__)


class AttributeDict(dict):
    """
    Read-only view of a nested document which allows attribute access (``context.db.name``) next to item access.
    Nested mappings (also inside lists) are wrapped on access, missing attributes resolve to None.
    """

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        return self._wrap(self.get(name))

    def __getitem__(self, key):
        return self._wrap(super().__getitem__(key))

    def __setattr__(self, name, value):
        raise AttributeError(f"Render context is read-only, cannot set '{name}'")

    @classmethod
    def _wrap(cls, value: Any) -> Any:
        if isinstance(value, Mapping) and not isinstance(value, AttributeDict):
            return cls(value)
        if isinstance(value, list):
            return [cls._wrap(item) for item in value]
        return value


class SecretResolver(Protocol):
    def resolve(self, name: str) -> Optional[str]:
        """Returns the (decrypted) value of the secret with the given name, or None if it does not exist."""


class SsmSecretResolver:
    """Resolves secrets from SSM parameters. Every call performs a remote lookup, values are not cached."""

    def __init__(self, clients: ClientFactory):
        self._clients = clients

    def resolve(self, name: str) -> Optional[str]:
        ssm = self._clients.ssm
        LOG.debug("Resolving SSM parameter %s", name)
        try:
            response = ssm.get_parameter(Name=name, WithDecryption=True)
        except ssm.exceptions.ParameterNotFound:
            return None
        return (response.get("Parameter") or {}).get("Value")

    def __call__(self, name: str) -> Optional[str]:
        return self.resolve(name)


class LazyValue:
    """A value which is computed on first use, e.g. when it is rendered into a template."""

    def __init__(self, factory: Callable[[], Any]):
        self._factory = factory
        self._computed = False
        self._value = None

    @property
    def value(self) -> Any:
        if not self._computed:
            self._value = self._factory()
            self._computed = True
        return self._value

    def __str__(self):
        value = self.value
        return "" if value is None else str(value)

    def __eq__(self, other):
        if isinstance(other, LazyValue):
            other = other.value
        return self.value == other

    def __hash__(self):
        return hash(self.value)

    def __bool__(self):
        return bool(self.value)


class RenderContext:
    """
    The variables available in a template: ``context`` (the stage-scoped context document), ``stage``,
    ``aws_account_id`` and ``ssm``. Built once per render and not modified while rendering.
    """

    def __init__(
        self,
        document: Optional[Mapping],
        stage: Optional[str],
        account_id: Callable[[], str],
        secrets: Optional[SecretResolver],
    ):
        document = document or {}
        if stage and isinstance(document, Mapping) and stage in document:
            document = document[stage] or {}
        self.context = AttributeDict(document)
        self.stage = LazyValue(lambda: stage)
        self.aws_account_id = LazyValue(account_id)
        self.secrets = secrets

    def ssm(self, name: str) -> Optional[str]:
        if self.secrets is None:
            raise StackpilotError(f"Cannot resolve SSM parameter {name}, no secret resolver configured")
        return self.secrets.resolve(name)

    def as_variables(self) -> Dict[str, Any]:
        return {
            "context": self.context,
            "stage": self.stage,
            "aws_account_id": self.aws_account_id,
            "ssm": self.ssm,
        }
