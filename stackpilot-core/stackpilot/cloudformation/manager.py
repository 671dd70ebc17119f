import dataclasses
import logging
import re
from typing import Callable, Dict, Iterator, List, Optional

from botocore.exceptions import ClientError

from stackpilot.aws.connect import AccountIdProvider, ClientFactory
from stackpilot.cloudformation.context import SecretResolver, SsmSecretResolver
from stackpilot.cloudformation.diff import diff_templates
from stackpilot.cloudformation.events import CancelSignal, StackEvents
from stackpilot.cloudformation.parameters import Parameters
from stackpilot.cloudformation.stack import Stack, StackEvent, stack_name_from_path
from stackpilot.cloudformation.storage import SubmissionPayload, TemplateStore
from stackpilot.cloudformation.template import Template
from stackpilot.config import DeployConfig
from stackpilot.constants import IAM_CAPABILITIES

LOG = logging.getLogger(__name__)

NO_UPDATES_PATTERN = re.compile(r"No updates are to be performed")


@dataclasses.dataclass(frozen=True)
class StackSubmission:
    """A create or update request accepted by CloudFormation"""

    stack_name: str
    stack_id: str
    operation: str
    payload: SubmissionPayload


@dataclasses.dataclass(frozen=True)
class GracefulFailure:
    """CloudFormation rejected the update because the stack already matches the template"""

    stack_name: str
    message: str


def is_no_updates_error(error: ClientError) -> bool:
    error_info = error.response.get("Error", {})
    return error_info.get("Code") == "ValidationError" and bool(
        NO_UPDATES_PATTERN.search(error_info.get("Message", ""))
    )


class Manager:
    """
    Manages the deployment of a single stack: renders its template and parameters, submits them to
    CloudFormation, compares them with the deployed template and tails the resulting stack events.
    """

    path: str
    stage: Optional[str]
    capabilities: List[str]
    stack: Stack

    def __init__(
        self,
        path: str,
        config: DeployConfig,
        stage: Optional[str] = None,
        iam: bool = False,
        clients: ClientFactory = None,
        secrets: SecretResolver = None,
        account_id: Callable[[], str] = None,
    ):
        self.path = path
        self.stage = stage
        self.config = config
        self.clients = clients or ClientFactory(config)
        self.capabilities = list(IAM_CAPABILITIES) if iam else []
        self.stack = Stack(name=stack_name_from_path(path, stage), clients=self.clients)
        self.template = Template(
            path,
            stage=stage,
            account_id=account_id or AccountIdProvider(self.clients).get_account_id,
            secrets=secrets or SsmSecretResolver(self.clients),
        )
        self.store = TemplateStore(
            config.template_bucket, name=self.stack.name, config=config, clients=self.clients
        )
        self._stack_events: Optional[StackEvents] = None

    @property
    def stack_name(self) -> str:
        return self.stack.name

    def render(self) -> str:
        return self.template.body

    def stack_parameters(self) -> List[Dict]:
        return Parameters(data=self.template.parameters(), stage=self.stage).stack_parameters()

    def diff_stack_template(self) -> str:
        """Compares the deployed template of the stack with the rendered one. Does not modify the stack."""
        return self.diff(self.render())

    def diff(self, new_template: str) -> str:
        return diff_templates(self.stack.template, new_template)

    def reload(self) -> Stack:
        return self.stack.reload()

    def create_or_update(self, payload: SubmissionPayload, parameters: List[Dict]):
        """
        Submits the given template and parameters. Returns a ``StackSubmission``, or a ``GracefulFailure`` if
        there is nothing to update. All other errors are raised unchanged.
        """
        operation = "UPDATE" if self.stack.exists else "CREATE"
        request = {
            **payload.as_request(),
            "Parameters": parameters,
            "Capabilities": self.capabilities,
        }
        try:
            if operation == "UPDATE":
                stack_id = self.stack.update(**request)
            else:
                stack_id = self.stack.create(**request)
        except ClientError as e:
            if is_no_updates_error(e):
                LOG.debug("No updates to perform for stack %s", self.stack_name)
                return GracefulFailure(
                    stack_name=self.stack_name, message=e.response["Error"]["Message"]
                )
            raise
        LOG.info("Submitted %s of stack %s", operation.lower(), self.stack_name)
        return StackSubmission(
            stack_name=self.stack_name, stack_id=stack_id, operation=operation, payload=payload
        )

    def update_stack(self):
        """
        Renders template and parameters of the stack and submits them (via S3 if the template is too large).
        Rendering and upload errors are raised before the stack is modified.
        """
        body = self.render()
        parameters = self.stack_parameters()
        payload = self.store.prepare(body)

        # the events existing before the submission are the baseline for tailing
        self.stack.reload()
        self._stack_events = StackEvents(self.stack, self.config)

        return self.create_or_update(payload, parameters)

    def stack_events(
        self, sleep: Callable[[float], None] = None, cancel: Optional[CancelSignal] = None
    ) -> StackEvents:
        """
        Returns the tailer for the stack. After ``update_stack`` this is the tailer created right before the
        submission, otherwise the stack is reloaded and its current events are the baseline.
        """
        stack_events = self._stack_events
        if stack_events is None:
            self.reload()
            stack_events = StackEvents(self.stack, self.config)
        self._stack_events = None
        if sleep is not None:
            stack_events.sleep = sleep
        stack_events.cancel = cancel
        return stack_events

    def tail_stack_events(
        self, sleep: Callable[[float], None] = None, cancel: Optional[CancelSignal] = None
    ) -> Iterator[List[StackEvent]]:
        return self.stack_events(sleep=sleep, cancel=cancel).tail()
