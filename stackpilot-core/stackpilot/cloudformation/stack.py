import dataclasses
import datetime
import logging
import os
from typing import Dict, List, Optional

from botocore.exceptions import ClientError

from stackpilot.aws.connect import ClientFactory
from stackpilot.utils.json import canonical_json

LOG = logging.getLogger(__name__)


def stack_name_from_path(path: str, stage: Optional[str] = None) -> str:
    """
    Derives the stack name from the base name of a template file (or stack directory) and the optional stage,
    e.g. ``stacks/my_service.yml`` with stage ``prod`` turns into ``my-service-prod``.
    """
    base_name = os.path.basename(os.path.normpath(path))
    name, _ = os.path.splitext(base_name)
    return "-".join(part for part in [name, stage] if part).replace("_", "-")


def is_stack_missing_error(error: ClientError) -> bool:
    error_info = error.response.get("Error", {})
    return error_info.get("Code") == "ValidationError" and "does not exist" in error_info.get(
        "Message", ""
    )


@dataclasses.dataclass(frozen=True)
class StackEvent:
    event_id: str
    resource_type: str
    logical_resource_id: str
    resource_status: str
    resource_status_reason: Optional[str] = None
    timestamp: Optional[datetime.datetime] = None

    @classmethod
    def from_response(cls, event: Dict) -> "StackEvent":
        return cls(
            event_id=event["EventId"],
            resource_type=event.get("ResourceType", ""),
            logical_resource_id=event.get("LogicalResourceId", ""),
            resource_status=event.get("ResourceStatus", ""),
            resource_status_reason=event.get("ResourceStatusReason"),
            timestamp=event.get("Timestamp"),
        )


class Stack:
    """
    Local view of a remote CloudFormation stack. The state is only refreshed by ``reload()``, it is never synced
    implicitly.
    """

    name: str
    stack_id: Optional[str]
    status: Optional[str]
    outputs: Dict[str, str]

    def __init__(self, name: str, clients: ClientFactory):
        self.name = name
        self._clients = clients
        self.stack_id = None
        self.status = None
        self.outputs = {}
        self._template: Optional[str] = None
        self._events: Optional[List[StackEvent]] = None

    @property
    def cloudformation(self):
        return self._clients.cloudformation

    @property
    def exists(self) -> bool:
        if self.status is None:
            self.reload()
        return self.status is not None

    def reload(self) -> "Stack":
        """
        Fetches the current state (status, outputs, template and events) of the stack. Once the stack id is known
        the stack is described by id, which still resolves after the stack was deleted (``DELETE_COMPLETE``).
        """
        self._template = None
        self._events = None
        try:
            response = self.cloudformation.describe_stacks(StackName=self.stack_id or self.name)
            description = response["Stacks"][0]
        except ClientError as e:
            if not is_stack_missing_error(e):
                raise
            LOG.debug("Stack %s does not exist", self.name)
            self.stack_id = None
            self.status = None
            self.outputs = {}
            return self

        self.stack_id = description.get("StackId")
        self.status = description.get("StackStatus")
        self.outputs = {
            output["OutputKey"]: output.get("OutputValue")
            for output in description.get("Outputs") or []
        }
        LOG.debug("Stack %s is in status %s", self.name, self.status)
        return self

    @property
    def template(self) -> str:
        """The template body currently stored for the stack (empty if the stack does not exist)."""
        if self._template is None:
            try:
                response = self.cloudformation.get_template(StackName=self.name)
            except ClientError as e:
                if not is_stack_missing_error(e):
                    raise
                return ""
            body = response.get("TemplateBody") or ""
            if not isinstance(body, str):
                # boto3 decodes JSON template bodies into dicts
                body = canonical_json(body)
            self._template = body
        return self._template

    def fetch_events(self) -> List[StackEvent]:
        """Returns all events of the stack, in the order reported by CloudFormation (newest first)."""
        if self.stack_id is None and self.status is None:
            return []
        paginator = self.cloudformation.get_paginator("describe_stack_events")
        events = []
        for page in paginator.paginate(StackName=self.stack_id or self.name):
            events.extend(StackEvent.from_response(event) for event in page.get("StackEvents", []))
        return events

    @property
    def events(self) -> List[StackEvent]:
        """The events of the stack as of the last ``reload()``."""
        if self._events is None:
            self._events = self.fetch_events()
        return self._events

    def create(self, **request) -> str:
        LOG.debug("Creating stack %s", self.name)
        response = self.cloudformation.create_stack(StackName=self.name, **request)
        self.stack_id = response.get("StackId")
        return self.stack_id

    def update(self, **request) -> str:
        LOG.debug("Updating stack %s", self.name)
        response = self.cloudformation.update_stack(StackName=self.name, **request)
        self.stack_id = response.get("StackId")
        return self.stack_id

    def create_or_update(self, **request) -> str:
        """Submits the request as an update if the stack exists, otherwise as a create. Returns the stack id."""
        if self.exists:
            return self.update(**request)
        return self.create(**request)
