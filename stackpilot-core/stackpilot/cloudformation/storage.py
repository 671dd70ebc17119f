import dataclasses
import datetime
import logging
from typing import Callable, Optional, Union

from stackpilot.aws.connect import ClientFactory
from stackpilot.cloudformation.exceptions import MissingDestination
from stackpilot.config import DeployConfig
from stackpilot.constants import TEMPLATE_UPLOAD_EXTENSION, TEMPLATE_UPLOAD_NAMESPACE
from stackpilot.utils.strings import to_bytes

LOG = logging.getLogger(__name__)


def utc_today() -> datetime.date:
    return datetime.datetime.now(tz=datetime.timezone.utc).date()


@dataclasses.dataclass(frozen=True)
class SubmissionPayload:
    """The template part of a create/update request, either the template body itself or the URL of its S3 copy."""

    template_body: Optional[str] = None
    template_url: Optional[str] = None

    def __post_init__(self):
        if (self.template_body is None) == (self.template_url is None):
            raise ValueError("Exactly one of template_body and template_url must be set")

    @property
    def is_inline(self) -> bool:
        return self.template_body is not None

    def as_request(self) -> dict:
        if self.is_inline:
            return {"TemplateBody": self.template_body}
        return {"TemplateURL": self.template_url}


@dataclasses.dataclass(frozen=True)
class NotUploaded:
    pass


@dataclasses.dataclass(frozen=True)
class Uploaded:
    url: str


UploadState = Union[NotUploaded, Uploaded]


class TemplateStore:
    """
    Stores template bodies which are too large to be submitted inline in an S3 bucket.

    ``destination`` has the form ``bucket[/prefix...]``. Templates are stored under
    ``<prefix>/stackpilot/<stack name>/<YYYY-MM-DD>.json``, so uploads on the same (UTC) day overwrite each
    other. A store uploads at most once, later calls return the URL of the first upload.
    """

    def __init__(
        self,
        destination: Optional[str],
        name: str,
        config: DeployConfig,
        clients: ClientFactory = None,
        today: Callable[[], datetime.date] = utc_today,
    ):
        self.destination = destination or ""
        self.name = name
        self.region = config.s3_region
        self.max_body_size = config.max_template_body_size
        self._clients = clients
        self._today = today
        self.state: UploadState = NotUploaded()

    @property
    def bucket(self) -> str:
        return self.destination.split("/")[0]

    @property
    def key(self) -> str:
        _, *tail = self.destination.split("/")
        segments = [segment for segment in tail if segment]
        prefix = "/".join([*segments, TEMPLATE_UPLOAD_NAMESPACE, self.name])
        return f"{prefix}/{self._today().strftime('%Y-%m-%d')}{TEMPLATE_UPLOAD_EXTENSION}"

    def url_for(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def requires_upload(self, body: str) -> bool:
        return len(to_bytes(body)) > self.max_body_size

    def upload(self, body: str) -> str:
        """
        Uploads the given body (unless this store already uploaded a template) and returns its URL.

        :raises MissingDestination: if no bucket is configured
        """
        if isinstance(self.state, Uploaded):
            return self.state.url

        if not self.bucket:
            raise MissingDestination()

        key = self.key
        LOG.debug("Uploading CloudFormation template to s3://%s/%s", self.bucket, key)
        self._clients.s3.put_object(Bucket=self.bucket, Key=key, Body=to_bytes(body))
        self.state = Uploaded(url=self.url_for(key))
        return self.state.url

    def prepare(self, body: str) -> SubmissionPayload:
        """Returns the payload to submit for the given body, uploading the body if it exceeds the inline limit."""
        if not self.requires_upload(body):
            return SubmissionPayload(template_body=body)
        LOG.info(
            "Template of %s exceeds %s bytes, submitting it via S3", self.name, self.max_body_size
        )
        return SubmissionPayload(template_url=self.upload(body))
