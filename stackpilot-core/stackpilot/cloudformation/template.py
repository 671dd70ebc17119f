import logging
from typing import Any, Callable, Dict, Optional

from stackpilot.cloudformation.context import RenderContext, SecretResolver
from stackpilot.cloudformation.exceptions import TemplateNotFound
from stackpilot.cloudformation.loader import FileLoader
from stackpilot.utils.json import canonical_json
from stackpilot.utils.strings import to_bytes

LOG = logging.getLogger(__name__)


class Template:
    """
    A CloudFormation template of a stack, rendered with the (stage-scoped) context of the stack.

    The rendered body is canonical JSON (indented, sorted keys), so rendering the same template with the same
    context and stage always yields the same bytes.
    """

    path: str
    stage: Optional[str]

    def __init__(
        self,
        path: str,
        stage: Optional[str] = None,
        account_id: Callable[[], str] = None,
        secrets: SecretResolver = None,
    ):
        self.path = path
        self.stage = stage
        self.loader = FileLoader(path)
        self._account_id = account_id or (lambda: None)
        self._secrets = secrets

    @property
    def template_path(self) -> str:
        template_path = self.loader.template_path
        if not template_path:
            raise TemplateNotFound(self.path)
        return template_path

    def context(self) -> RenderContext:
        """Creates the render context from the context file next to the template (empty if there is none)."""
        return RenderContext(
            document=self.loader.context(),
            stage=self.stage,
            account_id=self._account_id,
            secrets=self._secrets,
        )

    def variables(self) -> Dict[str, Any]:
        return self.context().as_variables()

    def as_json(self) -> Any:
        template_path = self.template_path
        LOG.debug("Rendering template %s (stage %s)", template_path, self.stage)
        return self.loader.template(self.variables())

    @property
    def body(self) -> str:
        return canonical_json(self.as_json())

    @property
    def size(self) -> int:
        return len(to_bytes(self.body))

    def parameters(self) -> Any:
        """Loads the raw parameter data next to the template, rendered with the same variables as the template."""
        return self.loader.parameters(self.variables())
