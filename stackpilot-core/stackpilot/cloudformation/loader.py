import logging
import os
import re
from typing import Any, Mapping, Optional

import jinja2

from stackpilot.constants import (
    CONTEXT_FILE_NAME,
    PARAMETERS_FILE_NAME,
    TEMPLATE_FILE_EXTENSIONS,
    TEMPLATE_FILE_NAME,
)
from stackpilot.utils.files import find_file_by_name, load_file
from stackpilot.utils.json import parse_json_or_yaml

LOG = logging.getLogger(__name__)

# CloudFormation dynamic references (e.g. {{resolve:ssm:name}}) share the jinja expression delimiters
DYNAMIC_REFERENCE_PATTERN = re.compile(r"\{\{(\s*resolve:)")


def escape_dynamic_references(template_body: str) -> str:
    """Turns the opening braces of dynamic references into a jinja literal, so they are rendered unchanged"""
    return DYNAMIC_REFERENCE_PATTERN.sub(r"{{ '{{' }}\1", template_body)


def render_template(template_body: str, **template_vars) -> str:
    """render a template with jinja"""
    if template_vars:
        template_body = escape_dynamic_references(template_body)
        environment = jinja2.Environment(keep_trailing_newline=True)
        template_body = environment.from_string(template_body).render(**template_vars)
    return template_body


def load_structured_file(file_path: Optional[str], variables: Mapping[str, Any] = None) -> Any:
    """
    Loads a JSON or YAML file, rendering its content with jinja first if variables are given.

    :param file_path: path to the file, may be None
    :param variables: the variables available in the file
    :return: the parsed document, or None if there is no such file
    """
    if not file_path:
        return None
    content = load_file(file_path)
    if content is None:
        return None
    content = render_template(content, **(variables or {}))
    return parse_json_or_yaml(content)


class FileLoader:
    """
    Discovers the files of a stack. ``path`` is either a stack directory, containing ``template.*`` and
    optionally ``context.*`` and ``parameters.*``, or the template file itself, in which case the other files
    are looked up next to it.
    """

    def __init__(self, path: str):
        self.path = path

    @property
    def directory(self) -> str:
        if os.path.isdir(self.path):
            return self.path
        return os.path.dirname(self.path) or "."

    @property
    def template_path(self) -> Optional[str]:
        if os.path.isdir(self.path):
            return find_file_by_name(self.path, TEMPLATE_FILE_NAME, TEMPLATE_FILE_EXTENSIONS)
        return self.path if os.path.isfile(self.path) else None

    @property
    def context_path(self) -> Optional[str]:
        return find_file_by_name(self.directory, CONTEXT_FILE_NAME, TEMPLATE_FILE_EXTENSIONS)

    @property
    def parameters_path(self) -> Optional[str]:
        return find_file_by_name(self.directory, PARAMETERS_FILE_NAME, TEMPLATE_FILE_EXTENSIONS)

    def context(self) -> Any:
        return load_structured_file(self.context_path)

    def parameters(self, variables: Mapping[str, Any] = None) -> Any:
        return load_structured_file(self.parameters_path, variables)

    def template(self, variables: Mapping[str, Any] = None) -> Any:
        return load_structured_file(self.template_path, variables)
