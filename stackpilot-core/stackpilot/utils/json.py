import decimal
import json
import logging
from datetime import date, datetime
from typing import Any

import yaml

from .strings import to_str

LOG = logging.getLogger(__name__)


class CustomEncoder(json.JSONEncoder):
    """Helper class to convert JSON documents with datetime, decimals, or bytes."""

    def default(self, o):
        if isinstance(o, decimal.Decimal):
            if o % 1 > 0:
                return float(o)
            else:
                return int(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        if isinstance(o, bytes):
            return to_str(o)
        return super(CustomEncoder, self).default(o)


class NoDatesSafeLoader(yaml.SafeLoader):
    """Safe YAML loader which keeps date strings as strings and understands CloudFormation short-form tags"""


# keep dates as plain strings, a template has no use for date objects
NoDatesSafeLoader.yaml_implicit_resolvers = {
    k: [r for r in v if r[0] != "tag:yaml.org,2002:timestamp"]
    for k, v in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def cfn_tag_constructor(loader: yaml.Loader, tag_suffix: str, node: yaml.Node) -> dict:
    """
    Expands CloudFormation short-form intrinsic functions (``!Ref x``, ``!GetAtt a.b``, ``!Sub ...``) into their
    long form (``{"Ref": "x"}``, ``{"Fn::GetAtt": ["a", "b"]}``, ``{"Fn::Sub": ...}``).
    """
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)

    if tag_suffix == "Ref" or tag_suffix == "Condition":
        return {tag_suffix: value}
    if tag_suffix == "GetAtt" and isinstance(value, str):
        value = value.split(".", 1)
    return {f"Fn::{tag_suffix}": value}


NoDatesSafeLoader.add_multi_constructor("!", cfn_tag_constructor)


def canonical_json(obj: Any, indent: int = 2) -> str:
    """Pretty-printed JSON with a stable key order, identical for identical documents"""
    return json.dumps(obj, indent=indent, sort_keys=True, cls=CustomEncoder)


def parse_json_or_yaml(markup: str) -> Any:
    try:
        return json.loads(markup)
    except ValueError:
        return yaml.load(markup, Loader=NoDatesSafeLoader)
