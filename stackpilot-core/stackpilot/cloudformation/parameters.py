from typing import Any, Dict, List, Mapping, Optional

from stackpilot.utils.strings import canonicalize_bool_to_str


def _to_parameter_value(value: Any) -> str:
    if isinstance(value, bool):
        return canonicalize_bool_to_str(value)
    if isinstance(value, (list, tuple)):
        return ",".join(_to_parameter_value(item) for item in value)
    if value is None:
        return ""
    return str(value)


class Parameters:
    """
    Converts the raw parameter data of a stack into the ``Parameters`` list of a create/update request.

    The raw data is either a mapping of parameter names to values, or a list of ``ParameterKey``/``ParameterValue``
    entries. A mapping may hold stage sections, i.e. nested mappings keyed by a stage name::

        InstanceType: t3.micro
        VpcId: vpc-123
        prod:
          InstanceType: m5.large

    The top level values are shared by all stages, the section of the current stage is merged over them
    (``prod`` above sends ``InstanceType=m5.large`` and ``VpcId=vpc-123``). Sections of other stages are never
    sent. Order of the input is preserved.
    """

    def __init__(self, data: Any, stage: Optional[str] = None):
        self.data = data
        self.stage = stage

    @property
    def scoped_data(self) -> Any:
        data = self.data or {}
        if not isinstance(data, Mapping):
            return data
        # nested mappings are the parameters of stages
        scoped = {key: value for key, value in data.items() if not isinstance(value, Mapping)}
        if self.stage and isinstance(data.get(self.stage), Mapping):
            scoped.update(data[self.stage])
        return scoped

    def stack_parameters(self) -> List[Dict[str, Any]]:
        data = self.scoped_data
        if isinstance(data, Mapping):
            return [
                {"ParameterKey": str(key), "ParameterValue": _to_parameter_value(value)}
                for key, value in data.items()
                if not isinstance(value, Mapping)
            ]
        return [self._from_entry(entry) for entry in data]

    @staticmethod
    def _from_entry(entry: Mapping) -> Dict[str, Any]:
        if entry.get("UsePreviousValue"):
            return {"ParameterKey": str(entry["ParameterKey"]), "UsePreviousValue": True}
        return {
            "ParameterKey": str(entry["ParameterKey"]),
            "ParameterValue": _to_parameter_value(entry.get("ParameterValue")),
        }
