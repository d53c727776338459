from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_pascal


class SkuVaultRecord(BaseModel):
    """Base for records decoded from SkuVault payloads.

    Wire names are PascalCase (``LongDescription``); keys are matched
    case-insensitively, and unknown keys are ignored.
    """
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def match_keys_case_insensitively(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        known = {}
        for name, field in cls.model_fields.items():
            alias = field.alias or name
            known[alias.lower()] = alias
            known[name.lower()] = alias
        matched = {}
        for key, value in data.items():
            target = known.get(str(key).lower())
            if target is not None and target not in matched:
                matched[target] = value
        return matched


def none_to_empty(value: Any) -> Any:
    return "" if value is None else value
