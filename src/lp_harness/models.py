"""
Pydantic bases for node-facing payloads.

Node flags (``-ethAcctAddr``) and control-plane form fields (``pricePerUnit``)
are camelCase, while harness code uses snake_case field names.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """
    Serializes field names in the node's camelCase spelling.

    ``NodeConfig.to_args`` dumps by alias to get flag names; construction
    accepts either spelling.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_default=True,
    )


class StrictBaseModel(CamelModel):
    """
    Frozen, strict model for values handed to a node.

    A launched node's configuration and registration parameters never change,
    and misspelled fields fail at construction instead of reaching the node.
    """

    model_config = CamelModel.model_config | {
        "extra": "forbid",
        "frozen": True,
        "strict": True,
    }
