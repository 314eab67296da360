"""
Base Schema Models for the SIWE authentication core

This module defines the base model every other schema inherits from. It
provides the foundation for type safety, validation and consistent
serialization across the package.

Core Classes:
    - CanonicalModel: RFC8785-compliant Pydantic base model used for messages,
      verification parameters and results

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from typing import Dict, Any

from pydantic import BaseModel, ConfigDict


class CanonicalModel(BaseModel):
    """
    RFC8785-compliant Pydantic base model with canonical JSON serialization.

    This model ensures a consistent, deterministic JSON representation suitable
    for logging verification context and for transport between services.

    Features:
        - Automatic conversion of Pydantic objects and enums to standard types
        - Deterministic key sorting in JSON output
        - No extra whitespace
        - Population by field name as well as by alias, so wire payloads using
          camelCase keys (``chainId``, ``issuedAt``) and Python code using
          snake_case attributes construct the same model

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        canonical_json = model.to_canonical_json()  # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to RFC8785-compliant canonical JSON string.

        The conversion process:
        1. model_dump(mode="json", by_alias=True) converts Pydantic objects and
           enums to standard Python types using the wire names
        2. json.dumps with separators and sort_keys ensures RFC8785 compliance

        Returns:
            str: JSON string with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json", by_alias=True)
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert model to dictionary representation.

        Returns:
            Dict[str, Any]: Dictionary with all model fields (wire names).
        """
        return self.model_dump(by_alias=True)
