"""Translation metadata authored at call sites.

Shared by the extraction pipeline (which reads it from source code) and
the runtime (which receives it as the second argument of ``t()``).

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

__all__ = ["TranslationMeta", "VariableDef", "normalize_meta"]


@dataclass(frozen=True, slots=True)
class VariableDef:
    """Documentation for one interpolation variable."""

    fallback: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, str]:
        """Serialize, omitting unset fields."""
        data: dict[str, str] = {}
        if self.fallback is not None:
            data["fallback"] = self.fallback
        if self.description is not None:
            data["description"] = self.description
        return data


@dataclass(frozen=True, slots=True)
class TranslationMeta:
    """Metadata for a translation key.

    Attributes:
        fallback: Human-readable text rendered when no translation exists
        description: Context for translators (optional)
        variables: Variable name -> documentation (optional)
    """

    fallback: str = ""
    description: str | None = None
    variables: Mapping[str, VariableDef] | None = None

    def variables_signature(self) -> str:
        """Canonical serialization of variables for equality checks."""
        if self.variables is None:
            return ""
        return json.dumps(
            {name: var.to_dict() for name, var in self.variables.items()},
            sort_keys=True,
            ensure_ascii=False,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the manifest JSON shape, omitting unset fields."""
        data: dict[str, Any] = {"fallback": self.fallback}
        if self.variables is not None:
            data["variables"] = {name: var.to_dict() for name, var in self.variables.items()}
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TranslationMeta:
        """Build from the manifest JSON shape."""
        raw_variables = data.get("variables")
        variables = None
        if raw_variables is not None:
            variables = {
                name: VariableDef(
                    fallback=definition.get("fallback"),
                    description=definition.get("description"),
                )
                for name, definition in raw_variables.items()
            }
        return cls(
            fallback=data.get("fallback", ""),
            description=data.get("description"),
            variables=variables,
        )


def normalize_meta(meta: TranslationMeta | str | None) -> TranslationMeta:
    """Coerce the second ``t()`` argument to TranslationMeta.

    Example:
        >>> normalize_meta("Hello")
        TranslationMeta(fallback='Hello', description=None, variables=None)
        >>> normalize_meta(None).fallback
        ''
    """
    if meta is None:
        return TranslationMeta()
    if isinstance(meta, str):
        return TranslationMeta(fallback=meta)
    return meta
