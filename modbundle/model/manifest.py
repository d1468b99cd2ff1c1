"""Pydantic model of a package descriptor (package.json)."""

import json
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PackageManifest(BaseModel):
    """The parts of a package.json the resolution cares about.

    Unknown keys are kept, so field lookups by name (``entry_for``) also see
    custom main fields.
    """

    model_config = ConfigDict(extra="allow")

    name: Optional[str] = Field(None, description="Package name")
    version: Optional[str] = Field(None, description="Package version")
    main: Optional[str] = Field(None, description="CommonJS entry point")
    module: Optional[str] = Field(None, description="ES module entry point")
    browser: Optional[Union[str, dict, bool]] = Field(
        None, description="Browser entry point or replacement map"
    )
    exports: Optional[Any] = Field(None, description="Package exports map")

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "PackageManifest":
        """Load a manifest; raises OSError, ValueError or ValidationError."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path} does not contain a JSON object")
        return cls.model_validate(data)

    def field_value(self, name: str) -> Any:
        value = getattr(self, name, None)
        if value is None and self.model_extra:
            value = self.model_extra.get(name)
        return value

    def entry_for(self, fields: Iterable[str]) -> Optional[str]:
        """Return the value of the first field (in order) holding a string."""
        for name in fields:
            value = self.field_value(name)
            if isinstance(value, str):
                return value
        return None
