"""Project-level settings of the middleware, loaded from YAML."""

from pathlib import Path
from typing import List, Union

import yaml
from pydantic import BaseModel, Field, field_validator


class BundleSettings(BaseModel):
    """Settings controlling caching, transformation and listing.

    Example modbundle.yaml::

        debug: true
        skip_transform:
          - "@luigi-project/**"
        keep_dynamic_imports:
          - "@ui5/webcomponents"
        ignore:
          - "**/*.map"
    """

    skip_cache: bool = Field(False, description="Always rebuild resources")
    debug: bool = Field(False, description="Report bundle details")
    keep_dynamic_imports: Union[bool, List[str]] = Field(
        True,
        description="Keep generic dynamic imports verbatim (all or listed packages)",
    )
    skip_transform: Union[bool, List[str]] = Field(
        False, description="Serve matching modules untransformed"
    )
    extra_search_paths: List[Path] = Field(
        default_factory=list, description="Additional package search roots"
    )
    ignore: List[str] = Field(
        default_factory=list, description="Globs excluded from resource listings"
    )

    @field_validator("skip_transform", "keep_dynamic_imports")
    @classmethod
    def validate_globs(cls, v):
        if isinstance(v, list) and any(not str(item).strip() for item in v):
            raise ValueError("must not contain empty patterns")
        return v

    @classmethod
    def from_yaml(cls, path_or_content: Union[str, Path]) -> "BundleSettings":
        """Load settings from a YAML file or string content."""
        if isinstance(path_or_content, Path) or "\n" not in str(path_or_content):
            with open(path_or_content, "r") as f:
                data = yaml.safe_load(f)
        else:
            data = yaml.safe_load(str(path_or_content))

        return cls.model_validate(data or {})
