from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Tuple

from modbundle.constants import DEFAULT_MAIN_FIELDS


@dataclass(frozen=True)
class ResolveOptions:
    """Where and how a specifier is looked up.

    ``working_dir`` is the consuming project (the one owning the
    package.json), ``extra_search_paths`` are additional roots for the
    package lookup (monorepos, pnpm stores).
    """

    working_dir: Path = field(default_factory=Path.cwd)
    extra_search_paths: Tuple[Path, ...] = ()
    main_fields: Tuple[str, ...] = DEFAULT_MAIN_FIELDS

    def __post_init__(self):
        object.__setattr__(self, "working_dir", Path(self.working_dir))
        object.__setattr__(
            self, "extra_search_paths", tuple(Path(p) for p in self.extra_search_paths)
        )
        object.__setattr__(self, "main_fields", tuple(self.main_fields))

    @property
    def search_roots(self) -> Tuple[Path, ...]:
        return (self.working_dir,) + self.extra_search_paths

    def with_main_fields(self, main_fields) -> "ResolveOptions":
        return replace(self, main_fields=tuple(main_fields))
