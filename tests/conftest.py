import io
import json
import logging
from pathlib import Path
from typing import Dict, Optional

import pytest

from modbundle.context import EngineContext
from modbundle.backend.resolver import Resolver
from modbundle.model.options import ResolveOptions


@pytest.fixture
def capture_logs():
    """Fixture to capture log output during tests."""
    log_stream = io.StringIO()
    handler = logging.StreamHandler(log_stream)
    logger = logging.getLogger("modbundle")
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)

    yield log_stream

    logger.removeHandler(handler)
    logger.setLevel(previous_level)
    log_stream.close()


def write_package(
    root: Path,
    name: str,
    files: Dict[str, str],
    manifest: Optional[dict] = None,
) -> Path:
    """Create ``root/node_modules/<name>`` with a package.json and files."""
    package_dir = root / "node_modules" / name
    package_dir.mkdir(parents=True, exist_ok=True)
    data = {"name": name, "version": "1.0.0"}
    data.update(manifest or {})
    (package_dir / "package.json").write_text(json.dumps(data))
    for rel_path, content in files.items():
        target = package_dir / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return package_dir


@pytest.fixture
def make_package():
    """Factory fixture: make_package(root, name, files, manifest=None)."""
    return write_package


@pytest.fixture
def project(tmp_path, monkeypatch) -> Path:
    """A consuming project with its own package.json and empty node_modules."""
    project_dir = tmp_path / "app"
    project_dir.mkdir()
    (project_dir / "package.json").write_text(json.dumps({"name": "my-app"}))
    (project_dir / "node_modules").mkdir()
    # keep the unscoped default lookup away from the real working directory
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("NODE_PATH", raising=False)
    return project_dir


@pytest.fixture
def options(project) -> ResolveOptions:
    return ResolveOptions(working_dir=project)


@pytest.fixture
def context() -> EngineContext:
    return EngineContext()


@pytest.fixture
def resolver(context) -> Resolver:
    return Resolver(context)
