"""
Backend of the module engine.

- Module resolution (project-local resources, package.json fields, package lookup)
- Native format classification of JS sources
- Resource listing of npm packages

The cache manager (``modbundle.backend.cache``) sits on top of these and the
bundling pipeline, so it is imported from its module directly.
"""

from .classifier import LoaderCallPattern, NativeFormatClassifier
from .lister import ResourceLister
from .node_resolve import node_resolve
from .resolver import Resolver

__all__ = [
    "LoaderCallPattern",
    "NativeFormatClassifier",
    "ResourceLister",
    "Resolver",
    "node_resolve",
]
