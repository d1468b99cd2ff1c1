"""Data model: cache entries, fragments, package manifests and settings."""

from .entries import CacheEntry, Fragment
from .manifest import PackageManifest
from .options import ResolveOptions
from .settings import BundleSettings

__all__ = [
    "CacheEntry",
    "Fragment",
    "PackageManifest",
    "ResolveOptions",
    "BundleSettings",
]
