# main field processing order (for package resolution and the resolver)
DEFAULT_MAIN_FIELDS = ("browser", "module", "main")

# fallback order used when bundling with ES modules fails
FALLBACK_MAIN_FIELDS = ("browser", "main", "module")

MANIFEST_FILE = "package.json"

# only these extensions are run through the transformation pipeline
JS_EXTENSIONS = (".js", ".mjs", ".cjs")

# file extensions tried by the package resolution
RESOLVE_EXTENSIONS = (".js", ".json", ".mjs", ".cjs")

# conditions honoured in a package "exports" map, in priority order
REQUIRE_CONDITIONS = ("require", "node", "default")
BROWSER_CONDITIONS = ("browser", "import", "module", "require", "default")

# native loader calls look like sap.ui.define(...) / sap.ui.require(...)
NAMESPACE_ROOT = "sap"
NAMESPACE_MEMBER = "ui"
LOADER_CALLS = frozenset({"define", "require"})

# the registration call emitted for every output fragment
LOADER_DEFINE = "sap.ui.define"

# build environment values substituted in the sources
BUILD_ENV_VALUES = {"process.env.NODE_ENV": '"development"'}

# assets and runtime modules which are irrelevant for the browser bundle
SKIP_ASSET_EXTENSIONS = ("css",)
SKIP_MODULES = ("crypto",)

# pipeline warnings which are not worth reporting
SKIPPED_WARNINGS = frozenset(
    {
        "THIS_IS_UNDEFINED",
        "CIRCULAR_DEPENDENCY",
        "MIXED_EXPORTS",
        "MODULE_LEVEL_DIRECTIVE",
    }
)

# ignore files honoured when listing the resources of a package
IGNORE_FILES = (".ignore", ".gitignore")

# length of the content hash in split fragment names
CHUNK_HASH_LENGTH = 8
