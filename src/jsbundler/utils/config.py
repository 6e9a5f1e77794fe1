"""
Configuration constants to replace magic strings throughout jsbundler
"""

# Module resolution constants
DEFAULT_MODULE_EXTENSION = ".js"
RELATIVE_PREFIXES = ("./", "../")
PATH_SEPARATOR = "/"
ALIAS_SEPARATOR = "/"

# File encoding constants
DEFAULT_FILE_ENCODING = "utf-8"
OUTPUT_FILE_MODE = 0o644

# Metadata header markers
METADATA_START = "// ==UserScript=="
METADATA_END = "// ==/UserScript=="
METADATA_KEY_WIDTH = 13  # "@description " is the longest common key

# Runtime identifiers emitted into the bundle
RUNTIME_DEFINE = "__define"
RUNTIME_REQUIRE = "__require"
RUNTIME_IMPORT_DEFAULT = "__importDefault"
RUNTIME_EXPORT_STAR = "__exportStar"
FACTORY_PARAMS = ("module", "exports", "require")
INDENT_UNIT = "    "

# Source map constants
SOURCE_MAP_VERSION = 3
SOURCE_MAP_DATA_URI_PREFIX = "data:application/json;charset=utf-8;base64,"
SOURCE_MAP_COMMENT_PREFIX = "//# sourceMappingURL="

# Validation thresholds
DEFAULT_MAX_CONSOLE_CALLS = 10
DEFAULT_MAX_DEPTH = 256
NODE_CHECK_TIMEOUT_SECONDS = 30

# Minifier defaults
DEFAULT_DROP_CONSOLE_METHODS = ("log", "debug", "info")

# Watch defaults
DEFAULT_DEBOUNCE_MS = 500
