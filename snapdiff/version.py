"""
Snapdiff version constants.

This module defines version constants for the snapdiff library and the JSON
diff documents it produces. The format version changes only when the
emitted document layout changes in a breaking way.
"""

# Library version (matches pyproject.toml)
SNAPDIFF_VERSION = "0.3.0"

# Layout of emitted diff documents ("OldValue"/"NewValue", "[i]" item keys)
FORMAT_VERSION = "fielddiff_v1"
