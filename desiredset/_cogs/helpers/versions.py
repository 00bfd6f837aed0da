"""
Detecting the library's own version.

The codebase does not contain the version directly: the releases depend
on tagging rather than on in-code version bumps.

The version is determined only once at startup when the code is loaded.
"""
from typing import Optional

version: Optional[str] = None

try:
    import importlib.metadata
except ImportError:
    pass
else:
    try:
        name, *_ = __name__.split('.')  # usually "desiredset", unless renamed/forked.
        version = importlib.metadata.version(name)
    except Exception:
        pass  # installed from git, in-place, etc.
