"""
Capability modules handed to probe scripts: storage, http, fs, log.
"""

from probehost.engines.script.modules.fs import make_fs_module
from probehost.engines.script.modules.http import make_http_module
from probehost.engines.script.modules.log import make_log_module
from probehost.engines.script.modules.storage import make_storage_module

__all__ = [
    "make_storage_module",
    "make_http_module",
    "make_fs_module",
    "make_log_module",
]
