"""
Exceptions raised inside a probe run.

CapabilityError is what scripts see (and may catch) when a host capability
refuses or fails a call. ScriptLoadError is raised by the isolate manager and
never reaches the script.
"""


class CapabilityError(RuntimeError):
    """A host capability rejected its input or the underlying operation failed."""

    pass


class ScriptLoadError(ValueError):
    """Script did not compile, failed while loading, or defines no probe()."""

    pass
