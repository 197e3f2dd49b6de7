# qmodpack/core/logging/context.py
from __future__ import annotations
import contextvars

# Per-call log context (modId, stage). Set around derivation and packaging.
_logContextVar: contextvars.ContextVar[dict[str, object] | None] = contextvars.ContextVar("qmodpack.logctx", default=None)

def setLogContext(**kvs):
    """Set or update per-log context values."""
    current = dict(_logContextVar.get() or {}) # use copy
    for key, value in kvs.items():
        if value is not None:
            current[key] = value
    _logContextVar.set(current)

def clearLogContext():
    _logContextVar.set(None)

def getLogContext():
    """Return current context dict or None."""
    return _logContextVar.get()
