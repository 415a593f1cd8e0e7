"""clamgate — HTTP gateway over a ClamAV scanning daemon.

Callers submit raw text or an uploaded file; the gateway streams the payload to
``clamd`` and relays a structured verdict as JSON.
"""

__version__ = "1.0.0"
