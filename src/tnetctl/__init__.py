"""Control plane for tunnel agents and proxies.

tnetctl keeps a table of agent and proxy instances, launches the ``tnet``
binary for each one, and serves a small HTTP and WebSocket API for the
dashboard.
"""

__version__ = "0.1.0"
