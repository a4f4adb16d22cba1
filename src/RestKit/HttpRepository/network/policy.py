# === NAVMAP v1 ===
# {
#   "module": "RestKit.HttpRepository.network.policy",
#   "purpose": "Transport policy constants and defaults.",
#   "sections": []
# }
# === /NAVMAP ===

"""Transport policy constants and defaults.

Defines timeout budgets, connection pooling limits, and header defaults for
the default ``httpx.AsyncClient`` built by :mod:`.client`. These are transport
concerns only; retry and circuit breaking are configured per request kind in
:mod:`RestKit.HttpRepository.resilience`.
"""

# ============================================================================
# Timeout Budgets (seconds)
# ============================================================================

#: Connection establishment timeout
HTTP_CONNECT_TIMEOUT = 5.0

#: Read timeout (time between data packets on an established connection)
HTTP_READ_TIMEOUT = 30.0

#: Write timeout (time to send the request body)
HTTP_WRITE_TIMEOUT = 15.0

#: Pool timeout (acquiring a connection from the pool)
HTTP_POOL_TIMEOUT = 5.0


# ============================================================================
# Connection Pooling
# ============================================================================

#: Maximum concurrent connections across all hosts
MAX_CONNECTIONS = 100

#: Maximum idle connections kept for reuse
MAX_KEEPALIVE_CONNECTIONS = 20

#: How long to keep idle connections alive (seconds)
KEEPALIVE_EXPIRY = 5.0


# ============================================================================
# Protocol & Security
# ============================================================================

#: HTTP/2 requires the optional ``h2`` package; off unless requested
HTTP2_ENABLED = False

#: Redirects change the verb for 301/302/303, so they are not followed by default
FOLLOW_REDIRECTS = False

#: Verify TLS certificates against the certifi bundle
TLS_VERIFY_ENABLED = True


# ============================================================================
# Headers
# ============================================================================

#: Default User-Agent template; ``{version}`` is the installed package version
USER_AGENT_TEMPLATE = "restkit-http/{version}"

#: Accept header attached to every request kind by default
DEFAULT_ACCEPT = "application/json"
