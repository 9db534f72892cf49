"""
Hive JSON-RPC client: pooled session, error kinds, request log.

Every call is one HTTPS POST of a JSON-RPC envelope to HIVE_API_NODE.
Failures surface as TransportError (network / HTTP / undecodable body) or
RemoteError (the node answered with an ``error`` member).
"""

import os
import time
from collections import deque
from datetime import datetime

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

# ============================================================================
# CONFIGURATION
# ============================================================================
HIVE_API_NODE = os.environ.get("HIVE_API_NODE", "https://api.deathwing.me")
DEBUG_MODE = os.environ.get("HIVE_DEBUG", "1").lower() not in ("0", "false", "no")

REQUEST_TIMEOUT = float(os.environ.get("HIVE_REQUEST_TIMEOUT", "10"))
USER_AGENT = "HiveIntroExplorer/1.0"

debug_log = deque(maxlen=800)

request_stats = {"total": 0, "success": 0, "failed": 0, "timeouts": 0, "last_error": None}


# ============================================================================
# ERRORS
# ============================================================================
class HiveApiError(Exception):
    """Base class for failures talking to the Hive node."""


class TransportError(HiveApiError):
    """The node could not be reached or answered with something unusable."""

    def __init__(self, message, status=None):
        super().__init__(message)
        self.status = status


class RemoteError(HiveApiError):
    """The node answered but flagged an application-level error."""

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


# ============================================================================
# CONNECTION POOLING WITH SESSION
# ============================================================================
session = requests.Session()

# JSON-RPC reads go over POST, so POST has to be retryable too.
retry_strategy = Retry(
    total=2,
    backoff_factor=0.5,
    status_forcelist=[500, 502, 503, 504],
    allowed_methods=frozenset(["GET", "POST"]),
    raise_on_status=False,
)

adapter = HTTPAdapter(pool_connections=10, pool_maxsize=20, max_retries=retry_strategy)
session.mount("http://", adapter)
session.mount("https://", adapter)

session.headers.update({
    "User-Agent": USER_AGENT,
    "Accept": "application/json",
    "Content-Type": "application/json",
})


# ============================================================================
# LOGGING
# ============================================================================
def log(msg, level="INFO", details=None):
    timestamp = datetime.now().strftime('%H:%M:%S.%f')[:-3]
    entry = {"timestamp": timestamp, "level": level, "message": msg, "details": details}
    debug_log.append(entry)

    if DEBUG_MODE:
        colors = {
            "INFO": "\033[94m", "SUCCESS": "\033[92m", "WARNING": "\033[93m",
            "ERROR": "\033[91m", "DEBUG": "\033[95m", "TIMEOUT": "\033[91m",
            "RESET": "\033[0m"
        }
        c = colors.get(level, colors["INFO"])
        print(f"{c}[{timestamp}] [{level}] {msg}{colors['RESET']}")
        if details and level in ["ERROR", "TIMEOUT"]:
            print(f"         Details: {details}")


def _record_failure(error):
    request_stats["failed"] += 1
    request_stats["last_error"] = str(error)[:140]


# ============================================================================
# JSON-RPC CALL
# ============================================================================
def call_api(method, params, request_id=1):
    """POST one JSON-RPC call and return its ``result`` member."""
    request_stats["total"] += 1
    payload = {"jsonrpc": "2.0", "method": method, "params": params, "id": request_id}
    start_time = time.time()

    log(f"→ {method}", "DEBUG", {"params": params})

    try:
        resp = session.post(HIVE_API_NODE, json=payload, timeout=REQUEST_TIMEOUT)
    except requests.exceptions.Timeout as e:
        elapsed = time.time() - start_time
        request_stats["timeouts"] += 1
        error = TransportError(f"Request timed out after {REQUEST_TIMEOUT}s")
        _record_failure(error)
        log(f"← TIMEOUT ({elapsed:.2f}s) {method}", "TIMEOUT", {"timeout": REQUEST_TIMEOUT})
        raise error from e
    except requests.exceptions.ConnectionError as e:
        elapsed = time.time() - start_time
        error = TransportError("Connection failed - node may be down")
        _record_failure(error)
        log(f"← CONNECTION ERROR ({elapsed:.2f}s) {method}", "ERROR", {"error": str(e)[:140]})
        raise error from e
    except requests.exceptions.RequestException as e:
        elapsed = time.time() - start_time
        error = TransportError(str(e)[:240])
        _record_failure(error)
        log(f"← EXCEPTION ({elapsed:.2f}s) {method}: {e}", "ERROR")
        raise error from e

    elapsed = time.time() - start_time

    if resp.status_code >= 400:
        error = TransportError(f"HTTP error! status: {resp.status_code}", status=resp.status_code)
        _record_failure(error)
        log(f"← {resp.status_code} Error ({elapsed:.2f}s) {method}", "ERROR")
        raise error

    try:
        data = resp.json()
    except ValueError as e:
        error = TransportError("Node returned a non-JSON body", status=resp.status_code)
        _record_failure(error)
        log(f"← BAD BODY ({elapsed:.2f}s) {method}", "ERROR", {"content_type": resp.headers.get("content-type")})
        raise error from e

    if not isinstance(data, dict):
        error = TransportError("Node returned an unexpected JSON shape", status=resp.status_code)
        _record_failure(error)
        log(f"← BAD SHAPE ({elapsed:.2f}s) {method}", "ERROR")
        raise error

    if data.get("error"):
        err = data["error"]
        if isinstance(err, dict):
            error = RemoteError(err.get("message") or "Remote error", code=err.get("code"))
        else:
            error = RemoteError(str(err))
        _record_failure(error)
        log(f"← RPC ERROR ({elapsed:.2f}s) {method}: {error}", "ERROR", {"error": err})
        raise error

    request_stats["success"] += 1
    log(f"← 200 OK ({elapsed:.2f}s) {method}", "SUCCESS")
    return data.get("result")


# ============================================================================
# CONDENSER API
# ============================================================================
def get_discussions(mode, params):
    """Call ``condenser_api.get_discussions_by_<mode>`` with a listing query dict."""
    result = call_api(f"condenser_api.get_discussions_by_{mode}", [params])
    return result or []


def get_accounts(names):
    result = call_api("condenser_api.get_accounts", [list(names)])
    return result or []


def get_content(author, permlink):
    return call_api("condenser_api.get_content", [author, permlink])


def get_content_replies(author, permlink):
    result = call_api("condenser_api.get_content_replies", [author, permlink])
    return result or []
