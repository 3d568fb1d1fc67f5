"""
===============================================================================
CRC CARD — fitsync/context.py (Request-scoped context)
===============================================================================

Responsibilities:
  - Keep request-scoped context in ContextVars (async-safe).
  - Let logs correlate by request without threading parameters through the stack.
  - Provide minimal helpers: set_*(), get_context_dict(), clear_context().

Collaborators:
  - crosscutting.middleware: sets request_id/method/path/client_ip per request.
  - identity.auth: sets user_id once a bearer token is verified.
  - crosscutting.logger: enriches every record through get_context_dict().

Constraints:
  - Primitive values only (str) for safe serialization.
  - Empty defaults ("") instead of None to keep JSON flat.
===============================================================================
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import Final

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
http_method_var: ContextVar[str] = ContextVar("http_method", default="")
http_path_var: ContextVar[str] = ContextVar("http_path", default="")
client_ip_var: ContextVar[str] = ContextVar("client_ip", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

_CTX_REQUEST_ID: Final[str] = "request_id"
_CTX_METHOD: Final[str] = "method"
_CTX_PATH: Final[str] = "path"
_CTX_CLIENT_IP: Final[str] = "ip"
_CTX_USER_ID: Final[str] = "user_id"


def set_request_context(
    *, request_id: str = "", method: str = "", path: str = "", client_ip: str = ""
) -> None:
    """
    Set the minimal request context.

    Empty strings mean "not available".
    """
    request_id_var.set(request_id or "")
    http_method_var.set(method or "")
    http_path_var.set(path or "")
    client_ip_var.set(client_ip or "")


def set_user_context(user_id: str = "") -> None:
    user_id_var.set(user_id or "")


def get_context_dict() -> dict[str, str]:
    """Current context as a dict, skipping empty keys."""
    ctx: dict[str, str] = {}

    if val := request_id_var.get():
        ctx[_CTX_REQUEST_ID] = val
    if val := http_method_var.get():
        ctx[_CTX_METHOD] = val
    if val := http_path_var.get():
        ctx[_CTX_PATH] = val
    if val := client_ip_var.get():
        ctx[_CTX_CLIENT_IP] = val
    if val := user_id_var.get():
        ctx[_CTX_USER_ID] = val

    return ctx


def clear_context() -> None:
    """
    Reset the context at the end of a request.

    Prevents context bleeding between requests served by the same worker.
    """
    request_id_var.set("")
    http_method_var.set("")
    http_path_var.set("")
    client_ip_var.set("")
    user_id_var.set("")
