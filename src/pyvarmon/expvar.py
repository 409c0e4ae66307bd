"""Fetching and parsing of expvar-style introspection payloads."""

import json
import logging
import math
from numbers import Real
from typing import Any

import requests

from pyvarmon.errors import FetchError, ParseError, VarsNotFoundError
from pyvarmon.models import MemStats, Snapshot

logger = logging.getLogger(__name__)

# memstats JSON key -> MemStats field
_MEMSTATS_FIELDS = {
    "Alloc": "alloc",
    "Sys": "sys",
    "HeapAlloc": "heap_alloc",
    "HeapSys": "heap_sys",
    "NumGC": "num_gc",
}
_REQUIRED_MEMSTATS = ("Alloc", "Sys")


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        raise ParseError(f"memstats.{key} is not a number: {value!r}")
    return int(value)


def parse_expvar(text: str | bytes) -> Snapshot:
    """
    Parse an introspection payload into a Snapshot.

    Unknown fields are ignored. A missing ``cmdline`` yields an empty list and
    a missing ``memstats`` yields ``None``.

    Raises:
        ParseError: If the payload is not JSON or has an unexpected shape.
    """
    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise ParseError(f"invalid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise ParseError(f"expected a JSON object, got {type(payload).__name__}")

    cmdline = payload.get("cmdline", [])
    if not isinstance(cmdline, list) or not all(isinstance(arg, str) for arg in cmdline):
        raise ParseError("cmdline is not a list of strings")

    raw_mem = payload.get("memstats")
    memstats = None
    if raw_mem is not None:
        if not isinstance(raw_mem, dict):
            raise ParseError("memstats is not an object")
        for key in _REQUIRED_MEMSTATS:
            if key not in raw_mem:
                raise ParseError(f"memstats.{key} is missing")
        memstats = MemStats(
            **{
                attr: _as_int(key, raw_mem[key])
                for key, attr in _MEMSTATS_FIELDS.items()
                if key in raw_mem
            }
        )

    return Snapshot(cmdline=list(cmdline), memstats=memstats)


def fetch_expvar(
    addr: str,
    timeout: float | None = None,
    session: requests.Session | None = None,
) -> Snapshot:
    """
    Fetch and parse the introspection payload at ``addr``.

    Never raises for network, 404 or parse failures: those are returned on
    ``Snapshot.err`` with the other fields left empty. No retries are made.

    Args:
        addr: Full URL of the introspection endpoint.
        timeout: Request timeout in seconds. None waits indefinitely.
        session: Optional requests session to reuse connections.
    """
    http = session if session is not None else requests
    try:
        with http.get(addr, timeout=timeout) as resp:
            if resp.status_code == 404:
                logger.debug("GET %s: 404, vars not exposed", addr)
                return Snapshot(err=VarsNotFoundError(addr))
            # Non-200 bodies are still parsed
            return parse_expvar(resp.content)
    except requests.RequestException as exc:
        logger.debug("GET %s failed: %s", addr, exc)
        err = FetchError(str(exc))
        err.__cause__ = exc
        return Snapshot(err=err)
    except ParseError as exc:
        logger.debug("GET %s: unparsable payload: %s", addr, exc)
        return Snapshot(err=exc)
