from __future__ import annotations

import urllib.parse


def normalize_pm_api_base(url: str) -> str:
    out = (url or "").strip().rstrip("/")
    if out.endswith("/api2/json"):
        out = out[: -len("/api2/json")]
    if out and "://" not in out:
        out = f"https://{out}"
    return out


def host_of(url: str) -> str:
    return urllib.parse.urlsplit(normalize_pm_api_base(url)).hostname or ""


def env_key(prefix: str, dotted: str) -> str:
    return f"{prefix}{dotted.replace('.', '_')}".upper()


def url_port(url: str) -> int | None:
    return urllib.parse.urlsplit(normalize_pm_api_base(url)).port


def valid_port(port: str) -> bool:
    return port.isdigit() and 0 < int(port) < 65536
