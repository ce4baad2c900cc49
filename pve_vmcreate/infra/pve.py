from __future__ import annotations

import json
import logging
import urllib.parse
from typing import Any

import httpx

from pve_vmcreate.core.errors import ConfigError, DecodeError, NetworkError, ProtocolError
from pve_vmcreate.core.models import ApiResult, PinnedCertificate, ProxmoxConfig, VmParams
from pve_vmcreate.utils import normalize_pm_api_base
from .tls import build_client

LOG = logging.getLogger("pve-vmcreate")

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def build_request(cfg: ProxmoxConfig, vm: VmParams) -> tuple[str, str]:
    base = normalize_pm_api_base(cfg.url)
    url = f"{base}:{cfg.port}/api2/json/nodes/{cfg.node}/qemu"
    body = urllib.parse.urlencode(vm.to_form())
    return url, body


def decode_envelope(body: str) -> tuple[Any, dict[str, str]]:
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise DecodeError(f"Error decoding JSON response: {exc}") from exc
    if not isinstance(payload, dict):
        raise DecodeError(f"Error decoding JSON response: expected an object, got {type(payload).__name__}")

    errors = payload.get("errors")
    if errors is None:
        errors = {}
    if not isinstance(errors, dict) or not all(isinstance(v, str) for v in errors.values()):
        raise DecodeError(f"Error decoding JSON response: unexpected errors field {errors!r}")
    return payload.get("data"), errors


class PveClient:
    def __init__(
        self,
        cfg: ProxmoxConfig,
        client: httpx.AsyncClient | None = None,
        *,
        cert: PinnedCertificate | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if client is None and transport is None and cert is None:
            raise ValueError("either client, transport or cert is required")
        self.cfg = cfg
        if client is not None:
            self._client = client
        elif transport is not None:
            self._client = httpx.AsyncClient(transport=transport)
        else:
            self._client = build_client(cert)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": FORM_CONTENT_TYPE,
            "Authorization": f"PVEAPIToken={self.cfg.token}",
        }

    def _extensions(self) -> dict[str, Any]:
        if not self.cfg.server_name:
            return {}
        return {"sni_hostname": self.cfg.server_name}

    async def send(self, url: str, body: str) -> ApiResult:
        LOG.debug("POST %s", url)
        try:
            async with self._client.stream(
                "POST",
                url,
                headers=self._headers(),
                content=body.encode("utf-8"),
                extensions=self._extensions(),
            ) as resp:
                if resp.status_code != httpx.codes.OK:
                    raise ProtocolError(resp.status_code, url)
                raw = await resp.aread()
        except httpx.InvalidURL as exc:
            raise ConfigError(f"invalid request URL {url!r}: {exc}") from exc
        except httpx.DecodingError as exc:
            raise DecodeError(f"Error reading response body: {exc}") from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Error making request: {exc!r}") from exc

        text = raw.decode("utf-8", errors="replace")
        data, errors = decode_envelope(text)
        if errors:
            LOG.warning("Error from Proxmox: %s", errors)
        return ApiResult(status_code=resp.status_code, body=text, data=data, errors=errors)

    async def create_vm(self, vm: VmParams) -> ApiResult:
        url, body = build_request(self.cfg, vm)
        LOG.info("Creating VM vmid=%s name=%s on node %s", vm.vmid, vm.name, self.cfg.node)
        return await self.send(url, body)
