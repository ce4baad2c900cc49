from __future__ import annotations

import base64
from dataclasses import dataclass, field, fields
from typing import Any


@dataclass(frozen=True)
class ProxmoxConfig:
    url: str
    port: str
    ca_path: str
    token: str
    server_name: str
    node: str = "pve"


@dataclass(frozen=True)
class VmParams:
    vmid: str = "123"
    name: str = "my-ubuntu-vm"
    memory: str = "2048"
    cores: str = "2"
    sockets: str = "1"
    cpu: str = "host"
    net0: str = "virtio,bridge=vmbr0"
    ostype: str = "l26"
    storage: str = "local-lvm"
    disk: str = "local-lvm:15"
    installer_media: str = "local:iso/ubuntu-22.04.3-live-server-amd64.iso,media=cdrom"

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def to_form(self) -> dict[str, str]:
        return {
            "vmid": self.vmid,
            "name": self.name,
            "memory": self.memory,
            "cores": self.cores,
            "sockets": self.sockets,
            "cpu": self.cpu,
            "net0": self.net0,
            "ostype": self.ostype,
            "storage": self.storage,
            "virtio0": self.disk,
            "ide2": self.installer_media,
        }


@dataclass(frozen=True)
class Settings:
    proxmox: ProxmoxConfig
    vm: VmParams = field(default_factory=VmParams)


@dataclass(frozen=True)
class PinnedCertificate:
    der: bytes
    subject: str
    issuer: str
    serial_number: str
    not_before: str
    not_after: str

    def pem(self) -> str:
        b64 = base64.b64encode(self.der).decode("ascii")
        lines = [b64[i : i + 64] for i in range(0, len(b64), 64)]
        return "-----BEGIN CERTIFICATE-----\n" + "\n".join(lines) + "\n-----END CERTIFICATE-----\n"


@dataclass(frozen=True)
class ApiResult:
    status_code: int
    body: str
    data: Any
    errors: dict[str, str] = field(default_factory=dict)
