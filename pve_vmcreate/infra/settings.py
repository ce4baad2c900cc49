from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from pve_vmcreate.core.errors import ConfigError
from pve_vmcreate.core.models import ProxmoxConfig, Settings, VmParams
from pve_vmcreate.utils import env_key, host_of, url_port, valid_port

LOG = logging.getLogger("pve-vmcreate")

ENV_PREFIX = "PVE_VMCREATE_"
CONFIG_NAMES = ("config.yaml", "config.yml")
SEARCH_DIRS = (Path("config"), Path("."))


def find_config(search_dirs: tuple[Path, ...] = SEARCH_DIRS) -> Path:
    for directory in search_dirs:
        for name in CONFIG_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
    searched = ", ".join(str(d / n) for d in search_dirs for n in CONFIG_NAMES)
    raise ConfigError(f"failed to read configuration file: none of {searched} exists")


def read_config_file(config_path: Path) -> dict[str, Any]:
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"failed to read configuration file {config_path}: {exc}") from exc
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"failed to parse configuration file {config_path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"configuration file {config_path} must contain a mapping")
    return raw


def _section(raw: Mapping[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return value


def load_settings(config_path: Path | None = None, *, environ: Mapping[str, str] | None = None) -> Settings:
    path = Path(config_path) if config_path is not None else find_config()
    raw = read_config_file(path)
    env = {k.upper(): v for k, v in (os.environ if environ is None else environ).items()}

    proxmox_raw = _section(raw, "proxmox")
    vm_raw = _section(raw, "vm")

    def env_or(key: str, default: Any) -> str:
        value = env.get(env_key(ENV_PREFIX, key))
        if value is not None and str(value).strip() != "":
            return str(value).strip()
        return "" if default is None else str(default).strip()

    url = env_or("proxmox.url", proxmox_raw.get("url"))
    proxmox = ProxmoxConfig(
        url=url,
        port=env_or("proxmox.port", proxmox_raw.get("port")),
        ca_path=env_or("proxmox.capath", proxmox_raw.get("capath")),
        token=env_or("proxmox.token", proxmox_raw.get("token")),
        server_name=env_or("proxmox.server_name", proxmox_raw.get("server_name")) or host_of(url),
        node=env_or("proxmox.node", proxmox_raw.get("node")) or "pve",
    )

    required = {
        "proxmox.url": proxmox.url,
        "proxmox.port": proxmox.port,
        "proxmox.capath": proxmox.ca_path,
        "proxmox.token": proxmox.token,
    }
    missing = [key for key, value in required.items() if not value]
    if missing:
        raise ConfigError(f"Missing required settings: {', '.join(missing)}")

    if not valid_port(proxmox.port):
        raise ConfigError(f"proxmox.port must be a TCP port number, got {proxmox.port!r}")
    try:
        embedded_port = url_port(proxmox.url)
    except ValueError as exc:
        raise ConfigError(f"proxmox.url is not a valid URL: {proxmox.url!r}") from exc
    if embedded_port is not None:
        raise ConfigError(f"proxmox.url must not carry a port, set proxmox.port instead: {proxmox.url!r}")

    unknown = sorted(set(vm_raw) - set(VmParams.field_names()))
    if unknown:
        raise ConfigError(f"Unknown vm settings: {', '.join(unknown)}")
    defaults = VmParams()
    vm = VmParams(**{name: env_or(f"vm.{name}", vm_raw.get(name, getattr(defaults, name))) for name in VmParams.field_names()})

    LOG.info("Loaded configuration from %s", path)
    LOG.info("Proxmox host=%s port=%s ca=%s server_name=%s", proxmox.url, proxmox.port, proxmox.ca_path, proxmox.server_name)
    return Settings(proxmox=proxmox, vm=vm)
