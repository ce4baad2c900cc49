#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import os
import sys
from pathlib import Path
from typing import TextIO

import httpx

from pve_vmcreate.core.errors import PveCreateError
from pve_vmcreate.core.models import ApiResult, Settings
from pve_vmcreate.infra.certs import load_certificate
from pve_vmcreate.infra.pve import PveClient
from pve_vmcreate.infra.settings import load_settings

LOG = logging.getLogger("pve-vmcreate")


async def create_vm(settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> ApiResult:
    cert = load_certificate(settings.proxmox.ca_path)
    pve = PveClient(settings.proxmox, cert=cert, transport=transport)
    try:
        return await pve.create_vm(settings.vm)
    finally:
        await pve.close()


def run(
    *,
    config_path: Path | None,
    vm_overrides: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    out: TextIO | None = None,
) -> int:
    if out is None:
        out = sys.stdout
    try:
        settings = load_settings(config_path)
        if vm_overrides:
            settings = dataclasses.replace(settings, vm=dataclasses.replace(settings.vm, **vm_overrides))
        result = asyncio.run(create_vm(settings, transport=transport))
    except PveCreateError as exc:
        LOG.error("%s", exc)
        return 1
    print(result.body, file=out)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a virtual machine through the Proxmox VE API")
    parser.add_argument("--config", default=os.getenv("PVE_VMCREATE_CONFIG"))
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    parser.add_argument("--vmid")
    parser.add_argument("--name")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    overrides = {key: value for key, value in (("vmid", args.vmid), ("name", args.name)) if value}
    return run(config_path=Path(args.config) if args.config else None, vm_overrides=overrides)


if __name__ == "__main__":
    raise SystemExit(main())
