from __future__ import annotations

import ssl

import httpx

from pve_vmcreate.core.models import PinnedCertificate


def build_ssl_context(cert: PinnedCertificate) -> ssl.SSLContext:
    # cadata given: no system roots are loaded
    ctx = ssl.create_default_context(cadata=cert.der)
    ctx.minimum_version = ssl.TLSVersion.TLSv1_2
    ctx.check_hostname = True
    ctx.verify_mode = ssl.CERT_REQUIRED
    return ctx


def build_client(cert: PinnedCertificate) -> httpx.AsyncClient:
    return httpx.AsyncClient(verify=build_ssl_context(cert))
