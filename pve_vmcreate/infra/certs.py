from __future__ import annotations

import base64
import binascii
import logging
import re
import ssl
from pathlib import Path
from typing import Any

from pve_vmcreate.core.errors import CertificateReadError, FormatError
from pve_vmcreate.core.models import PinnedCertificate

LOG = logging.getLogger("pve-vmcreate")

PEM_CERT_RE = re.compile(
    r"-----BEGIN CERTIFICATE-----\s*(?P<body>[A-Za-z0-9+/=\s]*?)\s*-----END CERTIFICATE-----",
)


def _format_name(name: Any) -> str:
    parts = []
    for rdn in name or ():
        for key, value in rdn:
            parts.append(f"{key}={value}")
    return ", ".join(parts)


def decode_pem(text: str, *, source: str = "<memory>") -> bytes:
    blocks = PEM_CERT_RE.findall(text)
    if not blocks:
        raise FormatError(f"Failed to parse PEM block containing the certificate: {source}")
    if len(blocks) > 1:
        LOG.debug("%s holds %d certificate blocks, using the first", source, len(blocks))
    try:
        return base64.b64decode("".join(blocks[0].split()), validate=True)
    except binascii.Error as exc:
        raise FormatError(f"invalid base64 in PEM block of {source}: {exc}") from exc


def parse_der(der: bytes, *, source: str = "<memory>") -> PinnedCertificate:
    """
    Parse DER bytes as an X.509 certificate using OpenSSL through the ssl module.

    Only well-formedness is checked here; expiry and chain are left to the handshake.
    """
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    try:
        ctx.load_verify_locations(cadata=der)
    except (ssl.SSLError, ValueError) as exc:
        raise FormatError(f"failed to parse certificate {source}: {exc}") from exc

    # get_ca_certs() skips certificates without CA capability, a pinned leaf has no parsed fields
    info: dict[str, Any] = {}
    for item in ctx.get_ca_certs():
        info = item
        break
    return PinnedCertificate(
        der=der,
        subject=_format_name(info.get("subject")),
        issuer=_format_name(info.get("issuer")),
        serial_number=str(info.get("serialNumber", "")),
        not_before=str(info.get("notBefore", "")),
        not_after=str(info.get("notAfter", "")),
    )


def load_certificate(path: str | Path) -> PinnedCertificate:
    cert_path = Path(path)
    try:
        text = cert_path.read_text(encoding="ascii", errors="replace")
    except OSError as exc:
        raise CertificateReadError(f"failed to read certificate file {cert_path}: {exc}") from exc

    cert = parse_der(decode_pem(text, source=str(cert_path)), source=str(cert_path))
    if cert.subject:
        LOG.info("Loaded pinned certificate subject=%r not_after=%s", cert.subject, cert.not_after)
    else:
        LOG.info("Loaded pinned certificate from %s (%d bytes DER, not a CA certificate, fields not parsed)", cert_path, len(cert.der))
    return cert
