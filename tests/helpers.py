from __future__ import annotations

import shutil
import ssl
import subprocess
import sys
from pathlib import Path

OPENSSL = shutil.which("openssl")

_OPENSSL_CONF = """\
[req]
distinguished_name = dn
x509_extensions = v3
prompt = no

[dn]
CN = {cn}

[v3]
basicConstraints = critical,CA:{ca}
keyUsage = critical,{key_usage}
subjectKeyIdentifier = hash
authorityKeyIdentifier = keyid:always
subjectAltName = DNS:{cn}
"""


def bootstrap_tests() -> None:
    base_dir = Path(__file__).resolve().parents[1]
    if str(base_dir) not in sys.path:
        sys.path.insert(0, str(base_dir))


def make_self_signed(directory: Path, cn: str, *, ca: bool = True) -> tuple[Path, Path]:
    if OPENSSL is None:
        raise RuntimeError("openssl binary not available")
    directory.mkdir(parents=True, exist_ok=True)
    conf = directory / f"{cn}.cnf"
    crt = directory / f"{cn}.pem"
    key = directory / f"{cn}.key"
    key_usage = "digitalSignature,keyEncipherment,keyCertSign" if ca else "digitalSignature,keyEncipherment"
    conf.write_text(
        _OPENSSL_CONF.format(cn=cn, ca="TRUE" if ca else "FALSE", key_usage=key_usage),
        encoding="utf-8",
    )
    subprocess.run(
        [
            OPENSSL,
            "req",
            "-x509",
            "-nodes",
            "-days",
            "2",
            "-newkey",
            "rsa:2048",
            "-config",
            str(conf),
            "-keyout",
            str(key),
            "-out",
            str(crt),
        ],
        check=True,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
    )
    return crt, key


def pem_to_der(path: Path) -> bytes:
    return ssl.PEM_cert_to_DER_cert(path.read_text(encoding="ascii"))


def make_proxmox_config(**overrides):
    from pve_vmcreate.core.models import ProxmoxConfig

    values = dict(
        url="https://pve.example.invalid",
        port="8006",
        ca_path="/nonexistent/pve.pem",
        token="automation@pam!vm-automation=tokensecret",
        server_name="pve.example.invalid",
        node="pve",
    )
    values.update(overrides)
    return ProxmoxConfig(**values)


def write_config(directory: Path, *, ca_path: Path | str, url: str = "https://pve.example.invalid", extra: str = "") -> Path:
    path = directory / "config.yaml"
    path.write_text(
        "proxmox:\n"
        f"  url: {url}\n"
        "  port: \"8006\"\n"
        f"  capath: {ca_path}\n"
        "  token: automation@pam!vm-automation=tokensecret\n" + extra,
        encoding="utf-8",
    )
    return path
