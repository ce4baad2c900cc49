from __future__ import annotations


class PveCreateError(RuntimeError):
    pass


class ConfigError(PveCreateError):
    pass


class CertificateReadError(PveCreateError, OSError):
    pass


class FormatError(PveCreateError):
    pass


class NetworkError(PveCreateError):
    pass


class ProtocolError(PveCreateError):
    def __init__(self, status_code: int, url: str = ""):
        super().__init__(f"Proxmox API returned error status code: {status_code}")
        self.status_code = status_code
        self.url = url


class DecodeError(PveCreateError):
    pass
