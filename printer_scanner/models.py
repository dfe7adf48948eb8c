from __future__ import annotations

from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import Optional

PRINTER_PORT = 9100
SNMP_PORT = 161
OID_SYS_DESCR = "1.3.6.1.2.1.1.1.0"


@dataclass(frozen=True, order=True)
class PrinterRecord:
    address: IPv4Address
    model: str
    source: str


@dataclass(frozen=True)
class ScanConfiguration:
    network: str = "192.168.199.0/24"
    timeout_ms: int = 2000
    concurrency: int = 50
    port: int = PRINTER_PORT
    snmp_port: int = SNMP_PORT
    snmp_community: str = "public"
    snmp_oid: str = OID_SYS_DESCR
    snmp_timeout_ms: int = 1000

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @property
    def snmp_timeout_s(self) -> float:
        return self.snmp_timeout_ms / 1000.0

    def validate(self) -> "ScanConfiguration":
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1 (got {self.concurrency})")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout must be > 0 ms (got {self.timeout_ms})")
        if self.snmp_timeout_ms <= 0:
            raise ValueError(f"SNMP timeout must be > 0 ms (got {self.snmp_timeout_ms})")
        for name, port in (("port", self.port), ("snmp port", self.snmp_port)):
            if port < 1 or port > 65535:
                raise ValueError(f"Invalid {name}: {port}")
        return self


# A probe's answer: the model string, or None when the protocol didn't match.
ProbeOutcome = Optional[str]
