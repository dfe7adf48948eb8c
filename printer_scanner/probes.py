from __future__ import annotations

import logging
import re
import socket
from concurrent.futures import Executor
from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import Callable, List, Optional

from .models import ProbeOutcome, ScanConfiguration
from .snmp import SnmpProbe

logger = logging.getLogger(__name__)

PJL_INFO_ID = b"\x1b%-12345X@PJL INFO ID\r\n\x1b%-12345X"
SGD_PRODUCT_NAME = b'! U1 getvar "device.product_name"\r\n'
ZPL_HOST_ID = b"~HI"

_NON_PRINTABLE = re.compile(r"[^\x20-\x7e]")


def _try_recv(sock: socket.socket, n: int = 1024, timeout: float = 1.0) -> bytes:
    sock.settimeout(timeout)
    try:
        return sock.recv(n)
    except OSError:
        return b""


def exchange(
    address: IPv4Address,
    port: int,
    payload: bytes,
    connect_timeout: float,
    read_timeout: float,
) -> bytes:
    """
    Open a fresh connection, send payload (if any) and read once.
    Returns b"" on any socket failure.
    """
    try:
        with socket.create_connection((str(address), port), timeout=connect_timeout) as sock:
            if payload:
                sock.sendall(payload)
            return _try_recv(sock, n=1024, timeout=read_timeout)
    except OSError as e:
        logger.debug("%s:%d exchange failed: %s", address, port, e)
        return b""


def extract_sgd(text: str) -> Optional[str]:
    """
    Zebra SGD answers getvar with a single quoted line, e.g. "GX430t".
    """
    raw = text.strip()
    if not raw or len(raw) <= 2:
        return None
    # garbage / binary replies are not an SGD value
    if _NON_PRINTABLE.search(raw):
        return None
    clean = raw.replace('"', "")
    return f"Zebra {clean}"


def extract_pjl(text: str) -> Optional[str]:
    if "ID" not in text:
        return None

    clean = text.replace("ID=", "").replace("ID =", "").replace('"', "").strip()
    # only \n ends a line; form feeds etc. stay part of the model text
    for line in clean.split("\n"):
        if line.strip():
            return line.rstrip("\r")
    return "Unknown PJL"


def extract_zpl(text: str) -> Optional[str]:
    """
    ~HI reply looks like "ZD420-300dpi,V84.20.18Z,12,8176KB".
    The longest comma field is usually the model.
    """
    if "," not in text:
        return None

    # max() keeps the first of equally long fields
    longest = max(text.split(","), key=len).strip()
    if len(longest) <= 3:
        return None
    return f"Zebra ZPL ({longest})"


def extract_raw_banner(text: str) -> Optional[str]:
    raw = text.replace("\r", " ").replace("\n", " ").strip()
    if len(raw) <= 3:
        return None
    if not any(c.isalpha() for c in raw):
        return None
    return f"Raw: {raw}"


@dataclass(frozen=True)
class TcpProbe:
    """
    One printer-port protocol: what to send, how long to wait for the answer,
    and how to pull a model name out of it.
    """

    name: str
    source: str
    payload: bytes
    read_timeout_s: float
    extract: Callable[[str], Optional[str]]

    def probe(self, address: IPv4Address, config: ScanConfiguration) -> ProbeOutcome:
        read_timeout = min(self.read_timeout_s, config.timeout_s)
        data = exchange(address, config.port, self.payload, config.timeout_s, read_timeout)
        if not data:
            logger.debug("%s %s: no response", address, self.name)
            return None

        model = self.extract(data.decode("utf-8", errors="replace"))
        if model is None:
            logger.debug("%s %s: response rejected (%r)", address, self.name, data[:64])
        return model


SGD_PROBE = TcpProbe("sgd", "SGD (Zebra)", SGD_PRODUCT_NAME, 1.5, extract_sgd)
PJL_PROBE = TcpProbe("pjl", "PJL", PJL_INFO_ID, 1.0, extract_pjl)
ZPL_PROBE = TcpProbe("zpl", "ZPL", ZPL_HOST_ID, 1.0, extract_zpl)
RAW_BANNER_PROBE = TcpProbe("raw", "Raw Banner", b"", 0.5, extract_raw_banner)


def default_probes(snmp_executor: Optional[Executor] = None) -> List:
    """
    Priority order matters: specific protocols first, the passive banner
    grab last since it matches almost anything that talks.
    """
    return [
        SGD_PROBE,
        PJL_PROBE,
        ZPL_PROBE,
        SnmpProbe(snmp_executor),
        RAW_BANNER_PROBE,
    ]
