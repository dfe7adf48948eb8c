"""
SNMP v2c sysDescr lookup.

Packets are built and dissected with scapy's SNMP layer but sent over an
ordinary UDP socket, so no raw-socket privileges are needed.
"""
from __future__ import annotations

import logging
import random
import socket
from concurrent.futures import Executor
from concurrent.futures import TimeoutError as FutureTimeout
from ipaddress import IPv4Address
from typing import Optional

from scapy.asn1.asn1 import ASN1_OID, ASN1_STRING
from scapy.layers.snmp import SNMP, SNMPget, SNMPresponse, SNMPvarbind

from .models import ProbeOutcome, ScanConfiguration

logger = logging.getLogger(__name__)

# the worker pool gets a little longer than the socket itself
_RESULT_GRACE_S = 0.5


def _val(field):
    return getattr(field, "val", field)


def build_get_request(community: str, oid: str, request_id: int) -> bytes:
    pkt = SNMP(
        version=1,  # v2c
        community=community,
        PDU=SNMPget(id=request_id, varbindlist=[SNMPvarbind(oid=ASN1_OID(oid))]),
    )
    return bytes(pkt)


def parse_sys_descr(data: bytes, request_id: Optional[int] = None) -> Optional[str]:
    """
    Pull the octet-string value out of a GetResponse.
    Returns None for anything that isn't a clean, matching answer.
    """
    if not data:
        return None
    try:
        resp = SNMP(data)
    except Exception as e:  # scapy raises several BER decoding errors
        logger.debug("undecodable SNMP reply: %s", e)
        return None

    pdu = resp.PDU
    if not isinstance(pdu, SNMPresponse):
        return None
    if request_id is not None and _val(pdu.id) != request_id:
        return None
    if _val(pdu.error) != 0 or not pdu.varbindlist:
        return None

    value = pdu.varbindlist[0].value
    if not isinstance(value, ASN1_STRING):
        return None

    raw = value.val
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else str(raw)
    text = text.strip()
    return text or None


def query_sys_descr(
    address: IPv4Address,
    port: int,
    community: str,
    oid: str,
    timeout_s: float,
) -> Optional[str]:
    """Blocking request/response exchange. Run it on a worker thread."""
    request_id = random.randint(1, 2**31 - 1)
    request = build_get_request(community, oid, request_id)

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.settimeout(timeout_s)
            sock.connect((str(address), port))
            sock.send(request)
            data = sock.recv(65535)
    except OSError as e:
        logger.debug("%s:%d SNMP failed: %s", address, port, e)
        return None

    return parse_sys_descr(data, request_id)


class SnmpProbe:
    """
    SNMP fingerprint. The exchange is synchronous, so it is handed to
    ``executor`` (when given) and awaited from there.
    """

    name = "snmp"
    source = "SNMP"

    def __init__(self, executor: Optional[Executor] = None):
        self.executor = executor

    def probe(self, address: IPv4Address, config: ScanConfiguration) -> ProbeOutcome:
        args = (
            address,
            config.snmp_port,
            config.snmp_community,
            config.snmp_oid,
            config.snmp_timeout_s,
        )
        if self.executor is None:
            return query_sys_descr(*args)

        fut = self.executor.submit(query_sys_descr, *args)
        try:
            return fut.result(timeout=config.snmp_timeout_s + _RESULT_GRACE_S)
        except FutureTimeout:
            logger.debug("%s SNMP worker did not answer in time", address)
            return None
