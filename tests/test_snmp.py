"""
Tests for the SNMP sysDescr probe, using scapy-built packets.
"""

import socket
import threading
from concurrent.futures import ThreadPoolExecutor
from ipaddress import IPv4Address

import pytest
from scapy.asn1.asn1 import ASN1_INTEGER, ASN1_OID, ASN1_STRING
from scapy.layers.snmp import SNMP, SNMPget, SNMPresponse, SNMPvarbind

from printer_scanner.models import OID_SYS_DESCR
from printer_scanner.snmp import (
    SnmpProbe,
    build_get_request,
    parse_sys_descr,
    query_sys_descr,
)

LOCALHOST = IPv4Address("127.0.0.1")


def make_response(request_id, value, error=0):
    pkt = SNMP(
        version=1,
        community="public",
        PDU=SNMPresponse(
            id=request_id,
            error=error,
            varbindlist=[SNMPvarbind(oid=ASN1_OID(OID_SYS_DESCR), value=value)],
        ),
    )
    return bytes(pkt)


@pytest.fixture
def snmp_agent():
    """UDP responder that answers every GET with a fixed sysDescr."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(0.1)
    state = {"descr": b"HP ETHERNET MULTI-ENVIRONMENT", "requests": []}
    stop = threading.Event()

    def serve():
        while not stop.is_set():
            try:
                data, peer = sock.recvfrom(65535)
            except socket.timeout:
                continue
            except OSError:
                return
            req = SNMP(data)
            state["requests"].append(req)
            sock.sendto(make_response(req.PDU.id.val, ASN1_STRING(state["descr"])), peer)

    t = threading.Thread(target=serve, daemon=True)
    t.start()
    state["port"] = sock.getsockname()[1]
    yield state
    stop.set()
    t.join(timeout=1)
    sock.close()


class TestGetRequest:
    def test_encodes_v2c_get(self):
        pkt = SNMP(build_get_request("public", OID_SYS_DESCR, 4242))
        assert pkt.version.val == 1
        assert pkt.community.val == b"public"
        assert isinstance(pkt.PDU, SNMPget)
        assert pkt.PDU.id.val == 4242
        assert pkt.PDU.varbindlist[0].oid.val == OID_SYS_DESCR


class TestParseSysDescr:
    def test_octet_string_trimmed(self):
        data = make_response(7, ASN1_STRING(b"  Zebra ZT410 \r\n"))
        assert parse_sys_descr(data, 7) == "Zebra ZT410"

    def test_request_id_mismatch(self):
        data = make_response(7, ASN1_STRING(b"Zebra ZT410"))
        assert parse_sys_descr(data, 8) is None

    def test_error_status(self):
        data = make_response(7, ASN1_STRING(b"Zebra ZT410"), error=2)
        assert parse_sys_descr(data, 7) is None

    def test_non_string_value(self):
        data = make_response(7, ASN1_INTEGER(5))
        assert parse_sys_descr(data, 7) is None

    def test_empty_value(self):
        assert parse_sys_descr(make_response(7, ASN1_STRING(b"   ")), 7) is None

    def test_not_a_response(self):
        assert parse_sys_descr(build_get_request("public", OID_SYS_DESCR, 7), 7) is None

    def test_garbage(self):
        assert parse_sys_descr(b"\xff\x00garbage") is None
        assert parse_sys_descr(b"") is None


class TestQuery:
    def test_round_trip(self, snmp_agent):
        descr = query_sys_descr(LOCALHOST, snmp_agent["port"], "public", OID_SYS_DESCR, 1.0)
        assert descr == "HP ETHERNET MULTI-ENVIRONMENT"
        req = snmp_agent["requests"][0]
        assert req.community.val == b"public"
        assert req.PDU.varbindlist[0].oid.val == OID_SYS_DESCR

    def test_nobody_listening(self, closed_udp_port):
        assert query_sys_descr(LOCALHOST, closed_udp_port, "public", OID_SYS_DESCR, 0.2) is None


class TestSnmpProbe:
    def test_runs_on_executor(self, snmp_agent, fast_config):
        config = fast_config(9100, snmp_port=snmp_agent["port"], snmp_timeout_ms=1000)
        workers = []

        class RecordingPool(ThreadPoolExecutor):
            def submit(self, fn, *args, **kwargs):
                workers.append(fn)
                return super().submit(fn, *args, **kwargs)

        with RecordingPool(max_workers=1) as pool:
            probe = SnmpProbe(pool)
            assert probe.probe(LOCALHOST, config) == "HP ETHERNET MULTI-ENVIRONMENT"
        assert workers == [query_sys_descr]

    def test_inline_without_executor(self, snmp_agent, fast_config):
        config = fast_config(9100, snmp_port=snmp_agent["port"], snmp_timeout_ms=1000)
        assert SnmpProbe().probe(LOCALHOST, config) == "HP ETHERNET MULTI-ENVIRONMENT"

    def test_worker_deadline(self, fast_config):
        config = fast_config(9100, snmp_timeout_ms=100)
        release = threading.Event()

        with ThreadPoolExecutor(max_workers=1) as pool:
            # occupy the only worker so the query can't start in time
            pool.submit(release.wait, 5)
            try:
                assert SnmpProbe(pool).probe(LOCALHOST, config) is None
            finally:
                release.set()
