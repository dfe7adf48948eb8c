import socket
import socketserver
import threading
from ipaddress import IPv4Address
from typing import Callable, Optional

import pytest

from printer_scanner.models import ScanConfiguration

LOCALHOST = IPv4Address("127.0.0.1")


class _Handler(socketserver.BaseRequestHandler):
    def handle(self):
        server = self.server
        self.request.settimeout(server.idle_s)
        try:
            data = self.request.recv(1024)
        except socket.timeout:
            # client is just listening: talk first if we have a banner
            if server.banner:
                self.request.sendall(server.banner)
            return
        except OSError:
            return

        if not data:
            return  # connect-only probe
        reply = server.responder(data) if server.responder else None
        if reply:
            self.request.sendall(reply)


class FakePrinter(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(
        self,
        responder: Optional[Callable[[bytes], Optional[bytes]]] = None,
        banner: Optional[bytes] = None,
        idle_s: float = 0.1,
    ):
        super().__init__(("127.0.0.1", 0), _Handler)
        self.responder = responder
        self.banner = banner
        self.idle_s = idle_s

    @property
    def port(self) -> int:
        return self.server_address[1]


@pytest.fixture
def fake_printer():
    servers = []

    def start(**kwargs) -> FakePrinter:
        srv = FakePrinter(**kwargs)
        threading.Thread(target=srv.serve_forever, daemon=True).start()
        servers.append(srv)
        return srv

    yield start

    for srv in servers:
        srv.shutdown()
        srv.server_close()


@pytest.fixture
def closed_port() -> int:
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture
def closed_udp_port() -> int:
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture
def fast_config(closed_udp_port):
    def make(port: int, **kwargs) -> ScanConfiguration:
        opts = dict(
            network="127.0.0.1/32",
            timeout_ms=300,
            concurrency=4,
            port=port,
            snmp_port=closed_udp_port,
            snmp_timeout_ms=200,
        )
        opts.update(kwargs)
        return ScanConfiguration(**opts)

    return make
