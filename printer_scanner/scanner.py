from __future__ import annotations

import logging
import socket
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from functools import partial
from ipaddress import IPv4Address
from typing import Callable, Iterable, Iterator, List, Optional, Sequence

from .logger import log_event
from .models import PrinterRecord, ScanConfiguration
from .probes import default_probes

logger = logging.getLogger(__name__)

Worker = Callable[[IPv4Address, ScanConfiguration], Optional[PrinterRecord]]


def is_port_open(address: IPv4Address, port: int, timeout_s: float) -> bool:
    # connect-only check; the socket is dropped straight away
    try:
        with socket.create_connection((str(address), port), timeout=timeout_s):
            return True
    except OSError:
        return False


def scan_target(
    address: IPv4Address,
    config: ScanConfiguration,
    probes: Sequence,
    is_open: Callable[[IPv4Address, int, float], bool] = is_port_open,
) -> Optional[PrinterRecord]:
    """
    Run the probe chain against one host. The printer port must accept a
    connection first; after that the first probe to name a model wins.
    """
    if not is_open(address, config.port, config.timeout_s):
        return None

    for probe in probes:
        model = probe.probe(address, config)
        if model is not None:
            return PrinterRecord(address=address, model=model, source=probe.source)

    logger.debug("%s: port %d open but silent", address, config.port)
    return None


def _run_worker(worker: Worker, address: IPv4Address, config: ScanConfiguration) -> Optional[PrinterRecord]:
    try:
        return worker(address, config)
    except Exception:
        logger.exception("%s: unexpected error while probing", address)
        return None


def iter_scan(
    targets: Iterable[IPv4Address],
    config: ScanConfiguration,
    worker: Optional[Worker] = None,
    probes: Optional[Sequence] = None,
) -> Iterator[Optional[PrinterRecord]]:
    """
    Bounded-futures scanner: never more than config.concurrency hosts in
    flight. Outcomes come back in completion order.
    """
    jobs = iter(targets)
    snmp_pool: Optional[ThreadPoolExecutor] = None

    if worker is None:
        if probes is None:
            snmp_pool = ThreadPoolExecutor(
                max_workers=config.concurrency, thread_name_prefix="snmp"
            )
            probes = default_probes(snmp_pool)
        worker = partial(scan_target, probes=probes)

    try:
        with ThreadPoolExecutor(
            max_workers=config.concurrency, thread_name_prefix="host"
        ) as pool:
            pending = set()

            def submit_next() -> bool:
                try:
                    address = next(jobs)
                except StopIteration:
                    return False
                pending.add(pool.submit(_run_worker, worker, address, config))
                return True

            # Prime the queue
            while len(pending) < config.concurrency and submit_next():
                pass

            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for fut in done:
                    yield fut.result()

                # Refill queue
                while len(pending) < config.concurrency and submit_next():
                    pass
    finally:
        if snmp_pool is not None:
            snmp_pool.shutdown(wait=True)


def collect_printers(outcomes: Iterable[Optional[PrinterRecord]]) -> List[PrinterRecord]:
    return sorted((r for r in outcomes if r is not None), key=lambda r: r.address)


def scan(
    targets: Iterable[IPv4Address],
    config: ScanConfiguration,
    worker: Optional[Worker] = None,
    probes: Optional[Sequence] = None,
    total: Optional[int] = None,
    progress_every: int = 0,
) -> List[PrinterRecord]:
    found: List[PrinterRecord] = []
    scanned = 0
    start_all = time.perf_counter()

    log_event(logger, "scan_started", {
        "network": config.network,
        "port": config.port,
        "timeout_ms": config.timeout_ms,
        "concurrency": config.concurrency,
    })

    for r in iter_scan(targets, config, worker=worker, probes=probes):
        scanned += 1
        if r is not None:
            found.append(r)
            log_event(logger, "printer_found", {
                "ip": str(r.address),
                "model": r.model,
                "source": r.source,
            })

        if progress_every > 0 and (scanned % progress_every == 0 or scanned == total):
            elapsed = time.perf_counter() - start_all
            rate = scanned / elapsed if elapsed > 0 else 0.0
            of_total = f"/{total}" if total else ""
            print(
                f"\r[*] Scanned {scanned}{of_total} | found={len(found)} | {rate:.1f} hosts/s",
                end="",
                flush=True,
            )

    if progress_every > 0:
        print()  # newline after progress

    log_event(logger, "scan_finished", {
        "scanned": scanned,
        "found": len(found),
        "elapsed_s": round(time.perf_counter() - start_all, 3),
    })
    return collect_printers(found)
