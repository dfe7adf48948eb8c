from __future__ import annotations

import argparse

from .logger import create_logger, verbosity_to_level
from .models import PRINTER_PORT, ScanConfiguration
from .output import print_results, save_results
from .scanner import scan
from .targets import InvalidNetworkError, count_targets, expand_targets


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Find network printers and identify their model")
    p.add_argument("-n", "--network", default="192.168.199.0/24", help="Subnet in CIDR notation (default: 192.168.199.0/24)")
    p.add_argument("-t", "--timeout-ms", type=int, default=2000, help="Per-connection timeout in ms (default: 2000)")
    p.add_argument("-c", "--concurrency", type=int, default=50, help="Hosts probed at once (default: 50)")
    p.add_argument("--port", type=int, default=PRINTER_PORT, help=f"Printer control port (default: {PRINTER_PORT})")
    p.add_argument("--community", default="public", help="SNMP community (default: public)")
    p.add_argument("--format", choices=["txt", "csv", "json"], help="Save results to file")
    p.add_argument("--out-dir", default="PrinterScans", help="Output directory for saved files")
    p.add_argument("--progress-every", type=int, default=0, help="Progress update interval in hosts (default: off)")
    p.add_argument("-v", "--verbose", action="count", default=0, help="-v for events, -vv for per-probe debug")
    p.add_argument("--log-file", help="Also write log lines to this file")
    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    create_logger(verbosity_to_level(args.verbose), args.log_file)

    config = ScanConfiguration(
        network=args.network,
        timeout_ms=args.timeout_ms,
        concurrency=args.concurrency,
        port=args.port,
        snmp_community=args.community,
    )
    try:
        config.validate()
    except ValueError as e:
        parser.error(str(e))

    try:
        targets = expand_targets(config.network)
        total = count_targets(config.network)
    except InvalidNetworkError as e:
        raise SystemExit(f"Network error: {e}")

    print(f"[*] Scanning {config.network} ({total} hosts) on port {config.port}")
    results = scan(
        targets,
        config,
        total=total,
        progress_every=args.progress_every,
    )

    print_results(results)

    if args.format:
        path = save_results(results, fmt=args.format, out_dir=args.out_dir)
        print(f"Saved results to {path}")

    return 0
