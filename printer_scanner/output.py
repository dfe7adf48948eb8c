from __future__ import annotations

import csv
import json
import os
from datetime import datetime
from typing import List

from .models import PrinterRecord

NO_DEVICES = "No devices found."
SUGGESTION = (
    "Suggestion: check whether the printers are on a different subnet, "
    "or whether a firewall is blocking non-standard protocols."
)


def format_record(r: PrinterRecord) -> str:
    return f"Found: {r.address} | Model: {r.model} ({r.source})"


def print_results(records: List[PrinterRecord]) -> None:
    print()
    print("--- Scan results ---")
    if not records:
        print(NO_DEVICES)
        print(SUGGESTION)
        return

    for r in records:
        print(format_record(r))


def save_results(
    records: List[PrinterRecord],
    fmt: str,
    out_dir: str = "PrinterScans",
) -> str:
    if fmt not in ("txt", "csv", "json"):
        raise ValueError(f"Unsupported format: {fmt}")

    os.makedirs(out_dir, exist_ok=True)
    ts = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    path = os.path.join(out_dir, f"{ts}_printer_scan.{fmt}")

    if fmt == "txt":
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"Found {len(records)} printers\n")
            for r in records:
                f.write(format_record(r) + "\n")

    elif fmt == "csv":
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["ip", "model", "source"])
            for r in records:
                w.writerow([str(r.address), r.model, r.source])

    else:
        payload = [
            {"ip": str(r.address), "model": r.model, "source": r.source}
            for r in records
        ]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

    return path
