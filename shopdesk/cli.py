"""Ligne de commande : suivi des devis enregistrés."""

from __future__ import annotations

import argparse
import sys

from shopdesk.config import configure_logging
from shopdesk.services.estimate_service import EstimateService


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Stored estimates: list, summary and expiry")
    parser.add_argument("--data-dir", help="Data directory (default: $SHOPDESK_DATA_DIR or ./data)")
    parser.add_argument("--log-level", help="Logging level (default: $SHOPDESK_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)
    ls = sub.add_parser("list", help="List stored estimates")
    ls.add_argument("--status", help="Only estimates with this status")
    sub.add_parser("stats", help="Counts per status and values")
    sub.add_parser("expire", help="Mark overdue draft/sent estimates as expired")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)
    service = EstimateService(args.data_dir)

    if args.command == "list":
        for doc in service.list_estimates(status=args.status):
            print(f"{doc.number}\t{doc.status}\t{doc.customer.name}\t{doc.expiry_date}\t{doc.total}")
    elif args.command == "stats":
        for key, value in service.stats().items():
            print(f"{key}: {value}")
    else:
        expired = service.expire_overdue()
        print(f"{len(expired)} estimate(s) expired")
    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation
    sys.exit(main())
