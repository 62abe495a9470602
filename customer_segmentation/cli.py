"""Command line entry points for the customer segmentation toolkit."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

from customer_segmentation.foundation.purchases import PaymentStatus, PurchaseRecord
from customer_segmentation.segmentation import (
    DEFAULT_K,
    SegmentationAlgorithm,
    SegmentationError,
    run_segmentation,
)

logger = logging.getLogger(__name__)


MAX_INPUT_BYTES = 25 * 1024 * 1024  # 25 MiB cap to avoid accidental OOM


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _load_purchases(path: Path) -> list[PurchaseRecord]:
    """Read a JSON list of purchases.

    Each entry needs ``customer_id``, ``transaction_date`` (ISO 8601) and
    ``total_amount``; ``payment_status`` defaults to completed and
    ``categories`` to empty. Naive timestamps are read as UTC.
    """
    resolved = path.resolve()
    size = resolved.stat().st_size
    if size > MAX_INPUT_BYTES:
        raise ValueError(
            f"Input file {resolved} is {size} bytes; exceeds limit of {MAX_INPUT_BYTES} bytes"
        )
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, list):
        raise ValueError("Expected a list of purchases in the input file")

    purchases: list[PurchaseRecord] = []
    for idx, item in enumerate(payload):
        missing = [
            key
            for key in ("customer_id", "transaction_date", "total_amount")
            if key not in item
        ]
        if missing:
            raise ValueError(
                "Purchase missing required fields",
                {"missing_fields": missing, "record_index": idx},
            )
        purchases.append(
            PurchaseRecord(
                customer_id=str(item["customer_id"]),
                transaction_date=_parse_timestamp(item["transaction_date"]),
                total_amount=Decimal(str(item["total_amount"])),
                payment_status=PaymentStatus(
                    item.get("payment_status", PaymentStatus.COMPLETED.value)
                ),
                categories=tuple(item.get("categories") or ()),
            )
        )
    return purchases


def segment_cli(argv: list[str] | None = None) -> int:
    """Segment customers from a JSON purchase export and print the result."""

    parser = argparse.ArgumentParser(description=segment_cli.__doc__)
    parser.add_argument("input", type=Path, help="Path to JSON file with purchases")
    parser.add_argument(
        "--algorithm",
        default=SegmentationAlgorithm.RFM.value,
        help="Segmentation algorithm: rfm or kmeans (default: rfm)",
    )
    parser.add_argument(
        "--k",
        type=int,
        default=DEFAULT_K,
        help=f"Number of clusters for kmeans (default: {DEFAULT_K})",
    )
    parser.add_argument(
        "--as-of",
        type=_parse_timestamp,
        help="Reference time for recency (ISO 8601). Defaults to now.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Optional path for writing the result as JSON.",
    )

    args = parser.parse_args(argv)

    purchases = _load_purchases(args.input)
    logger.info("Loaded %d purchases from %s", len(purchases), args.input)

    try:
        result = run_segmentation(
            args.algorithm, None, purchases, k=args.k, now=args.as_of
        )
    except SegmentationError as exc:
        logger.error("Segmentation failed: %s", exc)
        return 1

    payload: dict[str, Any] = result.as_dict()
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with args.output.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, sort_keys=True)
    else:  # stdout fallback enables piping in shell usage.
        json.dump(payload, fp=sys.stdout, indent=2, sort_keys=True)
        print()

    return 0


def main() -> None:
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    raise SystemExit(segment_cli())


if __name__ == "__main__":  # pragma: no cover
    main()
