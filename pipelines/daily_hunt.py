"""Run the scheduled signal hunt for a batch of organizations and write a JSON report."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from signal_hunter.models.profile import BusinessProfile, SalesTrigger
from signal_hunter.models.signal import MarketSignal
from signal_hunter.observability.metrics import metrics
from signal_hunter.services.hunting.hunter import SignalHunter, get_signal_hunter

logger = logging.getLogger("pipelines.daily_hunt")

DEFAULT_INPUT = Path("orgs.json")
DEFAULT_OUTPUT = Path("output") / "signals.json"

STATUS_COMPLETED = "completed"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


class DailyHuntError(RuntimeError):
    """Domain exception for the batch hunt pipeline."""

    def __init__(self, message: str, code: str = "DAILY_HUNT_ERROR") -> None:
        super().__init__(message)
        self.code = code


class OrganizationHunt(BaseModel):
    """One organization entry from the batch input file."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    profile: BusinessProfile
    triggers: list[SalesTrigger] = Field(default_factory=list)
    region: str | None = None


@dataclass
class OrganizationResult:
    org: str
    status: str
    triggers: int = 0
    signals: list[MarketSignal] = field(default_factory=list)
    error: str | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "org": self.org,
            "status": self.status,
            "triggers": self.triggers,
            "signalCount": len(self.signals),
            "signals": [signal.model_dump(mode="json", by_alias=True) for signal in self.signals],
            "error": self.error,
            "code": self.code,
        }


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    """Parse CLI arguments for the batch hunt."""
    parser = argparse.ArgumentParser(description="Hunt grounded sales signals for every organization in a batch.")
    parser.add_argument(
        "--input",
        type=Path,
        default=DEFAULT_INPUT,
        help="JSON array of {profile, triggers, region} entries (default: %(default)s).",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT,
        help="Where to write the JSON report (default: %(default)s).",
    )
    parser.add_argument(
        "--region",
        default=None,
        help="Override the hunt region for every organization.",
    )
    return parser.parse_args(argv)


def load_organizations(path: Path) -> list[OrganizationHunt]:
    """Read and validate the batch input file."""
    if not path.exists():
        raise DailyHuntError(f"Input file not found: {path}", code="E_INPUT_MISSING")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DailyHuntError(f"Input file is not valid JSON: {exc}", code="E_INPUT_INVALID") from exc
    if not isinstance(payload, list):
        raise DailyHuntError("Input file must contain a JSON array of organizations.", code="E_INPUT_INVALID")
    try:
        return [OrganizationHunt.model_validate(entry) for entry in payload]
    except ValidationError as exc:
        raise DailyHuntError(f"Invalid organization entry: {exc}", code="E_INPUT_INVALID") from exc


async def hunt_organizations(
    organizations: Sequence[OrganizationHunt],
    *,
    hunter: SignalHunter | None = None,
    region: str | None = None,
) -> list[OrganizationResult]:
    """Hunt each organization in turn; one organization's failure never stops the batch."""
    engine = hunter or get_signal_hunter()
    results: list[OrganizationResult] = []
    for entry in organizations:
        name = entry.profile.name
        approved = [trigger for trigger in entry.triggers if trigger.is_approved]
        if not approved:
            logger.info("daily_hunt.org_skipped", extra={"org": name, "reason": "no_approved_triggers"})
            results.append(OrganizationResult(org=name, status=STATUS_SKIPPED))
            continue
        try:
            signals = await engine.hunt(entry.profile, approved, region or entry.region)
        except Exception as exc:
            logger.error(
                "daily_hunt.org_failed",
                extra={"org": name, "error": str(exc)[:200], "code": getattr(exc, "code", None)},
            )
            metrics.increment("daily_hunt.org_failed")
            results.append(
                OrganizationResult(
                    org=name,
                    status=STATUS_FAILED,
                    triggers=len(approved),
                    error=str(exc),
                    code=getattr(exc, "code", None),
                )
            )
            continue
        logger.info("daily_hunt.org_completed", extra={"org": name, "signals": len(signals)})
        results.append(
            OrganizationResult(org=name, status=STATUS_COMPLETED, triggers=len(approved), signals=signals)
        )
    return results


def build_report(results: Sequence[OrganizationResult], *, generated_at: datetime | None = None) -> dict[str, Any]:
    timestamp = (generated_at or datetime.now(timezone.utc)).replace(microsecond=0)
    return {
        "generatedAt": timestamp.isoformat().replace("+00:00", "Z"),
        "processed": sum(1 for result in results if result.status != STATUS_SKIPPED),
        "failed": sum(1 for result in results if result.status == STATUS_FAILED),
        "signals": sum(len(result.signals) for result in results),
        "results": [result.to_dict() for result in results],
    }


def run_pipeline(
    input_path: Path,
    output_path: Path,
    *,
    region: str | None = None,
    hunter: SignalHunter | None = None,
) -> dict[str, Any]:
    """Load organizations, hunt each one, and persist the report."""
    start = time.perf_counter()
    organizations = load_organizations(input_path)
    logger.info("daily_hunt.start", extra={"organizations": len(organizations), "input": str(input_path)})
    results = asyncio.run(hunt_organizations(organizations, hunter=hunter, region=region))
    report = build_report(results)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
    metrics.timing("daily_hunt.duration_ms", (time.perf_counter() - start) * 1000)
    logger.info(
        "daily_hunt.complete",
        extra={
            "processed": report["processed"],
            "failed": report["failed"],
            "signals": report["signals"],
            "output": str(output_path),
        },
    )
    return report


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv or sys.argv[1:])
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        run_pipeline(args.input, args.output, region=args.region)
    except DailyHuntError as exc:
        logger.error("Daily hunt failed: %s (code=%s)", exc, exc.code)
        return 1
    except Exception as exc:  # pragma: no cover - safeguard
        logger.exception("Unexpected daily hunt failure: %s", exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
