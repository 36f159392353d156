from __future__ import annotations

import argparse
import asyncio
import json
import os
from pathlib import Path
import sys
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from csrportal.core.config import get_settings
from csrportal.persistence.db import SessionLocal


def _latest_revision() -> str | None:
    # Resolve repository head revision directly from migration files for deterministic checks.
    versions = sorted(Path("csrportal/persistence/alembic/versions").glob("*.py"))
    if not versions:
        return None
    latest = versions[-1]
    for line in latest.read_text(encoding="utf-8").splitlines():
        if line.startswith("revision ="):
            return line.split("=", 1)[1].strip().strip('"')
    return None


async def _db_revision() -> str | None:
    # Query alembic_version to ensure the runtime schema matches repository head.
    async with SessionLocal() as session:
        return (
            await session.execute(text("SELECT version_num FROM alembic_version LIMIT 1"))
        ).scalar_one_or_none()


def _required_env_names() -> list[str]:
    # Keep env requirements explicit and avoid printing secret values.
    return ["DATABASE_URL"]


def _check_routes() -> bool:
    # Confirm the CSR routes are mounted before rollout.
    from csrportal.apps.api.main import create_app

    paths = {getattr(route, "path", "") for route in create_app().routes}
    required = {
        "/v1/health",
        "/v1/members",
        "/v1/subscriptions",
        "/v1/support/tickets",
        "/v1/dashboard/metrics",
    }
    return required.issubset(paths)


async def run_preflight(*, output_json: str | None) -> int:
    settings = get_settings()
    results: list[dict[str, Any]] = []

    try:
        db_rev = await _db_revision()
        db_error = None
    except SQLAlchemyError as exc:
        db_rev = None
        db_error = type(exc).__name__
    head_rev = _latest_revision()
    results.append(
        {
            "check": "alembic_current_matches_head",
            "status": "pass" if db_rev == head_rev else "fail",
            "detail": {"db_revision": db_rev, "head_revision": head_rev, "error": db_error},
        }
    )

    missing_env = [name for name in _required_env_names() if not os.environ.get(name)]
    results.append(
        {
            "check": "required_env_present",
            "status": "pass" if not missing_env else "fail",
            "detail": {"missing": missing_env},
        }
    )

    timeouts_ok = 0 < settings.store_call_timeout_ms <= settings.store_call_max_timeout_ms
    results.append(
        {
            "check": "store_timeouts_consistent",
            "status": "pass" if timeouts_ok else "fail",
            "detail": {
                "store_call_timeout_ms": settings.store_call_timeout_ms,
                "store_call_max_timeout_ms": settings.store_call_max_timeout_ms,
            },
        }
    )

    results.append(
        {"check": "api_routes_present", "status": "pass" if _check_routes() else "fail", "detail": {}}
    )

    failed = [row for row in results if row["status"] == "fail"]
    summary = {
        "status": "pass" if not failed else "fail",
        "checks": results,
    }
    if output_json:
        output_path = Path(output_json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json.dumps(summary, indent=2, sort_keys=True), encoding="utf-8")
    print(json.dumps(summary, indent=2, sort_keys=True))
    return 0 if not failed else 1


def main() -> int:
    parser = argparse.ArgumentParser(description="Run deploy preflight checks.")
    parser.add_argument("--output-json", default=None)
    args = parser.parse_args()
    return asyncio.run(run_preflight(output_json=args.output_json))


if __name__ == "__main__":
    sys.exit(main())
