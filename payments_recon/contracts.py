"""
Versioned envelopes for payments-recon JSON output.

Every machine payload (the ingest summary, the dashboard bundle) opens with
the same header so consumers can pin on ``contract.name`` and
``schema_version``. Bump a version whenever a key is renamed or removed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from payments_recon import __version__ as TOOL_VERSION

TOOL_NAME = "payments-recon"

INGEST_CONTRACT = "payments_recon.ingest"
SUMMARY_CONTRACT = "payments_recon.summary"

CONTRACT_VERSIONS = {
    INGEST_CONTRACT: "1.0.0",
    SUMMARY_CONTRACT: "1.0.0",
}


def utc_now_iso() -> str:
    stamp = datetime.now(timezone.utc).replace(microsecond=0)
    return stamp.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_contract(name: str) -> dict[str, str]:
    if name not in CONTRACT_VERSIONS:
        raise KeyError(f"Unknown contract: {name!r}")
    return {"name": name, "version": CONTRACT_VERSIONS[name]}


def contract_header(name: str) -> dict[str, Any]:
    contract = build_contract(name)
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "tool_version": TOOL_VERSION,
    }


def build_run_summary(
    *,
    command: str,
    input_path: Path,
    tool: str = TOOL_NAME,
    status: str = "ok",
    output_path: Optional[Path] = None,
    metrics: Optional[dict[str, Any]] = None,
    warnings: Optional[list[str]] = None,
) -> dict[str, Any]:
    """Run record attached to CLI output: what ran, on what, and what it counted."""
    warning_list = list(warnings or [])
    return {
        "tool": tool,
        "tool_version": TOOL_VERSION,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_file": str(input_path),
        "output_file": str(output_path) if output_path else None,
        "warnings_count": len(warning_list),
        "warnings": warning_list,
        "metrics": dict(metrics or {}),
    }
