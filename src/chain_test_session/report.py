"""Session report rendered from the records of one scope."""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from chain_test_session.models import ReportingConfig
from chain_test_session.store.base import SessionStore

logger = logging.getLogger(__name__)

FORMATS = {"markdown": "md", "yaml": "yaml", "json": "json"}


class Report:
    """Read-only consumer of the store; writes one report file per call."""

    def __init__(
        self,
        config: ReportingConfig,
        store: SessionStore,
        scope: str,
        base_folder: str | os.PathLike[str] = ".",
    ) -> None:
        self.config = config
        self.store = store
        self.scope = scope
        self.output_folder = Path(base_folder) / config.output_folder

    async def prepare(self) -> None:
        self.output_folder.mkdir(parents=True, exist_ok=True)

    async def collect(self) -> dict[str, Any]:
        breadcrumbs = await self.store.list_breadcrumbs(self.scope)
        interactions = await self.store.list_interactions(self.scope)
        snapshots = await self.store.list_account_snapshots(self.scope)
        events = await self.store.list_events(self.scope)
        return {
            "scope": self.scope,
            "breadcrumbs": [b.model_dump(mode="json") for b in breadcrumbs],
            "interactions": [i.model_dump(mode="json") for i in interactions],
            "account_snapshots": [s.model_dump(mode="json") for s in snapshots],
            "events": [e.model_dump(mode="json") for e in events],
        }

    async def generate(self, tag: str | None = None) -> Path:
        data = await self.collect()
        if tag:
            data["tag"] = tag

        name = _safe_name(f"{self.scope}-{tag}" if tag else self.scope)
        path = self.output_folder / f"{name}.{FORMATS[self.config.format]}"

        if self.config.format == "yaml":
            text = yaml.safe_dump(data, sort_keys=False)
        elif self.config.format == "json":
            text = json.dumps(data, indent=4)
        else:
            text = render_markdown(data)

        path.write_text(text, encoding="utf-8")
        logger.info("Report of [%s] written to %s", self.scope, path)
        return path


def _safe_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", name)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        value = json.dumps(value)
    return value.replace("|", "\\|").replace("\n", " ")


def _table(headers: list[str], rows: list[list[Any]]) -> list[str]:
    if not rows:
        return ["_none_", ""]
    lines = ["| " + " | ".join(headers) + " |", "|" + "---|" * len(headers)]
    lines += ["| " + " | ".join(_cell(v) for v in row) + " |" for row in rows]
    lines.append("")
    return lines


def render_markdown(data: dict[str, Any]) -> str:
    title = f"# Session report: {data['scope']}"
    if data.get("tag"):
        title += f" ({data['tag']})"
    lines = [title, ""]

    lines += ["## Breadcrumbs", ""]
    lines += _table(
        ["name", "type", "payload"],
        [[b["name"], b["type"], b["payload"]] for b in data["breadcrumbs"]],
    )

    lines += ["## Interactions", ""]
    lines += _table(
        ["id", "action", "user", "contract", "transaction", "round", "return code"],
        [
            [
                i["id"],
                i["action"],
                i["user_address"],
                i["contract_address"],
                i["transaction_hash"],
                i["round"],
                i["output"].get("returnCode") if isinstance(i["output"], dict) else i["output"],
            ]
            for i in data["interactions"]
        ],
    )

    lines += ["## Account snapshots", ""]
    lines += _table(
        ["id", "address", "nonce", "balance", "tokens", "nfts", "before", "after"],
        [
            [
                s["id"],
                s["address"],
                s["nonce"],
                s["balance"],
                ", ".join(f"{t['identifier']}={t['balance']}" for t in s["fungible_tokens"]),
                ", ".join(f"{t['identifier']}#{t['nonce']}" for t in s["non_fungible_tokens"]),
                s["taken_before_interaction"],
                s["taken_after_interaction"],
            ]
            for s in data["account_snapshots"]
        ],
    )

    lines += ["## Events", ""]
    lines += _table(
        ["id", "kind", "summary", "interaction"],
        [[e["id"], e["kind"], e["summary"], e["interaction"]] for e in data["events"]],
    )
    return "\n".join(lines)
