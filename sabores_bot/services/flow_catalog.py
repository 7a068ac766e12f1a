from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

import yaml

from sabores_bot.logging_config import get_logger
from sabores_bot.services.state_machine import ConversationState

_KNOWLEDGE_DIR = Path(__file__).resolve().parents[1] / "knowledge"
_FLOWS_PATH = _KNOWLEDGE_DIR / "flows.yaml"

logger = get_logger("flow_catalog")


class FlowCatalogError(Exception):
    """The flows knowledge file is missing or malformed."""


@dataclass(frozen=True)
class Flow:
    name: str
    state: ConversationState
    reply: str
    triggers: tuple[str, ...]


@dataclass(frozen=True)
class FlowCatalog:
    flows: tuple[Flow, ...]
    not_understood: str
    quote_received: str
    handoff_forwarded: str
    temporary_error: str

    def get(self, name: str) -> Flow:
        for flow in self.flows:
            if flow.name == name:
                return flow
        raise KeyError(name)


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        raise FlowCatalogError(f"Flows file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise FlowCatalogError(f"Flows file must contain a mapping: {path}")
    return data


def _parse_flow(raw: dict) -> Flow:
    try:
        name = str(raw["name"])
        state = ConversationState(str(raw["state"]))
        reply = str(raw["reply"])
        triggers = raw["triggers"]
    except (KeyError, ValueError) as exc:
        raise FlowCatalogError(f"Invalid flow entry {raw!r}: {exc}") from exc
    if not isinstance(triggers, list) or not triggers:
        raise FlowCatalogError(f"Flow '{name}' has no triggers")
    # Triggers are matched against lower-cased input.
    normalized = tuple(str(t).strip().lower() for t in triggers if str(t).strip())
    return Flow(name=name, state=state, reply=reply, triggers=normalized)


def parse_catalog(data: dict) -> FlowCatalog:
    raw_flows = data.get("flows")
    replies = data.get("replies")
    if not isinstance(raw_flows, list) or not isinstance(replies, dict):
        raise FlowCatalogError("Flows file needs 'flows' (list) and 'replies' (mapping)")

    flows = tuple(_parse_flow(item) for item in raw_flows if isinstance(item, dict))
    try:
        return FlowCatalog(
            flows=flows,
            not_understood=str(replies["not_understood"]),
            quote_received=str(replies["quote_received"]),
            handoff_forwarded=str(replies["handoff_forwarded"]),
            temporary_error=str(replies["temporary_error"]),
        )
    except KeyError as exc:
        raise FlowCatalogError(f"Missing reply text: {exc}") from exc


@lru_cache(maxsize=4)
def load_flow_catalog(path: Path = _FLOWS_PATH) -> FlowCatalog:
    catalog = parse_catalog(_load_yaml(path))
    logger.info(
        "Flow catalog loaded",
        extra={"context": {"path": str(path), "flows": [flow.name for flow in catalog.flows]}},
    )
    return catalog
