import re
from functools import lru_cache
from typing import Iterable, Optional

from sabores_bot.services.flow_catalog import Flow


def normalize_message(text: Optional[str]) -> str:
    return (text or "").strip().lower()


@lru_cache(maxsize=256)
def _keyword_pattern(keyword: str) -> re.Pattern:
    # A keyword must not be glued to other letters/digits: "ola" is not in
    # "chocolate" and "1" is not in "1kg".
    return re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)")


def contains_keyword(normalized: str, keyword: str) -> bool:
    if not keyword:
        return False
    if normalized == keyword:
        return True
    return _keyword_pattern(keyword).search(normalized) is not None


def match_flow(normalized: str, flows: Iterable[Flow]) -> Optional[Flow]:
    """Return the first flow (in catalog order) with a trigger in the message."""
    for flow in flows:
        if any(contains_keyword(normalized, trigger) for trigger in flow.triggers):
            return flow
    return None
