"""
Node type and trigger option catalogs for FlowCanvas.

The core only needs two facts per node type: its default label and whether it
is locked (unremovable). Exactly one type, START, is the flow's entry point and
carries a set of selected trigger options validated against the OptionCatalog.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

logger = logging.getLogger(__name__)


class NodeType(str, Enum):
    MESSAGE = "message"
    AI = "ai"
    ACTION = "action"
    CONDITION = "condition"
    START = "start"
    START_FLOW = "startFlow"
    RANDOMIZER = "randomizer"
    DELAY = "delay"


DEFAULT_NODE_TYPE = NodeType.MESSAGE
ENTRY_NODE_TYPE = NodeType.START

# Title given to a freshly created entry node; its type label stays "When"
ENTRY_NODE_TITLE = "When someone..."


@dataclass(frozen=True)
class TypeMeta:
    default_label: str
    locked: bool = False


_TYPE_META: Dict[NodeType, TypeMeta] = {
    NodeType.MESSAGE: TypeMeta("Message"),
    NodeType.AI: TypeMeta("AI Agent"),
    NodeType.ACTION: TypeMeta("Action"),
    NodeType.CONDITION: TypeMeta("Condition"),
    NodeType.START: TypeMeta("When", locked=True),
    NodeType.START_FLOW: TypeMeta("Start Flow"),
    NodeType.RANDOMIZER: TypeMeta("Randomizer"),
    NodeType.DELAY: TypeMeta("Delay"),
}


def coerce_node_type(value: Any) -> NodeType:
    """Map a stored type tag onto NodeType, falling back to the default type."""
    if isinstance(value, NodeType):
        return value
    try:
        return NodeType(value)
    except ValueError:
        return DEFAULT_NODE_TYPE


def type_meta(node_type: Any) -> TypeMeta:
    """Metadata for any type tag. Unknown tags resolve to the default type's metadata."""
    return _TYPE_META.get(coerce_node_type(node_type), _TYPE_META[DEFAULT_NODE_TYPE])


def is_entry_type(node_type: Any) -> bool:
    return coerce_node_type(node_type) is ENTRY_NODE_TYPE


def toolbar_types() -> List[NodeType]:
    """Types offered by the spawn toolbar (locked types are never spawned by hand)."""
    return [t for t in NodeType if not type_meta(t).locked]


@dataclass(frozen=True)
class TriggerOption:
    id: str
    label: str
    description: str = ""


DEFAULT_TRIGGERS = [
    TriggerOption("post-comment", "Post or Reel Comments", "Someone comments on your Post/Reel"),
    TriggerOption("story-reply", "Story Reply", "Someone replies to your Story"),
    TriggerOption("message", "Instagram Message", "Someone sends you a DM"),
    TriggerOption("share-story", "Instagram Message", "Someone shares your Post/Reel as a Story"),
    TriggerOption("ads-click", "Instagram Ads", "Someone clicks your Instagram Ad"),
    TriggerOption("live-comment", "Live Comments", "Someone comments on your Live"),
    TriggerOption("referral", "Instagram Ref URL", "Someone clicks your referral link"),
]


class OptionCatalog:
    """
    Ordered catalog of trigger options selectable on the entry node.

    The catalog is the authority on which option ids are valid: anything
    stored on a node that is not listed here is dropped on load.
    """

    def __init__(self, options: Iterable[TriggerOption]):
        self._options: List[TriggerOption] = []
        self._by_id: Dict[str, TriggerOption] = {}
        for option in options:
            if option.id in self._by_id:
                logger.warning(f"Duplicate trigger option id ignored: {option.id}")
                continue
            self._options.append(option)
            self._by_id[option.id] = option

    @classmethod
    def default(cls) -> "OptionCatalog":
        return cls(DEFAULT_TRIGGERS)

    @classmethod
    def from_yaml(cls, path: Path) -> "OptionCatalog":
        """
        Load a catalog from a YAML file shaped like:

            triggers:
              - id: post-comment
                label: Post or Reel Comments
                description: Someone comments on your Post/Reel

        A missing or malformed file yields the default catalog.
        """
        path = Path(path)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load trigger catalog {path}: {e}")
            return cls.default()

        entries = data.get("triggers") if isinstance(data, dict) else None
        if not isinstance(entries, list):
            logger.warning(f"Trigger catalog {path} has no 'triggers' list, using defaults")
            return cls.default()

        options = []
        for entry in entries:
            if not isinstance(entry, dict) or not entry.get("id"):
                logger.warning(f"Skipping malformed trigger entry in {path}: {entry!r}")
                continue
            option_id = str(entry["id"])
            options.append(TriggerOption(
                id=option_id,
                label=str(entry.get("label") or option_id),
                description=str(entry.get("description") or ""),
            ))
        return cls(options)

    def __iter__(self):
        return iter(self._options)

    def __len__(self) -> int:
        return len(self._options)

    def __contains__(self, option_id: object) -> bool:
        return isinstance(option_id, str) and option_id in self._by_id

    def ids(self) -> List[str]:
        return [o.id for o in self._options]

    def get(self, option_id: str) -> Optional[TriggerOption]:
        return self._by_id.get(option_id)

    def filter_valid(self, option_ids: Iterable[Any]) -> List[str]:
        """Deduplicate and drop ids unknown to the catalog, keeping first-seen order."""
        seen = []
        for option_id in option_ids or []:
            if isinstance(option_id, str) and option_id in self._by_id and option_id not in seen:
                seen.append(option_id)
        return seen
