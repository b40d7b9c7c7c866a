"""
Context Budget Tracker

Tracks token usage across three progressive-disclosure tiers:

- Discovery: skill metadata, fixed small cost per skill
- Activation: skill instructions, cost estimated from content, capped per skill
- Execution: supporting files, cost estimated from content, capped per file

Invariants after every public call:

- ``total_tokens == sum(item.token_cost for every loaded item)``
- ``total_tokens <= ceiling``
- every Activation / Execution item has a Discovery entry for its skill

Eviction policy when an item does not fit:

1. Execution files, oldest loaded first
2. Activation items, least recently activated first (never the owner of
   the item being admitted)
3. Discovery items are never evicted

Eviction is all-or-nothing: when evicting every candidate would still not
make room, ``BudgetExceeded`` is raised and nothing is evicted.
"""

import itertools
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

from pydantic import BaseModel, Field

from skill_router.budget.content import FileContentProvider, LocalFileContentProvider
from skill_router.budget.token_estimator import ApproximateTokenEstimator, TokenEstimator
from skill_router.errors import BudgetExceeded, NotFoundError

logger = logging.getLogger(__name__)


DISCOVERY_COST = 50
ACTIVATION_CAP = 1000
EXECUTION_CAP = 2000
CONTEXT_CEILING = 8000

HIGH_UTILIZATION_PERCENT = 80.0
MAX_ACTIVE_SKILLS_HINT = 3
MAX_EXECUTION_FILES_HINT = 5


class BudgetTier(str, Enum):
    """Progressive disclosure tiers, cheapest first."""
    DISCOVERY = "discovery"
    ACTIVATION = "activation"
    EXECUTION = "execution"


@dataclass
class BudgetedItem:
    """A loaded item and the tokens it holds."""

    item_id: str  # skill id, or file path for the execution tier
    tier: BudgetTier
    token_cost: int
    loaded_at: datetime
    sequence: int  # monotonic load order, used for eviction
    owner_id: Optional[str] = None  # skill owning an execution file
    content: Any = None


# ===== Results =====

class LoadResult(BaseModel):
    """Result of a discovery or execution-tier load."""

    item_id: str
    tier: BudgetTier
    tokens_used: int = 0
    total_tokens: int
    already_loaded: bool = False
    evicted_skills: List[str] = Field(default_factory=list)
    evicted_files: List[str] = Field(default_factory=list)


class ActivationResult(BaseModel):
    """Result of ``activate``."""

    item_id: str
    tokens_used: int = 0
    total_tokens: int
    already_active: bool = False
    evicted_skills: List[str] = Field(default_factory=list)
    evicted_files: List[str] = Field(default_factory=list)


class DeactivationResult(BaseModel):
    """Result of ``deactivate``; deactivation never fails."""

    item_id: str
    tokens_freed: int = 0
    total_tokens: int
    already_inactive: bool = False


class UnloadResult(BaseModel):
    """Result of ``unload_execution_files``."""

    unloaded: List[str] = Field(default_factory=list)
    tokens_freed: int = 0
    total_tokens: int

    @property
    def files_unloaded(self) -> int:
        return len(self.unloaded)


class BudgetStatus(BaseModel):
    """Read-only snapshot of the budget."""

    total_tokens: int
    ceiling: int
    available_tokens: int
    utilization_percent: float
    tokens_by_tier: Dict[str, int]
    active_skills: List[str] = Field(description="Active skills, least recently activated first")
    inactive_skills: List[str] = Field(description="Discovered but not active skills")
    execution_files: List[str] = Field(description="Loaded execution files, oldest first")


class BudgetRecommendation(BaseModel):
    type: str  # "warning" | "suggestion"
    message: str
    action: str


# ===== Tracker =====

class ContextBudgetTracker:
    """Token budget over the discovery, activation and execution tiers.

    Owned by a single router instance; not thread-safe.
    """

    def __init__(
        self,
        ceiling: int = CONTEXT_CEILING,
        discovery_cost: int = DISCOVERY_COST,
        activation_cap: int = ACTIVATION_CAP,
        execution_cap: int = EXECUTION_CAP,
        estimator: Optional[TokenEstimator] = None,
        content_provider: Optional[FileContentProvider] = None,
    ):
        """
        Args:
            ceiling: Maximum total tokens held at once
            discovery_cost: Fixed cost of one discovery entry
            activation_cap: Maximum cost of one activated skill
            execution_cap: Maximum cost of one execution file
            estimator: Token estimator (default: 4 chars per token)
            content_provider: Reader for execution files (default: local filesystem)
        """
        if ceiling <= 0:
            raise ValueError("ceiling must be positive")
        self.ceiling = ceiling
        self.discovery_cost = discovery_cost
        self.activation_cap = activation_cap
        self.execution_cap = execution_cap
        self.estimator = estimator or ApproximateTokenEstimator()
        self.content_provider = content_provider or LocalFileContentProvider()

        self._items: Dict[BudgetTier, Dict[str, BudgetedItem]] = {tier: {} for tier in BudgetTier}
        self._sequence = itertools.count(1)

    # ===== Queries =====

    @property
    def total_tokens(self) -> int:
        return sum(self.tier_tokens(tier) for tier in BudgetTier)

    def tier_tokens(self, tier: BudgetTier) -> int:
        return sum(item.token_cost for item in self._items[tier].values())

    def is_known(self, item_id: str) -> bool:
        return item_id in self._items[BudgetTier.DISCOVERY]

    def is_active(self, item_id: str) -> bool:
        return item_id in self._items[BudgetTier.ACTIVATION]

    def is_loaded(self, path: str) -> bool:
        return path in self._items[BudgetTier.EXECUTION]

    def get_item(self, tier: BudgetTier, item_id: str) -> Optional[BudgetedItem]:
        return self._items[tier].get(item_id)

    def items(self, tier: BudgetTier) -> List[BudgetedItem]:
        """Items of one tier in load order."""
        return sorted(self._items[tier].values(), key=lambda item: item.sequence)

    def execution_files(self, owner_id: Optional[str] = None) -> List[str]:
        return [
            item.item_id
            for item in self.items(BudgetTier.EXECUTION)
            if owner_id is None or item.owner_id == owner_id
        ]

    def estimate(self, content: Optional[str], cap: int) -> int:
        """Token cost of ``content`` in ``[1, cap]``.

        Without content the planned per-item cost (``cap``) is charged.
        """
        if content is None:
            return cap
        return max(1, min(self.estimator.count_tokens(content), cap))

    # ===== Discovery =====

    def load_discovery(self, item_id: str, payload: Any = None) -> LoadResult:
        """Register a skill's discovery metadata.

        Raises:
            BudgetExceeded: Only when evicting every activation and execution
                item could not make room
        """
        if self.is_known(item_id):
            return LoadResult(
                item_id=item_id,
                tier=BudgetTier.DISCOVERY,
                total_tokens=self.total_tokens,
                already_loaded=True,
            )

        cost = self.discovery_cost
        evicted_skills, evicted_files = self._admit(item_id, cost, protect=set())
        self._add(BudgetTier.DISCOVERY, item_id, cost, content=payload)

        logger.debug(f"Discovered {item_id} ({cost} tokens, total {self.total_tokens})")
        return LoadResult(
            item_id=item_id,
            tier=BudgetTier.DISCOVERY,
            tokens_used=cost,
            total_tokens=self.total_tokens,
            evicted_skills=evicted_skills,
            evicted_files=evicted_files,
        )

    # ===== Activation =====

    def activate(self, item_id: str, content: Optional[str] = None) -> ActivationResult:
        """Load a discovered skill's instructions into the activation tier.

        Raises:
            NotFoundError: ``item_id`` has no discovery entry
            BudgetExceeded: Eviction cannot free enough space
        """
        if not self.is_known(item_id):
            raise NotFoundError(
                f"Skill '{item_id}' must be discovered before activation",
                resource_type="skill",
                resource_id=item_id,
            )

        if self.is_active(item_id):
            return ActivationResult(
                item_id=item_id,
                total_tokens=self.total_tokens,
                already_active=True,
            )

        cost = self.estimate(content, self.activation_cap)
        evicted_skills, evicted_files = self._admit(item_id, cost, protect={item_id})
        self._add(BudgetTier.ACTIVATION, item_id, cost, content=content)

        logger.info(f"Activated {item_id} ({cost} tokens, total {self.total_tokens}/{self.ceiling})")
        return ActivationResult(
            item_id=item_id,
            tokens_used=cost,
            total_tokens=self.total_tokens,
            evicted_skills=evicted_skills,
            evicted_files=evicted_files,
        )

    def deactivate(self, item_id: str) -> DeactivationResult:
        """Return an active skill to discovery-only state. Idempotent."""
        item = self._items[BudgetTier.ACTIVATION].pop(item_id, None)
        if item is None:
            return DeactivationResult(
                item_id=item_id,
                total_tokens=self.total_tokens,
                already_inactive=True,
            )

        logger.info(f"Deactivated {item_id} (freed {item.token_cost} tokens)")
        return DeactivationResult(
            item_id=item_id,
            tokens_freed=item.token_cost,
            total_tokens=self.total_tokens,
        )

    # ===== Execution =====

    def load_execution_file(self, path: str, owner_id: str) -> LoadResult:
        """Load a supporting file owned by a discovered skill.

        Already-loaded paths are served from the cache at no cost.

        Raises:
            NotFoundError: Unknown owner, or the file does not exist
            BudgetExceeded: Eviction cannot free enough space
        """
        if not self.is_known(owner_id):
            raise NotFoundError(
                f"Owner '{owner_id}' of {path} has not been discovered",
                resource_type="skill",
                resource_id=owner_id,
            )

        if self.is_loaded(path):
            return LoadResult(
                item_id=path,
                tier=BudgetTier.EXECUTION,
                total_tokens=self.total_tokens,
                already_loaded=True,
            )

        content = self.content_provider.read(path)
        cost = self.estimate(content, self.execution_cap)
        evicted_skills, evicted_files = self._admit(path, cost, protect={owner_id})
        self._add(BudgetTier.EXECUTION, path, cost, owner_id=owner_id, content=content)

        logger.info(f"Loaded {path} for {owner_id} ({cost} tokens, total {self.total_tokens}/{self.ceiling})")
        return LoadResult(
            item_id=path,
            tier=BudgetTier.EXECUTION,
            tokens_used=cost,
            total_tokens=self.total_tokens,
            evicted_skills=evicted_skills,
            evicted_files=evicted_files,
        )

    def unload_execution_files(self, paths: Union[str, Iterable[str]]) -> UnloadResult:
        """Unload execution files; paths that are not loaded are ignored."""
        if isinstance(paths, str):
            paths = [paths]

        unloaded: List[str] = []
        freed = 0
        for path in paths:
            item = self._items[BudgetTier.EXECUTION].pop(path, None)
            if item is not None:
                unloaded.append(path)
                freed += item.token_cost

        if unloaded:
            logger.info(f"Unloaded {len(unloaded)} execution files (freed {freed} tokens)")
        return UnloadResult(unloaded=unloaded, tokens_freed=freed, total_tokens=self.total_tokens)

    # ===== Status =====

    def status(self) -> BudgetStatus:
        """Snapshot of the budget; no side effects."""
        total = self.total_tokens
        active = [item.item_id for item in self.items(BudgetTier.ACTIVATION)]
        inactive = sorted(
            item_id for item_id in self._items[BudgetTier.DISCOVERY]
            if item_id not in self._items[BudgetTier.ACTIVATION]
        )
        return BudgetStatus(
            total_tokens=total,
            ceiling=self.ceiling,
            available_tokens=self.ceiling - total,
            utilization_percent=round(total / self.ceiling * 100, 1),
            tokens_by_tier={tier.value: self.tier_tokens(tier) for tier in BudgetTier},
            active_skills=active,
            inactive_skills=inactive,
            execution_files=self.execution_files(),
        )

    def recommendations(self) -> List[BudgetRecommendation]:
        status = self.status()
        recommendations: List[BudgetRecommendation] = []

        if status.utilization_percent > HIGH_UTILIZATION_PERCENT:
            recommendations.append(BudgetRecommendation(
                type="warning",
                message=f"Context usage is high (>{HIGH_UTILIZATION_PERCENT:.0f}%). Consider deactivating unused skills.",
                action="deactivate-unused-skills",
            ))

        if len(status.active_skills) > MAX_ACTIVE_SKILLS_HINT:
            recommendations.append(BudgetRecommendation(
                type="suggestion",
                message="Multiple skills active. Use specific sub-skills for focused work.",
                action="use-specific-subskills",
            ))

        if len(status.execution_files) > MAX_EXECUTION_FILES_HINT:
            recommendations.append(BudgetRecommendation(
                type="suggestion",
                message="Many supporting files loaded. Consider unloading unused files.",
                action="unload-unused-files",
            ))

        return recommendations

    def reset(self) -> None:
        """Drop every loaded item, including discovery entries."""
        for tier in BudgetTier:
            self._items[tier].clear()
        self._sequence = itertools.count(1)

    # ===== Internals =====

    def _add(
        self,
        tier: BudgetTier,
        item_id: str,
        cost: int,
        owner_id: Optional[str] = None,
        content: Any = None,
    ) -> BudgetedItem:
        item = BudgetedItem(
            item_id=item_id,
            tier=tier,
            token_cost=cost,
            loaded_at=datetime.now(),
            sequence=next(self._sequence),
            owner_id=owner_id,
            content=content,
        )
        self._items[tier][item_id] = item
        return item

    def _eviction_candidates(self, protect: Set[str]) -> List[BudgetedItem]:
        """Evictable items in eviction order."""
        execution = self.items(BudgetTier.EXECUTION)
        activation = [
            item for item in self.items(BudgetTier.ACTIVATION)
            if item.item_id not in protect
        ]
        return execution + activation

    def _admit(self, item_id: str, cost: int, protect: Set[str]) -> Tuple[List[str], List[str]]:
        """Make room for ``cost`` tokens, evicting if needed.

        Returns:
            (evicted skill ids, evicted file paths)

        Raises:
            BudgetExceeded: Room cannot be made; nothing is evicted
        """
        overflow = self.total_tokens + cost - self.ceiling
        if overflow <= 0:
            return [], []

        candidates = self._eviction_candidates(protect)
        freeable = sum(item.token_cost for item in candidates)
        if freeable < overflow:
            available = self.ceiling - self.total_tokens + freeable
            logger.warning(
                f"Cannot admit {item_id}: needs {cost} tokens, at most {available} can be made available"
            )
            raise BudgetExceeded(
                f"Context ceiling of {self.ceiling} tokens exceeded loading '{item_id}'",
                item_id=item_id,
                tokens_needed=cost,
                tokens_available=available,
                ceiling=self.ceiling,
            )

        evicted_skills: List[str] = []
        evicted_files: List[str] = []
        for item in candidates:
            if overflow <= 0:
                break
            del self._items[item.tier][item.item_id]
            overflow -= item.token_cost
            if item.tier == BudgetTier.EXECUTION:
                evicted_files.append(item.item_id)
            else:
                evicted_skills.append(item.item_id)
            logger.info(f"Evicted {item.tier.value} item {item.item_id} ({item.token_cost} tokens) for {item_id}")

        return evicted_skills, evicted_files


__all__ = [
    "BudgetTier",
    "BudgetedItem",
    "BudgetStatus",
    "BudgetRecommendation",
    "LoadResult",
    "ActivationResult",
    "DeactivationResult",
    "UnloadResult",
    "ContextBudgetTracker",
    "DISCOVERY_COST",
    "ACTIVATION_CAP",
    "EXECUTION_CAP",
    "CONTEXT_CEILING",
]
