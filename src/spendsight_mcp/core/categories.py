"""
In-memory category store.

Owns categories and their auto-categorization rules, and builds the
category tree shown to users.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Set

from spendsight_mcp.core.exceptions import CategoryCycleError, CategoryNotFoundError
from spendsight_mcp.models.category import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryHierarchy,
    CategoryPatch,
    CategoryRule,
    CategoryRulePatch,
    RuleMatchType,
    RuleOperator,
)
from spendsight_mcp.models.transaction import Transaction
from spendsight_mcp.utils.ids import IdSupplier, new_id

logger = logging.getLogger(__name__)


class CategoryStore:
    """
    Owns categories and category rules.

    Deleting a category removes its rules but leaves its children in place;
    their ``parent_id`` then points nowhere (see ``orphans``).
    """

    def __init__(
        self,
        categories: Optional[Iterable[Category]] = None,
        rules: Optional[Iterable[CategoryRule]] = None,
        id_supplier: IdSupplier = new_id,
    ):
        """
        Initialize the store.

        Args:
            categories: Optional initial categories
            rules: Optional initial rules
            id_supplier: Callable producing prefixed unique ids
        """
        self._categories: List[Category] = list(categories or [])
        self._rules: List[CategoryRule] = list(rules or [])
        self._new_id = id_supplier

    def __len__(self) -> int:
        return len(self._categories)

    def all(self) -> List[Category]:
        return self._categories[:]

    # Categories

    def add(
        self,
        name: str,
        *,
        description: Optional[str] = None,
        parent_id: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
        is_archived: bool = False,
    ) -> str:
        """
        Create a category.

        Returns:
            The new category id
        """
        category_id = self._new_id("cat")
        if parent_id == category_id:
            raise CategoryCycleError(f"Category {category_id} cannot be its own parent")

        now = datetime.now()
        self._categories.append(
            Category(
                id=category_id,
                name=name,
                description=description,
                parent_id=parent_id,
                color=color,
                icon=icon,
                is_archived=is_archived,
                created_at=now,
                updated_at=now,
            )
        )
        logger.debug("Added category %s (%s)", category_id, name)
        return category_id

    def update(self, category_id: str, patch: CategoryPatch) -> Optional[Category]:
        """
        Merge the set fields of ``patch`` into a category.

        Returns:
            The replacement category, or None if the id is unknown

        Raises:
            CategoryCycleError: If the new parent would make the category
                its own ancestor
        """
        changes = patch.changes()
        for idx, category in enumerate(self._categories):
            if category.id != category_id:
                continue

            if changes.get("parent_id") is not None:
                self._check_parent(category_id, changes["parent_id"])

            changes["updated_at"] = max(datetime.now(), category.created_at)
            updated = category.model_copy(update=changes)
            self._categories[idx] = updated
            logger.debug("Updated category %s", category_id)
            return updated

        return None

    def delete(self, category_id: str) -> bool:
        """Remove a category and its rules; children are left in place."""
        remaining = [c for c in self._categories if c.id != category_id]
        if len(remaining) == len(self._categories):
            return False

        self._categories = remaining
        self._rules = [r for r in self._rules if r.category_id != category_id]
        logger.debug("Deleted category %s and its rules", category_id)
        return True

    def get(self, category_id: str) -> Optional[Category]:
        return next((c for c in self._categories if c.id == category_id), None)

    def subcategories(self, parent_id: str) -> List[Category]:
        """Direct, non-archived children of a category."""
        return [
            c
            for c in self._categories
            if c.parent_id == parent_id and not c.is_archived
        ]

    def hierarchy(self) -> List[CategoryHierarchy]:
        """
        Build the category forest.

        Roots are categories without a parent. Archived categories are left
        out at every level, together with everything below them.

        Raises:
            CategoryCycleError: If parent links form a loop or a category
                would be visited twice
        """
        self._check_acyclic()
        visited: Set[str] = set()

        def build(parent_id: Optional[str]) -> List[CategoryHierarchy]:
            nodes = []
            for category in self._categories:
                if category.parent_id != parent_id or category.is_archived:
                    continue
                if category.id in visited:
                    raise CategoryCycleError(
                        f"Category {category.id} appears twice in the hierarchy"
                    )
                visited.add(category.id)
                nodes.append(
                    CategoryHierarchy(
                        **category.model_dump(),
                        subcategories=build(category.id),
                    )
                )
            return nodes

        return build(None)

    def orphans(self) -> List[Category]:
        """Categories whose parent no longer exists."""
        known = {c.id for c in self._categories}
        return [
            c
            for c in self._categories
            if c.parent_id is not None and c.parent_id not in known
        ]

    def seed_defaults(self) -> int:
        """
        Populate the default taxonomy if the store is empty.

        Returns:
            Number of categories created (0 when categories already exist)
        """
        if self._categories:
            logger.debug("Categories present, skipping default seeding")
            return 0

        created = 0
        for default in DEFAULT_CATEGORIES:
            parent_id = self.add(default.name, icon=default.icon, color=default.color)
            created += 1
            for sub_name in default.subcategories:
                self.add(sub_name, parent_id=parent_id)
                created += 1

        logger.info("Seeded %d default categories", created)
        return created

    def _check_parent(self, category_id: str, parent_id: str) -> None:
        """Walk up from ``parent_id``; reaching ``category_id`` means a cycle."""
        seen: Set[str] = set()
        current: Optional[str] = parent_id
        while current is not None:
            if current == category_id:
                raise CategoryCycleError(
                    f"Setting parent {parent_id} on {category_id} creates a cycle"
                )
            if current in seen:
                raise CategoryCycleError(f"Existing cycle through category {current}")
            seen.add(current)
            parent = self.get(current)
            current = parent.parent_id if parent else None

    def _check_acyclic(self) -> None:
        """Follow every parent chain; one that returns to itself is a cycle."""
        parents = {c.id: c.parent_id for c in self._categories}
        for start in parents:
            seen: Set[str] = set()
            current: Optional[str] = start
            while current is not None and current in parents:
                if current in seen:
                    raise CategoryCycleError(
                        f"Parent links starting at {start} loop through {current}"
                    )
                seen.add(current)
                current = parents[current]

    # Rules

    def add_rule(
        self,
        category_id: str,
        match_type: RuleMatchType,
        match_value: str,
        *,
        operator: Optional[RuleOperator] = None,
        priority: int = 0,
        is_active: bool = True,
    ) -> str:
        """
        Create a rule bound to a category.

        Raises:
            CategoryNotFoundError: If the category does not exist
        """
        if self.get(category_id) is None:
            raise CategoryNotFoundError(f"Category not found: {category_id}")

        rule_id = self._new_id("rule")
        self._rules.append(
            CategoryRule(
                id=rule_id,
                category_id=category_id,
                match_type=match_type,
                match_value=match_value,
                operator=operator,
                priority=priority,
                is_active=is_active,
                created_at=datetime.now(),
            )
        )
        logger.debug("Added rule %s for category %s", rule_id, category_id)
        return rule_id

    def update_rule(self, rule_id: str, patch: CategoryRulePatch) -> Optional[CategoryRule]:
        for idx, rule in enumerate(self._rules):
            if rule.id == rule_id:
                updated = rule.model_copy(update=patch.changes())
                self._rules[idx] = updated
                return updated
        return None

    def delete_rule(self, rule_id: str) -> bool:
        remaining = [r for r in self._rules if r.id != rule_id]
        removed = len(remaining) != len(self._rules)
        self._rules = remaining
        return removed

    def get_rule(self, rule_id: str) -> Optional[CategoryRule]:
        return next((r for r in self._rules if r.id == rule_id), None)

    def rules_for(self, category_id: str) -> List[CategoryRule]:
        """Active rules of a category, in creation order."""
        return [
            r for r in self._rules if r.category_id == category_id and r.is_active
        ]

    def categorize(self, transaction: Transaction) -> Optional[Category]:
        """
        Find the category whose rules match a transaction.

        Active rules are tried by ascending priority (ties keep creation
        order); rules of archived or deleted categories are ignored.

        Returns:
            The category of the first matching rule, or None
        """
        candidates = sorted(
            (r for r in self._rules if r.is_active),
            key=lambda r: r.priority,
        )
        for rule in candidates:
            category = self.get(rule.category_id)
            if category is None or category.is_archived:
                continue
            if rule_matches(rule, transaction):
                logger.debug("Rule %s matched transaction %s", rule.id, transaction.id)
                return category
        return None


def _compare_text(value: str, needle: str, operator: RuleOperator) -> bool:
    value, needle = value.lower(), needle.lower()
    if operator is RuleOperator.EQUALS:
        return value == needle
    if operator is RuleOperator.CONTAINS:
        return needle in value
    if operator is RuleOperator.STARTS_WITH:
        return value.startswith(needle)
    if operator is RuleOperator.ENDS_WITH:
        return value.endswith(needle)
    if operator is RuleOperator.GREATER_THAN:
        return value > needle
    if operator is RuleOperator.LESS_THAN:
        return value < needle
    return False


def _compare_number(value: float, target: float, operator: RuleOperator) -> bool:
    if operator is RuleOperator.GREATER_THAN:
        return value > target
    if operator is RuleOperator.LESS_THAN:
        return value < target
    if operator is RuleOperator.EQUALS:
        return value == target
    # Text operators make no sense on amounts
    return False


def rule_matches(rule: CategoryRule, transaction: Transaction) -> bool:
    """Evaluate a single rule against a transaction."""
    needle = rule.match_value.strip()
    if not needle:
        return False

    if rule.match_type is RuleMatchType.MERCHANT:
        return _compare_text(
            transaction.merchant, needle, rule.operator or RuleOperator.CONTAINS
        )

    if rule.match_type is RuleMatchType.KEYWORD:
        operator = rule.operator or RuleOperator.CONTAINS
        haystacks = [transaction.merchant, transaction.notes or ""]
        return any(_compare_text(text, needle, operator) for text in haystacks)

    if rule.match_type is RuleMatchType.AMOUNT:
        try:
            target = float(needle)
        except ValueError:
            return False
        return _compare_number(
            transaction.amount, target, rule.operator or RuleOperator.EQUALS
        )

    if rule.match_type is RuleMatchType.DATE:
        # ISO dates compare correctly as strings
        return _compare_text(transaction.day, needle, rule.operator or RuleOperator.EQUALS)

    return False
