"""
Category and categorization rule models for SpendSight data.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class Category(BaseModel):
    """
    Represents an expense category.

    Categories form a tree through ``parent_id``. Archived categories are kept
    but hidden from hierarchy views.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    # Required fields
    id: str
    name: str

    # Optional fields
    description: Optional[str] = None
    parent_id: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_archived: bool = False

    created_at: datetime
    updated_at: datetime


class CategoryPatch(BaseModel):
    """Partial update for a category."""

    model_config = {"extra": "forbid"}

    name: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    is_archived: Optional[bool] = None

    def changes(self) -> Dict[str, object]:
        return self.model_dump(exclude_unset=True)


class CategoryHierarchy(Category):
    """A category together with its non-archived descendants."""

    subcategories: List["CategoryHierarchy"] = Field(default_factory=list)


class RuleMatchType(str, Enum):
    """What part of a transaction a rule looks at."""

    MERCHANT = "merchant"
    AMOUNT = "amount"
    DATE = "date"
    KEYWORD = "keyword"


class RuleOperator(str, Enum):
    """How a rule compares its match value."""

    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"


class CategoryRule(BaseModel):
    """
    Auto-categorization rule bound to one category.

    Lower ``priority`` values are evaluated first.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    id: str
    category_id: str
    match_type: RuleMatchType
    match_value: str
    operator: Optional[RuleOperator] = None
    priority: int = 0
    is_active: bool = True
    created_at: datetime


class CategoryRulePatch(BaseModel):
    """Partial update for a rule."""

    model_config = {"extra": "forbid"}

    category_id: Optional[str] = None
    match_type: Optional[RuleMatchType] = None
    match_value: Optional[str] = None
    operator: Optional[RuleOperator] = None
    priority: Optional[int] = None
    is_active: Optional[bool] = None

    def changes(self) -> Dict[str, object]:
        return self.model_dump(exclude_unset=True)


class CategoryStats(BaseModel):
    """Spending summary for one category."""

    id: Optional[str] = None
    name: str
    total_spend: float
    transaction_count: int
    percentage_of_total: float


class DefaultCategory(BaseModel):
    """Seed entry for the default taxonomy."""

    model_config = {"frozen": True}

    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    subcategories: List[str] = Field(default_factory=list)


DEFAULT_CATEGORIES: List[DefaultCategory] = [
    DefaultCategory(
        name="Travel",
        subcategories=["Flights", "Hotels", "Car Rental", "Parking", "Public Transit", "Other"],
    ),
    DefaultCategory(
        name="Meals & Entertainment",
        subcategories=["Restaurants", "Coffee", "Delivery", "Entertainment", "Other"],
    ),
    DefaultCategory(
        name="Office Supplies",
        subcategories=["Stationery", "Electronics", "Furniture", "Other"],
    ),
    DefaultCategory(
        name="Software & Subscriptions",
        subcategories=["SaaS", "Cloud Services", "Licenses", "Other"],
    ),
    DefaultCategory(
        name="Professional Services",
        subcategories=["Consulting", "Legal", "Accounting", "Design", "Other"],
    ),
    DefaultCategory(
        name="Equipment & Tools",
        subcategories=["Hardware", "Software Tools", "Maintenance", "Other"],
    ),
    DefaultCategory(
        name="Marketing & Advertising",
        subcategories=["Digital Ads", "Print", "Events", "Other"],
    ),
    DefaultCategory(
        name="Utilities & Communications",
        subcategories=["Internet", "Phone", "Electricity", "Other"],
    ),
    DefaultCategory(
        name="Personnel Expenses",
        subcategories=["Salary", "Payroll Taxes", "Benefits", "Training", "Other"],
    ),
    DefaultCategory(
        name="Miscellaneous",
        subcategories=["Reimbursable", "Other"],
    ),
]
