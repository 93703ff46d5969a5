# app/core/enums.py
# Canonical status/kind values. Stored as plain strings in the DB,
# validated through these enums at the API boundary.

import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    SELLER = "seller"
    TECHNICIAN = "technician"


class UserStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    INVITED = "invited"


class ProductStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PricingMode(str, enum.Enum):
    MANUAL = "manual"
    CALCULATED = "calculated"


class PriceChangeType(str, enum.Enum):
    COST = "cost"
    PRICE = "price"
    BOTH = "both"


class CommissionBase(str, enum.Enum):
    GROSS = "gross"
    PROFIT = "profit"
    MAINTENANCE = "maintenance"
    REVISION = "revision"
    SPRAYING = "spraying"


class CommissionScope(str, enum.Enum):
    GENERAL = "general"
    CATEGORY = "category"
    PRODUCT = "product"


class PayStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    CANCELED = "canceled"


class SaleStatus(str, enum.Enum):
    CLOSED = "closed"
    CANCELED = "canceled"


class ServiceType(str, enum.Enum):
    MAINTENANCE = "maintenance"
    REVISION = "revision"
    SPRAYING = "spraying"


class ServiceStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RelationshipStatus(str, enum.Enum):
    PROSPECT = "prospect"
    NEGOTIATION = "negotiation"
    CUSTOMER = "customer"
    LOST = "lost"


class OpportunityStage(str, enum.Enum):
    LEAD = "lead"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    CLOSING = "closing"
    WON = "won"
    LOST = "lost"


class VisitStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DemoStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    DONE = "done"
    CANCELED = "canceled"


class DemoType(str, enum.Enum):
    SEEDING = "seeding"
    HERBICIDE = "herbicide"
    INSECTICIDE = "insecticide"
    FUNGICIDE = "fungicide"


class CostType(str, enum.Enum):
    FIXED = "fixed"
    VARIABLE = "variable"


class GoalLevel(str, enum.Enum):
    TEAM = "team"
    SELLER = "seller"


class NotificationKind(str, enum.Enum):
    VISIT_LATE_30 = "visit_late_30"
    VISIT_LATE_60 = "visit_late_60"
    GOAL_RISK = "goal_risk"
    LOW_STOCK = "low_stock"
    DEMO_ASSIGNED = "demo_assigned"
    DEMO_REMINDER = "demo_reminder"
    SALE_PENDING = "sale_pending"
    OPPORTUNITY_PENDING = "opportunity_pending"
    COMMISSION_PAYMENT = "commission_payment"
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ALERT = "alert"


def plain_values(data: dict) -> dict:
    """Replace enum members in a payload dict by their string values before they reach the ORM."""
    return {k: (v.value if isinstance(v, enum.Enum) else v) for k, v in data.items()}
