# Import models here so Alembic can discover metadata.
from app.models.user import User  # noqa: F401

# Catalog / pricing
from app.models.product import Product  # noqa: F401
from app.models.price_history import PriceHistoryEntry  # noqa: F401

# CRM
from app.models.client import Client  # noqa: F401
from app.models.opportunity import Opportunity  # noqa: F401
from app.models.visit import Visit  # noqa: F401
from app.models.service import Service  # noqa: F401
from app.models.demonstration import Demonstration  # noqa: F401

# Sales / commissions
from app.models.sale import Sale, SaleItem  # noqa: F401
from app.models.commission_rule import CommissionRule  # noqa: F401
from app.models.commission import Commission  # noqa: F401

# Goals / notifications
from app.models.goal import Goal  # noqa: F401
from app.models.notification import Notification  # noqa: F401

# Finance
from app.models.company_cost import CompanyCost  # noqa: F401
