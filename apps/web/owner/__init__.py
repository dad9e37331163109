"""Owner screens - registration, restaurant provisioning, orders, products and profile."""

from apps.web.owner.auth import (
    ReferenceData,
    RegistrationResult,
    RegistrationStatus,
    load_reference_data,
    login,
    register,
)
from apps.web.owner.catalog import ProductCatalog, new_food_item_id
from apps.web.owner.dashboard import DashboardView, OwnerDashboard
from apps.web.owner.orders import OrderQueue, assemble_order_queue
from apps.web.owner.profile import update_profile
from apps.web.owner.provisioning import ProvisioningState, RestaurantProvisioner

__all__ = [
    "DashboardView",
    "OrderQueue",
    "OwnerDashboard",
    "ProductCatalog",
    "ProvisioningState",
    "ReferenceData",
    "RegistrationResult",
    "RegistrationStatus",
    "RestaurantProvisioner",
    "assemble_order_queue",
    "load_reference_data",
    "login",
    "new_food_item_id",
    "register",
    "update_profile",
]
