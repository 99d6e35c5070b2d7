from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .api.views import prometheus_metrics
from .fulfillment.api.views.fulfillment_views import FulfillmentViewSet, public_tracking
from .inventory.api.views.inventory_views import InventoryViewSet
from .ordering.api.views.order_views import OrderViewSet


router = DefaultRouter()
router.register(r"orders", OrderViewSet, basename="order")
# Keyed by order id: /fulfillment/<order_id>/items/
router.register(r"fulfillment", FulfillmentViewSet, basename="fulfillment")
router.register(r"inventory", InventoryViewSet, basename="inventory")

app_name = "marketplace"

urlpatterns = [
    path("", include(router.urls)),
    path("tracking/<str:token>/", public_tracking, name="public-tracking"),
    path("metrics/", prometheus_metrics.prometheus_metrics, name="marketplace-metrics"),
]
