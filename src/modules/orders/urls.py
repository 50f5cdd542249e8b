"""Order URL configuration.

Routes (trailing slash required):
- ``POST /orders/``
- ``GET  /orders/{id}/`` and ``GET /orders/{id}/items/``
- ``GET  /orders/user/{user_id}/``
- ``PUT  /orders/{id}/status/``
"""

from __future__ import annotations

from rest_framework.routers import SimpleRouter

from modules.orders.views import OrderViewSet

router = SimpleRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = router.urls
