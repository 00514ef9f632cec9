from django.urls import path

from .views import BatchListView, ReservationListView, StockAdjustView, StockItemListView

urlpatterns = [
    path("stock/", StockItemListView.as_view(), name="stock-list"),
    path("stock/adjust/", StockAdjustView.as_view(), name="stock-adjust"),
    path("batches/", BatchListView.as_view(), name="batch-list"),
    path("reservations/", ReservationListView.as_view(), name="reservation-list"),
]

# EOF
