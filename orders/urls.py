"""URL routes for the orders app (v1)."""

from django.urls import path

from .views import CheckoutView, ConfirmPaymentView, CurrentInvoiceView, CurrentOrderView

app_name = "orders"

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path("orders/current/", CurrentOrderView.as_view(), name="order-current"),
    path("orders/current/invoice/", CurrentInvoiceView.as_view(), name="order-current-invoice"),
    path("orders/<int:order_id>/confirm-payment/", ConfirmPaymentView.as_view(), name="order-confirm-payment"),
]
