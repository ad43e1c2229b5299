"""Cart URL routes (v1)."""

from django.urls import path

from .views import CartAddLineView, CartClearView, CartDetailView, CartLineView

app_name = "cart"

urlpatterns = [
    path("", CartDetailView.as_view(), name="cart-detail"),
    path("items/", CartAddLineView.as_view(), name="cart-add-line"),
    path("items/<int:line_id>/", CartLineView.as_view(), name="cart-line"),
    path("clear/", CartClearView.as_view(), name="cart-clear"),
]
