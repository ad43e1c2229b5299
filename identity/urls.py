"""Identity URL routes (v1)."""

from django.urls import path

from .views import MergeOnLoginView, ResolveOwnerView, SignOutView

app_name = "identity"

urlpatterns = [
    path("resolve/", ResolveOwnerView.as_view(), name="identity-resolve"),
    path("merge/", MergeOnLoginView.as_view(), name="identity-merge"),
    path("sign-out/", SignOutView.as_view(), name="identity-sign-out"),
]
