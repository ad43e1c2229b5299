"""DRF views for owner resolution, guest cart merge and sign-out."""

import uuid

from common.api import error_response, ok, session_key_from
from common.choices import MergeOutcome
from common.exceptions import EngineError
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import IdentityReadSerializer, MergeRequestSerializer, MergeResultSerializer
from .services import merge_on_login, resolve_owner, sign_out

SESSION_PARAMETER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Browsing context key. A new one is issued by `resolve` when absent.",
    type=str,
)


class ResolveOwnerView(APIView):
    """Resolve (and if needed mint) the owner for this browsing context."""

    throttle_scope = "identity"

    @extend_schema(
        tags=["Identity Endpoints"],
        summary="Resolve cart owner",
        description=(
            "Returns the account identity when signed in, otherwise the context's anonymous token, "
            "minting one on first use. `context_key` must be sent back as `X-Session-Id`."
        ),
        parameters=[SESSION_PARAMETER],
        request=None,
        examples=[
            OpenApiExample(
                "Anonymous",
                value={
                    "success": True,
                    "data": {
                        "context_key": "4f1c2b...",
                        "owner": "anon:guest_1735689600000_a1b2c3d4e5",
                        "kind": "anonymous",
                        "value": "guest_1735689600000_a1b2c3d4e5",
                    },
                },
                response_only=True,
            )
        ],
    )
    def post(self, request):
        context_key = session_key_from(request) or uuid.uuid4().hex
        account_id = request.user.pk if request.user.is_authenticated else None
        try:
            identity = resolve_owner(context_key=context_key, account_id=account_id)
        except EngineError as exc:
            return error_response(exc)
        return ok({"context_key": context_key, **IdentityReadSerializer(identity).data})


class MergeOnLoginView(APIView):
    """Merge the context's guest cart into the signed-in account's cart."""

    permission_classes = [IsAuthenticated]
    throttle_scope = "identity"

    @extend_schema(
        tags=["Identity Endpoints"],
        summary="Merge guest cart on login",
        description=(
            "Moves the browsing context's guest cart into the account cart exactly once. "
            "A failed merge does not block sign-in: the response carries `success: false` with the "
            "account's existing cart, and the guest token is kept so the merge can be retried."
        ),
        parameters=[SESSION_PARAMETER],
        request=MergeRequestSerializer,
        responses={200: MergeResultSerializer},
        examples=[
            OpenApiExample(
                "Converted",
                value={
                    "success": True,
                    "message": "Guest cart converted to account cart",
                    "data": {"outcome": "converted", "owner": {"owner": "acct:7", "kind": "authenticated", "value": "7"}},
                },
                response_only=True,
            )
        ],
    )
    def post(self, request):
        serializer = MergeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = merge_on_login(
                context_key=session_key_from(request),
                account_id=request.user.pk,
                anonymous_token=serializer.validated_data.get("anonymous_token") or None,
            )
        except EngineError as exc:
            return error_response(exc)
        data = MergeResultSerializer(result).data
        if result.outcome == MergeOutcome.FAILED:
            return Response(
                {
                    "success": False,
                    "data": data,
                    "error": {"code": result.error.code, "detail": result.error.detail},
                },
                status=status.HTTP_200_OK,
            )
        return ok(data, message=result.message)


class SignOutView(APIView):
    """Detach the account from this browsing context and issue a fresh guest token."""

    throttle_scope = "identity"

    @extend_schema(
        tags=["Identity Endpoints"],
        summary="Sign out of browsing context",
        parameters=[SESSION_PARAMETER],
        request=None,
        responses={200: IdentityReadSerializer},
    )
    def post(self, request):
        try:
            identity = sign_out(context_key=session_key_from(request))
        except EngineError as exc:
            return error_response(exc)
        return ok(IdentityReadSerializer(identity).data)
