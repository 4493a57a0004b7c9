"""Order API views.

Exposes ``OrderFulfillmentService`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into HTTP status codes with
the standard error body; the view never swallows generic exceptions.
"""

from __future__ import annotations

from typing import Callable, Dict, Type

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.audit.services import audit_trail
from modules.core.exceptions import error_response
from modules.core.pagination import StandardResultsSetPagination
from modules.core.permissions import HasFulfillmentRole
from modules.core.roles import UserRole
from modules.orders.dtos import (
    AdjustItemQuantityDTO,
    ImportOrderDTO,
    ImportOrderItemDTO,
)
from modules.orders.exceptions import (
    DuplicateVoucher,
    FulfillmentError,
    InvalidClaim,
    InvalidPhaseForStatus,
    ItemNotFound,
    NotTaskAssignee,
    OrderNotFound,
    OrderTerminal,
    QuantityOutOfBounds,
    RoleNotAllowed,
    StoreUnavailable,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.notifier import OrderEventNotifier
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AdjustItemSerializer,
    BatchClaimSerializer,
    ClaimSerializer,
    ImportOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    UrgentSerializer,
    VoidSerializer,
)
from modules.orders.services import OrderFulfillmentService

ERROR_STATUS: Dict[Type[FulfillmentError], int] = {
    OrderNotFound: status.HTTP_404_NOT_FOUND,
    ItemNotFound: status.HTTP_404_NOT_FOUND,
    OrderTerminal: status.HTTP_409_CONFLICT,
    InvalidClaim: status.HTTP_409_CONFLICT,
    InvalidPhaseForStatus: status.HTTP_409_CONFLICT,
    QuantityOutOfBounds: status.HTTP_409_CONFLICT,
    DuplicateVoucher: status.HTTP_409_CONFLICT,
    RoleNotAllowed: status.HTTP_403_FORBIDDEN,
    NotTaskAssignee: status.HTTP_403_FORBIDDEN,
    StoreUnavailable: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def build_fulfillment_service() -> OrderFulfillmentService:
    return OrderFulfillmentService(
        order_repository=OrderDjangoRepository(),
        audit_trail=audit_trail,
        notifier=OrderEventNotifier(),
    )


def fulfillment_error_response(exc: FulfillmentError) -> Response:
    status_code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
    extra = {"retryable": True} if exc.retryable else None
    response = error_response(exc.code, str(exc), status_code, extra)
    if exc.retryable:
        response["Retry-After"] = "1"
    return response


class OrderViewSet(GenericViewSet):
    """ViewSet for order fulfillment.

    Uses ``OrderFulfillmentService`` with injected collaborators (DIP).
    Does **not** extend ``ModelViewSet``: all writes go through the
    service/repository layer.
    """

    queryset = Order.objects.all()
    permission_classes = [IsAuthenticated, HasFulfillmentRole]
    filterset_class = OrderFilter
    search_fields = ["voucher_number", "customer_name", "items__product_code"]
    ordering_fields = ["created_at", "status", "is_urgent"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_fulfillment_service()

    def get_queryset(self):
        return OrderDjangoRepository().list()

    def get_serializer_class(self):
        return OrderListSerializer if self.action == "list" else OrderSerializer

    def _run(
        self, command: Callable[[], Order], success_status: int = status.HTTP_200_OK
    ) -> Response:
        try:
            order = command()
        except FulfillmentError as exc:
            return fulfillment_error_response(exc)
        return Response(OrderSerializer(order).data, status=success_status)

    # ------------------------------------------------------------------
    # Import / Delete
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Imports one order in ``pending`` with all counters at zero.
        """
        serializer = ImportOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if request.fulfillment_role != UserRole.ADMIN:
            return fulfillment_error_response(
                RoleNotAllowed("Only administrators can import orders.")
            )

        dto = ImportOrderDTO(
            voucher_number=data["voucher_number"],
            customer_name=data.get("customer_name", ""),
            items=[ImportOrderItemDTO(**item) for item in data["items"]],
            notes=data.get("notes", ""),
            is_urgent=data.get("is_urgent", False),
        )
        return self._run(
            lambda: self._service.import_order(dto, actor=request.user),
            status.HTTP_201_CREATED,
        )

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/orders/{pk}/"""
        try:
            self._service.delete_order(pk, request.user, request.fulfillment_role)
        except FulfillmentError as exc:
            return fulfillment_error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, urgency, voucher number, date range) is handled
        by ``OrderFilter``; ordering by ``OrderingFilter``.  Paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/

        Re-evaluates the order first, so an order whose items are all done
        is reported in its follow-up status.
        """
        return self._run(lambda: self._service.reevaluate_order(pk))

    # ------------------------------------------------------------------
    # State machine actions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def claim(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/claim/"""
        serializer = ClaimSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            lambda: self._service.claim_order(
                pk,
                request.user,
                request.fulfillment_role,
                serializer.validated_data["task_type"],
            )
        )

    @action(detail=False, methods=["post"], url_path="batch-claim")
    def batch_claim(self, request: Request) -> Response:
        """POST /api/v1/orders/batch-claim/

        Claims each order independently; failures are listed, not raised.
        """
        serializer = BatchClaimSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self._service.claim_orders(
            serializer.validated_data["order_ids"],
            request.user,
            request.fulfillment_role,
            serializer.validated_data["task_type"],
        )
        return Response(result.model_dump(mode="json"))

    @action(detail=True, methods=["post"], url_path="adjust-item")
    def adjust_item(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/adjust-item/"""
        serializer = AdjustItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        command = AdjustItemQuantityDTO(**serializer.validated_data)
        return self._run(
            lambda: self._service.adjust_item_quantity(
                pk,
                command.product_code,
                command.phase,
                command.delta,
                request.user,
                request.fulfillment_role,
            )
        )

    @action(detail=True, methods=["post"])
    def void(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/void/"""
        serializer = VoidSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            lambda: self._service.void_order(
                pk,
                request.user,
                request.fulfillment_role,
                serializer.validated_data["reason"],
            )
        )

    @action(detail=True, methods=["patch"])
    def urgent(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/urgent/"""
        serializer = UrgentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._run(
            lambda: self._service.set_urgent(
                pk,
                request.user,
                request.fulfillment_role,
                serializer.validated_data["is_urgent"],
            )
        )


class TaskListView(APIView):
    """GET /api/v1/tasks/: orders the caller can work on, urgent first."""

    permission_classes = [IsAuthenticated, HasFulfillmentRole]

    def get(self, request: Request) -> Response:
        service = build_fulfillment_service()
        orders = service.list_tasks(request.user, request.fulfillment_role)
        return Response(
            {
                "role": request.fulfillment_role,
                "count": len(orders),
                "results": OrderListSerializer(orders, many=True).data,
            }
        )
