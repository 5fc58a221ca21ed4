"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the order engine, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    delivery_place = serializers.CharField(max_length=255)
    order_notes = serializers.CharField(required=False, default="", allow_blank=True)


class TransitionRequestSerializer(serializers.Serializer):
    """Validates a status change request.

    Which reason fields are required depends on the transition, so they
    are all optional here and checked by the engine.
    """

    target_status = serializers.ChoiceField(choices=OrderStatus.choices)
    expected_version = serializers.IntegerField(min_value=0)
    cancellation_reason = serializers.CharField(required=False, allow_blank=True)
    rejection_reason = serializers.CharField(required=False, allow_blank=True)
    transporter_id = serializers.UUIDField(required=False)
    dispute_reason = serializers.CharField(required=False, allow_blank=True)
    return_reason = serializers.CharField(required=False, allow_blank=True)
    resolution_notes = serializers.CharField(required=False, allow_blank=True)
    return_rejection_reason = serializers.CharField(required=False, allow_blank=True)


class ResolveDisputeSerializer(serializers.Serializer):
    resolution = serializers.ChoiceField(
        choices=["resolve_only", "resolve_and_reassign"]
    )
    resolution_notes = serializers.CharField()
    expected_version = serializers.IntegerField(min_value=0)


class HandleReturnSerializer(serializers.Serializer):
    decision = serializers.ChoiceField(choices=["accept", "reject"])
    return_rejection_reason = serializers.CharField(required=False, allow_blank=True)
    expected_version = serializers.IntegerField(min_value=0)

    def validate(self, attrs):
        reason = (attrs.get("return_rejection_reason") or "").strip()
        if attrs["decision"] == "accept" and reason:
            raise serializers.ValidationError(
                {"return_rejection_reason": "Only allowed when rejecting a return."}
            )
        attrs["return_rejection_reason"] = reason or None
        return attrs


class ExpectedVersionSerializer(serializers.Serializer):
    """Query-string guard for ``DELETE /orders/{id}/?expected_version=N``."""

    expected_version = serializers.IntegerField(min_value=0)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "sequence",
            "from_status",
            "to_status",
            "actor_role",
            "actor_id",
            "reason",
            "created_at",
        ]
        read_only_fields = fields


class DeliveryDisputeSerializer(serializers.Serializer):
    reason = serializers.CharField()
    disputed_at = serializers.DateTimeField()
    resolution_notes = serializers.CharField(allow_null=True)
    resolved_at = serializers.DateTimeField(allow_null=True)
    reassigned = serializers.BooleanField()


class ReturnDetailsSerializer(serializers.Serializer):
    return_reason = serializers.CharField()
    return_requested_at = serializers.DateTimeField()
    return_rejection_reason = serializers.CharField(allow_null=True)
    return_decision_at = serializers.DateTimeField(allow_null=True)


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with dispute, return and history."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)
    delivery_dispute = DeliveryDisputeSerializer(read_only=True, allow_null=True)
    return_details = ReturnDetailsSerializer(read_only=True, allow_null=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "version",
            "retailer_id",
            "wholesaler_id",
            "transporter_id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "total_price",
            "measurement_unit",
            "delivery_place",
            "order_notes",
            "cancellation_reason",
            "rejection_reason",
            "transporter_confirmed_at",
            "actual_delivery_date",
            "delivery_certification_date",
            "delivery_dispute",
            "return_details",
            "created_at",
            "updated_at",
            "status_history",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "version",
            "retailer_id",
            "wholesaler_id",
            "transporter_id",
            "product_id",
            "quantity",
            "total_price",
            "created_at",
        ]
        read_only_fields = fields
