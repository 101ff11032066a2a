from __future__ import annotations

from django.conf import settings
from rest_framework import serializers

from apps.payables.models import PayoutConfig, PayoutRecord


def _max_amount() -> int:
    return int(getattr(settings, "PAYABLES_MAX_PAYOUT_AMOUNT", 10_000))


class PayoutAmountSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1)

    def validate_amount(self, value: int) -> int:
        if value > _max_amount():
            raise serializers.ValidationError(f"Amount cannot exceed {_max_amount()}.")
        return value


class PayoutRecordSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PayoutRecord
        fields = (
            "id",
            "batch_id",
            "user_id",
            "username",
            "amount",
            "probability",
            "status",
            "transfer_id",
            "transfer_error",
            "expires_at",
            "created_at",
        )
        read_only_fields = fields


class PayoutConfigSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayoutConfig
        fields = (
            "total_pool",
            "batch_size",
            "github_platform_weight",
            "peer_review_weight",
            "other_contributions_weight",
            "game_publication_weight",
            "community_weight",
            "code_weight",
            "content_weight",
            "next_scheduled_run",
            "last_updated",
        )
        read_only_fields = ("last_updated",)
        extra_kwargs = {
            field: {"min_value": 0}
            for field in fields
            if field.endswith("_weight") or field in ("total_pool", "batch_size")
        }
