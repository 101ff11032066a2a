from __future__ import annotations

from rest_framework import serializers

from apps.contributions.models import TRANSFERABLE_CATEGORIES, PointTransfer, UserContribution


class UserContributionSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    metrics = serializers.SerializerMethodField()

    class Meta:
        model = UserContribution
        fields = ("user_id", "username", "metrics", "win_probability", "win_count", "last_calculated")
        read_only_fields = fields

    def get_metrics(self, obj: UserContribution) -> dict:
        return obj.metrics.as_dict()


class PointTransferSerializer(serializers.ModelSerializer):
    sender_id = serializers.IntegerField(read_only=True)
    recipient_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = PointTransfer
        fields = (
            "id",
            "sender_id",
            "sender_username",
            "recipient_id",
            "recipient_username",
            "amount",
            "point_type",
            "memo",
            "context",
            "timestamp",
        )
        read_only_fields = fields


class PointTransferCreateSerializer(serializers.Serializer):
    recipient_username = serializers.CharField(max_length=150)
    point_type = serializers.ChoiceField(choices=TRANSFERABLE_CATEGORIES)
    amount = serializers.FloatField(min_value=0, max_value=1_000_000)
    memo = serializers.CharField(required=False, allow_blank=True, max_length=255)

    def validate_amount(self, value: float) -> float:
        if value <= 0:
            raise serializers.ValidationError("Amount must be positive.")
        return value
