from __future__ import annotations

from rest_framework import serializers

from apps.contributions.models import ContributionCategory
from apps.gauntlet.models import GauntletChallenge, Team


class GauntletChallengeSerializer(serializers.ModelSerializer):
    challenger_id = serializers.IntegerField(read_only=True)
    opponent_id = serializers.IntegerField(read_only=True, allow_null=True)
    started_by_id = serializers.IntegerField(read_only=True, allow_null=True)
    pot = serializers.IntegerField(read_only=True)

    class Meta:
        model = GauntletChallenge
        fields = (
            "id",
            "game_id",
            "status",
            "challenger_id",
            "challenger_username",
            "challenger_team",
            "challenger_wager",
            "challenger_setup",
            "challenger_has_setup",
            "opponent_id",
            "opponent_username",
            "opponent_team",
            "opponent_setup",
            "opponent_has_setup",
            "opponent_wager",
            "wager_category",
            "locked_settings",
            "pot",
            "winner",
            "started_by_id",
            "started_at",
            "completed_at",
            "created_at",
        )
        read_only_fields = fields


class ChallengeCreateSerializer(serializers.Serializer):
    game_id = serializers.CharField(max_length=64)
    wager = serializers.IntegerField(min_value=1)
    opponent_wager = serializers.IntegerField(min_value=1)
    team = serializers.ChoiceField(choices=Team.choices)
    setup = serializers.JSONField()
    category = serializers.ChoiceField(choices=ContributionCategory.choices, default=ContributionCategory.TOTAL)
    locked_settings = serializers.ListField(child=serializers.CharField(max_length=64), required=False, default=list)


class ChallengeJoinSerializer(serializers.Serializer):
    setup = serializers.JSONField(required=False, allow_null=True, default=None)


class ChallengeResolveSerializer(serializers.Serializer):
    winner = serializers.ChoiceField(choices=Team.choices)
