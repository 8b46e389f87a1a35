from __future__ import annotations

from rest_framework import serializers

from dispatches.models import Dispatch, Feedback


class FeedbackSerializer(serializers.ModelSerializer):
    class Meta:
        model = Feedback
        fields = [
            "id",
            "dispatch",
            "client",
            "finished_good",
            "rating_quality",
            "rating_packaging",
            "rating_delivery",
            "client_remarks",
            "issue_tags",
            "created_at",
        ]
        read_only_fields = fields


class DispatchSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source="invoice.invoice_number", read_only=True)
    client_id = serializers.IntegerField(source="invoice.client_id", read_only=True)
    client_name = serializers.CharField(source="invoice.client.name", read_only=True)
    creator_username = serializers.CharField(source="creator.username", read_only=True, default=None)
    feedback = serializers.SerializerMethodField()

    class Meta:
        model = Dispatch
        fields = [
            "id",
            "invoice",
            "invoice_number",
            "client_id",
            "client_name",
            "courier_name",
            "awb_number",
            "dispatch_date",
            "status",
            "creator",
            "creator_username",
            "feedback",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_feedback(self, obj):
        feedback = Feedback.objects.filter(dispatch_id=obj.pk).first()
        return FeedbackSerializer(feedback).data if feedback else None


class DispatchCreateSerializer(serializers.Serializer):
    invoice_id = serializers.IntegerField(min_value=1)
    courier_name = serializers.CharField(max_length=255)
    awb_number = serializers.CharField(max_length=64)
    dispatch_date = serializers.DateField()


class DispatchUpdateSerializer(serializers.Serializer):
    courier_name = serializers.CharField(max_length=255, required=False)
    awb_number = serializers.CharField(max_length=64, required=False)
    dispatch_date = serializers.DateField(required=False)


class DispatchStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=16)


class FeedbackCreateSerializer(serializers.Serializer):
    client_id = serializers.IntegerField(min_value=1)
    finished_good_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    rating_quality = serializers.IntegerField()
    rating_packaging = serializers.IntegerField()
    rating_delivery = serializers.IntegerField()
    client_remarks = serializers.CharField(required=False, allow_blank=True, default="")
    issue_tags = serializers.ListField(child=serializers.CharField(), required=False, default=list)
