from rest_framework import serializers

from .calculator import BILLING_MODES, PRORATA_30


class RentPreviewSerializer(serializers.Serializer):
    monthly_rate = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    billing_mode = serializers.ChoiceField(choices=BILLING_MODES, default=PRORATA_30)
    daily_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['end_date'] < attrs['start_date']:
            raise serializers.ValidationError({'end_date': 'End date cannot be before start date'})
        return attrs


class RateValidationSerializer(serializers.Serializer):
    negotiated_rate = serializers.DecimalField(max_digits=12, decimal_places=2)
    base_rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    card_rate = serializers.DecimalField(max_digits=12, decimal_places=2)
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)
